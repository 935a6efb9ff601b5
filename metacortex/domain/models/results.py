"""Result models for service operations."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .enums import Scope


class IngestResult(BaseModel):
    """Result of recording an observation."""

    scope: Scope
    session_id: str
    added: int = Field(default=0, description="Newly created patterns")
    merged: int = Field(default=0, description="Existing patterns re-observed")
    pattern_ids: list[str] = Field(default_factory=list)


class EvictedPattern(BaseModel):
    """Summary of an evicted pattern."""

    id: str
    content: str
    score: float
    frequency: int


class EvictionResult(BaseModel):
    """Outcome of an eviction pass over one scope."""

    scope: Scope
    capacity: int
    kept: int
    evicted: list[EvictedPattern] = Field(default_factory=list)
    protected_ids: list[str] = Field(default_factory=list)
    capacity_exceeded: bool = Field(
        default=False,
        description="Protected patterns alone exceed the configured capacity",
    )

    @property
    def evicted_count(self) -> int:
        return len(self.evicted)


class EvictionPreview(BaseModel):
    """What an eviction pass would do, computed without side effects."""

    scope: Scope
    current: int = Field(
        ..., description="Patterns entering eviction, after deduplication"
    )
    capacity: int
    would_evict: list[EvictedPattern] = Field(default_factory=list)
    protected_count: int = 0
    capacity_exceeded: bool = False


class EvolutionResult(BaseModel):
    """Outcome of one evolution pipeline run over a scope."""

    scope: Scope
    skipped: bool = Field(default=False, description="Scope was empty; nothing written")
    patterns_before: int = 0
    patterns_after: int = 0
    merged: int = Field(default=0, description="Patterns absorbed by deduplication")
    clusters: int = 0
    evicted: int = 0
    capacity_exceeded: bool = False


class StoreStats(BaseModel):
    """Statistics about stored patterns."""

    total_patterns: int
    patterns_by_scope: dict[str, int]
    patterns_by_type: dict[str, int]
    total_clusters: int
    avg_confidence: float
    high_confidence: int = Field(..., description="Patterns with confidence > 0.7")
    top_tags: list[dict[str, Any]] = Field(default_factory=list)


class DependencyValidationResult(BaseModel):
    """Outcome of checking high-confidence sequential dependencies."""

    scope: Scope
    passed: bool
    required_deps: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
