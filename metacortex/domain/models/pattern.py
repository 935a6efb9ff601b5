"""Pattern and Cluster models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .enums import PatternType, Scope

MAX_EXAMPLES = 5


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Pattern(BaseModel):
    """A short, reusable observation learned during a workflow phase.

    ``confidence`` and ``score`` are caches. They are always recomputed by the
    evolution pipeline from the other fields, the configuration and "now".

    Examples:
    - "Run database migrations before seeding fixtures" (sequential-dep)
    - "Flaky integration tests hid a race in the cache layer" (anti-pattern)
    """

    id: str = Field(..., description="Stable ID: {scope}:{type}:{content hash}")
    semantic_hash: str = Field(
        ..., description="Content fingerprint for exact-duplicate detection"
    )
    scope: Scope = Field(..., description="Workflow phase the pattern belongs to")
    type: PatternType = Field(..., description="Pattern type")
    cluster_id: str | None = Field(
        default=None, description="Back-reference to the owning cluster (weak)"
    )

    content: str = Field(..., min_length=1, description="Pattern description")
    description: str | None = Field(None, description="Optional detail")
    tags: list[str] = Field(default_factory=list, description="Search tags")
    examples: list[str] = Field(
        default_factory=list,
        description=f"Session IDs where the pattern was observed (max {MAX_EXAMPLES})",
    )
    data: dict[str, Any] = Field(
        default_factory=dict, description="Type-specific payload"
    )

    frequency: int = Field(default=1, ge=1, description="Occurrence counter")
    success_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    confidence: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Frequency + recency trust score"
    )
    score: float = Field(default=0.0, ge=0.0, description="Decay score (vitality)")
    first_seen: datetime = Field(..., description="First observation")
    last_seen: datetime = Field(..., description="Most recent observation")

    embedding: list[float] | None = Field(
        default=None, description="Fixed-width vector used only for similarity"
    )

    @field_validator("first_seen", "last_seen")
    @classmethod
    def _timezone_aware(cls, value: datetime) -> datetime:
        return _ensure_aware(value)

    @field_validator("examples")
    @classmethod
    def _bounded_examples(cls, value: list[str]) -> list[str]:
        if len(value) > MAX_EXAMPLES:
            raise ValueError(f"at most {MAX_EXAMPLES} examples allowed")
        return value

    @model_validator(mode="after")
    def _seen_order(self) -> Pattern:
        if self.last_seen < self.first_seen:
            raise ValueError("last_seen must not be earlier than first_seen")
        return self

    def to_export_dict(self) -> dict[str, Any]:
        """Serialize for human-facing exports (embedding omitted)."""
        return self.model_dump(mode="json", exclude={"embedding"})


class Cluster(BaseModel):
    """A group of semantically related patterns within one scope.

    Clusters reference members by ID only; they never own patterns.
    """

    id: str = Field(..., description="Derived from the sorted member IDs")
    scope: Scope = Field(..., description="Scope shared by every member")
    pattern_ids: list[str] = Field(..., min_length=1, description="Member IDs")
    representative_id: str = Field(
        ..., description="Member with the highest frequency"
    )
    centroid: list[float] = Field(
        default_factory=list, description="Mean of member embeddings"
    )
    avg_confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def size(self) -> int:
        """Number of members."""
        return len(self.pattern_ids)
