"""Pattern lifecycle configuration.

The configuration is an immutable value. It is loaded once per process by
``ConfigStore`` and then passed explicitly to every pipeline invocation;
scoring and eviction never mutate it.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import DecayAlgorithm, Scope

logger = logging.getLogger(__name__)

CONFIG_VERSION = "1.0.0"


def _default_scope_capacity() -> dict[Scope, int]:
    return {scope: 100 for scope in Scope}


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CapacityConfig(_FrozenModel):
    """Storage bounds."""

    max_patterns_per_scope: dict[Scope, int] = Field(
        default_factory=_default_scope_capacity
    )
    max_clusters_per_scope: int = Field(default=100, ge=1)
    max_session_files: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def _positive_capacities(self) -> CapacityConfig:
        for scope, limit in self.max_patterns_per_scope.items():
            if limit < 1:
                raise ValueError(
                    f"max_patterns_per_scope[{scope.value}] must be >= 1, got {limit}"
                )
        return self

    def limit_for(self, scope: Scope) -> int:
        """Capacity for a scope (scopes missing from the mapping default to 100)."""
        return self.max_patterns_per_scope.get(Scope(scope), 100)


class DecayWeights(_FrozenModel):
    """Weights of the hybrid decay algorithm.

    They are expected to sum to 1.0. The sum is not enforced; a warning is
    logged instead.
    """

    recency: float = Field(default=0.4, ge=0.0, le=1.0)
    frequency: float = Field(default=0.4, ge=0.0, le=1.0)
    success_rate: float = Field(default=0.2, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _warn_on_sum(self) -> DecayWeights:
        total = self.recency + self.frequency + self.success_rate
        if not (0.99 <= total <= 1.01):
            logger.warning(f"Decay weights sum to {total:.3f}, expected 1.0")
        return self


class DecayConfig(_FrozenModel):
    """Decay scoring settings."""

    algorithm: DecayAlgorithm = DecayAlgorithm.HYBRID
    half_life_days: float = Field(default=90.0, gt=0.0)
    weights: DecayWeights = Field(default_factory=DecayWeights)


class ClusteringConfig(_FrozenModel):
    """Clustering settings."""

    enabled: bool = True
    similarity_threshold: float = Field(default=0.75, ge=0.0, le=1.0)


class DeduplicationConfig(_FrozenModel):
    """Deduplication settings."""

    enabled: bool = True
    similarity_threshold: float = Field(default=0.9, ge=0.0, le=1.0)


class EvictionConfig(_FrozenModel):
    """Protection rules applied before evicting low-score patterns."""

    protect_high_frequency: bool = True
    protect_frequency: int = Field(default=5, ge=1)
    protect_recent: bool = True
    protect_recent_days: float = Field(default=7.0, ge=0.0)
    protect_cluster_representatives: bool = True


class ExportConfig(_FrozenModel):
    """PATTERNS.md generation settings."""

    auto_generate_markdown: bool = True
    top_per_type: int = Field(default=20, ge=1)
    quick_reference_size: int = Field(default=10, ge=1)


class PatternConfig(_FrozenModel):
    """Process-wide pattern lifecycle configuration."""

    version: str = CONFIG_VERSION
    capacity: CapacityConfig = Field(default_factory=CapacityConfig)
    decay: DecayConfig = Field(default_factory=DecayConfig)
    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    deduplication: DeduplicationConfig = Field(default_factory=DeduplicationConfig)
    eviction: EvictionConfig = Field(default_factory=EvictionConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    embedding_dimensions: int = Field(default=100, ge=1)

    def merged(self, updates: dict[str, Any]) -> PatternConfig:
        """Return a new, validated config with ``updates`` deep-merged in.

        Args:
            updates: Partial mapping, e.g. ``{"decay": {"half_life_days": 30}}``.

        Raises:
            pydantic.ValidationError: If the merged values are invalid.
        """
        return PatternConfig.model_validate(
            _deep_merge(self.model_dump(mode="json"), updates)
        )


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in updates.items():
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
