"""Forgetting - Capacity-bound eviction of low-value patterns.

When a scope holds more patterns than its configured capacity, the
lowest-scoring patterns are forgotten. Some patterns are protected and
always survive:

1. High frequency: observed at least ``protect_frequency`` times
2. Recent: seen within ``protect_recent_days``
3. Cluster representatives (clusters with two or more members)
4. Proven: success_rate == 1.0 and frequency >= 3 (always on)

Protected patterns may keep a scope above capacity. That is reported
through ``capacity_exceeded`` and never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from ...domain.exceptions import ValidationError
from ...domain.models import (
    CapacityConfig,
    Cluster,
    EvictedPattern,
    EvictionConfig,
    EvictionPreview,
    EvictionResult,
    Pattern,
    Scope,
)
from .dynamics import DecayScorer, age_in_days

logger = logging.getLogger(__name__)

PROVEN_MIN_FREQUENCY = 3


class Evictor:
    """Evicts the lowest-scoring unprotected patterns of one scope."""

    def __init__(
        self,
        capacity: CapacityConfig | None = None,
        policy: EvictionConfig | None = None,
        decay_scorer: DecayScorer | None = None,
    ) -> None:
        """Initialize the evictor.

        Args:
            capacity: Per-scope capacity limits
            policy: Protection rules
            decay_scorer: Scorer used to refresh decay scores before ranking
        """
        self.capacity = capacity or CapacityConfig()
        self.policy = policy or EvictionConfig()
        self.decay_scorer = decay_scorer or DecayScorer()

    def representative_ids(self, clusters: Iterable[Cluster]) -> set[str]:
        """Representatives of clusters that actually group patterns."""
        return {c.representative_id for c in clusters if c.size >= 2}

    def is_protected(
        self,
        pattern: Pattern,
        now: datetime,
        representatives: set[str] | None = None,
    ) -> bool:
        """Check whether a pattern is exempt from eviction.

        Any single rule qualifying is sufficient.
        """
        policy = self.policy
        if policy.protect_high_frequency and pattern.frequency >= policy.protect_frequency:
            return True
        if (
            policy.protect_recent
            and age_in_days(pattern.last_seen, now) <= policy.protect_recent_days
        ):
            return True
        if (
            policy.protect_cluster_representatives
            and representatives
            and pattern.id in representatives
        ):
            return True
        return pattern.success_rate == 1.0 and pattern.frequency >= PROVEN_MIN_FREQUENCY

    def evict(
        self,
        scope: Scope,
        patterns: Sequence[Pattern],
        now: datetime,
        clusters: Iterable[Cluster] = (),
    ) -> tuple[list[Pattern], EvictionResult]:
        """Evict low-score patterns until the scope is back at capacity.

        Args:
            scope: Scope the patterns belong to
            patterns: Every pattern of the scope
            now: Reference time
            clusters: Current clusters of the scope

        Returns:
            (kept patterns in input order, eviction result)

        Raises:
            ValidationError: If a pattern belongs to another scope.
        """
        scope = Scope(scope)
        kept, evicted, protected_ids = self._plan(scope, patterns, now, clusters)
        capacity = self.capacity.limit_for(scope)
        exceeded = len(protected_ids) > capacity

        if exceeded:
            logger.warning(
                f"Scope '{scope.value}': {len(protected_ids)} protected patterns "
                f"exceed capacity {capacity}; keeping all of them"
            )
        if evicted:
            logger.info(
                f"Scope '{scope.value}': evicted {len(evicted)} patterns, "
                f"kept {len(kept)}"
            )

        result = EvictionResult(
            scope=scope,
            capacity=capacity,
            kept=len(kept),
            evicted=[_summary(p) for p in evicted],
            protected_ids=sorted(protected_ids),
            capacity_exceeded=exceeded,
        )
        return kept, result

    def preview(
        self,
        scope: Scope,
        patterns: Sequence[Pattern],
        now: datetime,
        clusters: Iterable[Cluster] = (),
    ) -> EvictionPreview:
        """Report what ``evict`` would remove, without side effects."""
        kept, evicted, protected_ids = self._plan(scope, patterns, now, clusters)
        capacity = self.capacity.limit_for(scope)
        return EvictionPreview(
            scope=scope,
            current=len(patterns),
            capacity=capacity,
            would_evict=[_summary(p) for p in evicted],
            protected_count=len(protected_ids),
            capacity_exceeded=len(protected_ids) > capacity,
        )

    def _plan(
        self,
        scope: Scope,
        patterns: Sequence[Pattern],
        now: datetime,
        clusters: Iterable[Cluster],
    ) -> tuple[list[Pattern], list[Pattern], set[str]]:
        scope = Scope(scope)
        foreign = [p.id for p in patterns if p.scope != scope]
        if foreign:
            raise ValidationError(
                f"Cannot evict across scopes: {len(foreign)} patterns are not in "
                f"scope '{scope.value}' (e.g. {foreign[0]})"
            )

        capacity = self.capacity.limit_for(scope)
        if len(patterns) <= capacity:
            return list(patterns), [], set()

        scored = self.decay_scorer.apply(patterns, now)
        representatives = self.representative_ids(clusters)
        protected_ids = {
            p.id for p in scored if self.is_protected(p, now, representatives)
        }
        unprotected = [p for p in scored if p.id not in protected_ids]

        excess = len(scored) - capacity
        # sorted() is stable: equal scores keep their input order
        ranked = sorted(unprotected, key=lambda p: p.score)
        evicted = ranked[: min(excess, len(ranked))]
        evicted_ids = {p.id for p in evicted}
        kept = [p for p in scored if p.id not in evicted_ids]
        return kept, evicted, protected_ids


def _summary(pattern: Pattern) -> EvictedPattern:
    return EvictedPattern(
        id=pattern.id,
        content=pattern.content,
        score=pattern.score,
        frequency=pattern.frequency,
    )
