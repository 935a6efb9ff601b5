"""Query Service - Read-only access to stored patterns.

Nothing in this module writes to the store.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from ...brain.neocortex import Clusterer
from ..exceptions import PatternNotFoundError
from ..identifiers import parse_pattern_id
from ..models import (
    DependencyValidationResult,
    Pattern,
    PatternType,
    Scope,
    StoreStats,
)

if TYPE_CHECKING:
    from ...infra.storage import ScopeStore

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.7
MAX_REQUIRED_DEPS = 5

DependencyChecker = Callable[[str], bool]


class PatternFilter(BaseModel):
    """Criteria for ``PatternQueryService.query``. All are optional."""

    scope: Scope | None = None
    type: PatternType | None = None
    min_confidence: float | None = Field(None, ge=0.0, le=1.0)
    text: str | None = Field(
        None, description="Case-insensitive substring of content, description or tags"
    )
    tags: list[str] = Field(
        default_factory=list, description="Match patterns carrying any of these tags"
    )
    limit: int | None = Field(None, ge=1)


def rank(patterns: Iterable[Pattern]) -> list[Pattern]:
    """Sort by score descending, then ID for a deterministic order."""
    return sorted(patterns, key=lambda p: (-p.score, p.id))


def matches_text(pattern: Pattern, text: str) -> bool:
    needle = text.lower()
    haystacks = [pattern.content, pattern.description or "", *pattern.tags]
    return any(needle in h.lower() for h in haystacks)


def matches_tags(pattern: Pattern, tags: Iterable[str]) -> bool:
    wanted = {t.lower() for t in tags}
    return any(t.lower() in wanted for t in pattern.tags)


class PatternQueryService:
    """Filtering, search and recommendations over persisted patterns."""

    def __init__(self, store: ScopeStore) -> None:
        self._store = store

    def _load(self, scope: Scope | None) -> list[Pattern]:
        if scope is None:
            return self._store.load_all_patterns()
        return self._store.load_patterns(Scope(scope))

    def query(self, criteria: PatternFilter | None = None) -> list[Pattern]:
        """Filter patterns and rank them by score."""
        criteria = criteria or PatternFilter()
        patterns = self._load(criteria.scope)

        if criteria.type is not None:
            patterns = [p for p in patterns if p.type == criteria.type]
        if criteria.min_confidence is not None:
            patterns = [p for p in patterns if p.confidence >= criteria.min_confidence]
        if criteria.text:
            patterns = [p for p in patterns if matches_text(p, criteria.text)]
        if criteria.tags:
            patterns = [p for p in patterns if matches_tags(p, criteria.tags)]

        ranked = rank(patterns)
        if criteria.limit is not None:
            ranked = ranked[: criteria.limit]
        return ranked

    def search(self, text: str, scope: Scope | None = None) -> list[Pattern]:
        return self.query(PatternFilter(scope=scope, text=text))

    def search_by_tags(
        self, tags: list[str], scope: Scope | None = None
    ) -> list[Pattern]:
        return self.query(PatternFilter(scope=scope, tags=tags))

    def top(self, n: int = 10, scope: Scope | None = None) -> list[Pattern]:
        """Top ``n`` patterns by score."""
        return rank(self._load(scope))[:n]

    def get(self, pattern_id: str) -> Pattern:
        """Fetch a pattern by ID.

        Raises:
            PatternNotFoundError: If no stored pattern has this ID.
        """
        parsed = parse_pattern_id(pattern_id)
        scope = parsed[0] if parsed else None
        for pattern in self._load(scope):
            if pattern.id == pattern_id:
                return pattern
        raise PatternNotFoundError(pattern_id)

    def recommend(self, scope: Scope, limit: int = 10) -> list[Pattern]:
        """High-confidence (> 0.7) patterns of a scope, best score first."""
        candidates = [p for p in self._load(scope) if p.confidence > HIGH_CONFIDENCE]
        return rank(candidates)[:limit]

    def safe_parallel_patterns(self, scope: Scope | None = None) -> list[Pattern]:
        """High-confidence parallel-success patterns."""
        return rank(
            p
            for p in self._load(scope)
            if p.type == PatternType.PARALLEL_SUCCESS and p.confidence > HIGH_CONFIDENCE
        )

    def anti_patterns(self, scope: Scope | None = None) -> list[Pattern]:
        """Anti-patterns, most frequent first."""
        return sorted(
            (p for p in self._load(scope) if p.type == PatternType.ANTI_PATTERN),
            key=lambda p: (-p.frequency, p.id),
        )

    def validate_dependencies(
        self,
        scope: Scope,
        checker: DependencyChecker | None = None,
    ) -> DependencyValidationResult:
        """Check the top high-confidence sequential dependencies of a scope.

        Args:
            scope: Scope to check
            checker: Returns True when a dependency (by content) is
                satisfied. Without a checker every dependency passes.
        """
        scope = Scope(scope)
        deps = sorted(
            (
                p
                for p in self._load(scope)
                if p.type == PatternType.SEQUENTIAL_DEP
                and p.confidence > HIGH_CONFIDENCE
            ),
            key=lambda p: (-p.frequency, p.id),
        )[:MAX_REQUIRED_DEPS]

        warnings: list[str] = []
        if checker is not None:
            for dep in deps:
                if not checker(dep.content):
                    warnings.append(
                        f'Missing dependency: "{dep.content}" '
                        f"(frequency: {dep.frequency}, "
                        f"confidence: {dep.confidence * 100:.0f}%)"
                    )

        return DependencyValidationResult(
            scope=scope,
            passed=not warnings,
            required_deps=[d.content for d in deps],
            warnings=warnings,
        )

    def find_related(self, pattern_id: str) -> list[Pattern]:
        """Other members of the pattern's cluster."""
        pattern = self.get(pattern_id)
        clusters = self._store.load_clusters(pattern.scope)
        related_ids = Clusterer.find_related(pattern_id, clusters)
        if not related_ids:
            return []
        by_id = {p.id: p for p in self._load(pattern.scope)}
        return [by_id[pid] for pid in related_ids if pid in by_id]

    def stats(self) -> StoreStats:
        """Aggregate statistics across every scope."""
        patterns = self._store.load_all_patterns()
        clusters = self._store.load_all_clusters()

        by_scope = Counter(p.scope.value for p in patterns)
        by_type = Counter(p.type.value for p in patterns)
        tag_counts = Counter(t for p in patterns for t in p.tags)
        total = len(patterns)

        return StoreStats(
            total_patterns=total,
            patterns_by_scope={s.value: by_scope.get(s.value, 0) for s in Scope},
            patterns_by_type=dict(by_type),
            total_clusters=len(clusters),
            avg_confidence=(sum(p.confidence for p in patterns) / total) if total else 0.0,
            high_confidence=sum(1 for p in patterns if p.confidence > HIGH_CONFIDENCE),
            top_tags=[
                {"tag": tag, "count": count} for tag, count in tag_counts.most_common(10)
            ],
        )
