"""Pattern Ingestion - Turn extracted fragments into stored patterns.

Each fragment of an ``ExtractedFragments`` bundle maps to exactly one
pattern type:

- sequential_deps     -> sequential-dep (one per dependency)
- parallel_successes  -> parallel-success (all collapsed into one pattern)
- accomplishment      -> accomplishment (key insight as description)
- decisions           -> decision
- risks               -> risk
- approaches          -> approach
- tools_used          -> tool-usage
- challenges          -> anti-pattern (resolution as description)

A pattern already in the store (same ID, or same semantic hash and type)
is re-observed instead of duplicated: its frequency grows by one and the
session is added to its examples.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ...brain.hippocampus import ConfidenceScorer, DecayScorer
from ...brain.neocortex import embed, extract_tags, semantic_hash
from ..exceptions import ValidationError
from ..identifiers import generate_pattern_id
from ..models import (
    MAX_EXAMPLES,
    ExtractedFragments,
    IngestResult,
    Pattern,
    PatternConfig,
    PatternType,
    Scope,
    SessionSummary,
)

if TYPE_CHECKING:
    from ...infra.locks import ScopeLockManager
    from ...infra.storage import ScopeStore, SessionStore

logger = logging.getLogger(__name__)

DEPENDENCY_ARROWS = ("→", "->")


def _before_step(dependency: str) -> str:
    for arrow in DEPENDENCY_ARROWS:
        if arrow in dependency:
            return dependency.split(arrow, 1)[0].strip() or dependency
    return dependency


def extract_patterns(
    scope: Scope,
    fragments: ExtractedFragments,
    session_id: str,
    observed_at: datetime,
    embedding_dimensions: int = 100,
) -> list[Pattern]:
    """Build new pattern records from a fragment bundle.

    Args:
        scope: Scope the fragments were observed in
        fragments: Extracted fragments
        session_id: Session that produced them
        observed_at: Observation timestamp
        embedding_dimensions: Width of the content embedding

    Returns:
        Patterns with frequency 1, in fragment order.
    """
    scope = Scope(scope)
    phase = scope.value
    success_rate = 1.0 if fragments.success_rate is None else fragments.success_rate

    def make(
        pattern_type: PatternType,
        content: str,
        description: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> Pattern:
        return Pattern(
            id=generate_pattern_id(scope, pattern_type, content),
            semantic_hash=semantic_hash(content),
            scope=scope,
            type=pattern_type,
            content=content,
            description=description or None,
            tags=extract_tags(scope, pattern_type, content),
            examples=[session_id],
            data=data or {},
            success_rate=success_rate,
            first_seen=observed_at,
            last_seen=observed_at,
            embedding=embed(content, embedding_dimensions),
        )

    patterns: list[Pattern] = []

    for dep in fragments.sequential_deps:
        patterns.append(
            make(
                PatternType.SEQUENTIAL_DEP,
                dep,
                data={
                    "before": _before_step(dep),
                    "after": phase,
                    "reasoning": f"Required before {phase} phase",
                },
            )
        )

    if fragments.parallel_successes:
        tasks = list(fragments.parallel_successes)
        patterns.append(
            make(
                PatternType.PARALLEL_SUCCESS,
                f"Parallel: {', '.join(tasks)}",
                data={
                    "tasks": tasks,
                    "speedup": fragments.parallel_tasks or 1,
                    "group_size": len(tasks),
                },
            )
        )

    if fragments.accomplishment:
        patterns.append(
            make(
                PatternType.ACCOMPLISHMENT,
                fragments.accomplishment,
                description=fragments.key_insight,
            )
        )

    for decision in fragments.decisions:
        patterns.append(
            make(
                PatternType.DECISION,
                decision.what,
                description=decision.why,
                data={
                    "what": decision.what,
                    "why": decision.why,
                    "alternatives": [],
                    "impact": decision.impact.value,
                },
            )
        )

    for risk in fragments.risks:
        patterns.append(
            make(
                PatternType.RISK,
                risk.description,
                data={"severity": risk.severity.value, "status": risk.status.value},
            )
        )

    for approach in fragments.approaches:
        patterns.append(
            make(
                PatternType.APPROACH,
                approach,
                data={
                    "methodology": approach,
                    "context": f"Used in {phase} phase",
                    "benefits": [],
                },
            )
        )

    for tool in fragments.tools_used:
        patterns.append(
            make(
                PatternType.TOOL_USAGE,
                f"{tool} usage in {phase}",
                data={
                    "tool": tool,
                    "usage": f"Used during {phase} phase",
                    "effectiveness": 1.0,
                },
            )
        )

    for challenge in fragments.challenges:
        description = (
            f"Resolution: {challenge.resolution}" if challenge.resolution else None
        )
        patterns.append(
            make(PatternType.ANTI_PATTERN, challenge.problem, description=description)
        )

    return patterns


def reobserve(existing: Pattern, observed: Pattern) -> Pattern:
    """Fold a fresh observation into an existing pattern.

    frequency + 1, latest last_seen, the observation's sessions appended to
    examples (the five most recent are kept), success rate averaged over
    all observations.
    """
    examples = [e for e in existing.examples if e not in observed.examples]
    examples.extend(observed.examples)

    tags = list(existing.tags)
    tags.extend(t for t in observed.tags if t not in tags)

    frequency = existing.frequency + 1
    success_rate = (
        existing.success_rate * existing.frequency + observed.success_rate
    ) / frequency

    return existing.model_copy(
        update={
            "frequency": frequency,
            "first_seen": min(existing.first_seen, observed.first_seen),
            "last_seen": max(existing.last_seen, observed.last_seen),
            "examples": examples[-MAX_EXAMPLES:],
            "tags": tags,
            "success_rate": min(1.0, max(0.0, success_rate)),
            "description": observed.description or existing.description,
            "data": {**existing.data, **observed.data},
            "embedding": existing.embedding or observed.embedding,
        }
    )


class PatternIngestor:
    """Records observations into the store of one scope at a time."""

    def __init__(
        self,
        store: ScopeStore,
        sessions: SessionStore,
        locks: ScopeLockManager,
    ) -> None:
        """Initialize the ingestor.

        Args:
            store: Per-scope pattern store
            sessions: Session summary store
            locks: Per-scope write locks
        """
        self._store = store
        self._sessions = sessions
        self._locks = locks

    def record(
        self,
        scope: Scope,
        fragments: ExtractedFragments,
        session_id: str,
        config: PatternConfig,
        now: datetime | None = None,
    ) -> IngestResult:
        """Ingest a fragment bundle for a scope.

        New patterns are appended; known ones are re-observed. Confidence
        and decay score of every touched pattern are refreshed so the store
        is immediately queryable. Deduplication, clustering and eviction
        happen later, in the evolution pipeline.

        Raises:
            ValidationError: If ``session_id`` is empty.
            ScopeLockedError: If another writer holds the scope or the
                session ledger.
        """
        scope = Scope(scope)
        if not session_id:
            raise ValidationError("session_id must not be empty")

        observed_at = fragments.completed_at or now or datetime.now(timezone.utc)
        if observed_at.tzinfo is None:
            observed_at = observed_at.replace(tzinfo=timezone.utc)
        reference = now or observed_at

        result = IngestResult(scope=scope, session_id=session_id)
        if fragments.is_empty():
            logger.info(f"No patterns extracted for scope '{scope.value}'")
            return result

        candidates = extract_patterns(
            scope, fragments, session_id, observed_at, config.embedding_dimensions
        )

        confidence = ConfidenceScorer()
        decay = DecayScorer(config.decay)

        # Scope lock first, then the shared session ledger
        with self._locks.hold(scope), self._locks.hold_sessions():
            patterns = self._store.load_patterns(scope)
            index = self._store.load_index(scope)
            positions = {p.id: i for i, p in enumerate(patterns)}

            touched: list[str] = []
            for candidate in candidates:
                position = positions.get(candidate.id)
                if position is None:
                    position = self._position_by_hash(
                        patterns, positions, index, candidate
                    )

                if position is None:
                    patterns.append(candidate)
                    position = len(patterns) - 1
                    positions[candidate.id] = position
                    result.added += 1
                else:
                    patterns[position] = reobserve(patterns[position], candidate)
                    result.merged += 1

                refreshed = patterns[position]
                refreshed = refreshed.model_copy(
                    update={
                        "confidence": confidence.compute_confidence(refreshed, reference),
                        "score": decay.compute_score(refreshed, reference),
                    }
                )
                patterns[position] = refreshed
                index.setdefault(refreshed.semantic_hash, refreshed.id)
                if refreshed.id not in touched:
                    touched.append(refreshed.id)

            self._store.save_scope(scope, patterns)
            self._record_session(session_id, scope, touched, observed_at)

        result.pattern_ids = touched
        logger.info(
            f"Recorded {len(candidates)} observations in scope '{scope.value}': "
            f"{result.added} new, {result.merged} re-observed"
        )
        return result

    @staticmethod
    def _position_by_hash(
        patterns: list[Pattern],
        positions: dict[str, int],
        index: dict[str, str],
        candidate: Pattern,
    ) -> int | None:
        """Find an existing pattern with the same fingerprint and type."""
        known_id = index.get(candidate.semantic_hash)
        if known_id is None or known_id not in positions:
            return None
        position = positions[known_id]
        if patterns[position].type != candidate.type:
            return None
        return position

    def _record_session(
        self,
        session_id: str,
        scope: Scope,
        pattern_ids: list[str],
        observed_at: datetime,
    ) -> None:
        existing = self._sessions.load(session_id)
        if existing is None:
            summary = SessionSummary(
                session_id=session_id,
                start_time=observed_at,
                end_time=observed_at,
                scopes=[scope],
                pattern_ids=pattern_ids,
                total_patterns=len(pattern_ids),
            )
        else:
            scopes = list(existing.scopes)
            if scope not in scopes:
                scopes.append(scope)
            ids = list(existing.pattern_ids)
            ids.extend(pid for pid in pattern_ids if pid not in ids)
            summary = existing.model_copy(
                update={
                    "start_time": min(existing.start_time, observed_at),
                    "end_time": max(existing.end_time, observed_at),
                    "scopes": scopes,
                    "pattern_ids": ids,
                    "total_patterns": len(ids),
                }
            )
        self._sessions.save(summary)
