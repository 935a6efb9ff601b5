"""Evolution Pipeline - Consolidate the patterns of one scope.

Fixed linear order per scope:

    Load -> Recompute Confidence -> Apply Decay -> Deduplicate
         -> Cluster -> Evict -> Persist

Every stage consumes the full output of the previous one. A disabled
stage (deduplication, clustering) is still entered and passes its input
through unchanged. The whole run holds the scope lock, so two runs on the
same scope never interleave. Nothing is written unless every stage
succeeded; a failed write propagates and is not retried.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ...brain.hippocampus import ConfidenceScorer, DecayScorer, Evictor
from ...brain.neocortex import Clusterer, Deduplicator
from ..models import (
    Cluster,
    EvictionPreview,
    EvolutionResult,
    Pattern,
    PatternConfig,
    Scope,
)

if TYPE_CHECKING:
    from ...infra.locks import ScopeLockManager
    from ...infra.storage import ScopeStore

logger = logging.getLogger(__name__)


class EvolutionPipeline:
    """Runs the consolidation stages for a scope."""

    def __init__(self, store: ScopeStore, locks: ScopeLockManager) -> None:
        """Initialize the pipeline.

        Args:
            store: Per-scope pattern store
            locks: Per-scope write locks
        """
        self._store = store
        self._locks = locks

    def run(
        self,
        scope: Scope,
        config: PatternConfig,
        now: datetime | None = None,
    ) -> EvolutionResult:
        """Run the pipeline on one scope.

        Args:
            scope: Scope to evolve
            config: Configuration for this run
            now: Reference time (default: current UTC time)

        Returns:
            Counts for each stage. ``skipped`` is True for an empty scope,
            in which case nothing is written.

        Raises:
            CorruptStoreError: If stored files cannot be parsed.
            StorageError: If persisting the result fails.
            ScopeLockedError: If another writer holds the scope.
        """
        scope = Scope(scope)
        now = now or datetime.now(timezone.utc)

        with self._locks.hold(scope):
            # Load
            patterns = self._store.load_patterns(scope)
            if not patterns:
                logger.info(f"Scope '{scope.value}' is empty, skipping evolution")
                return EvolutionResult(scope=scope, skipped=True)
            stored_clusters = self._store.load_clusters(scope)
            before = len(patterns)
            logger.info(f"Evolving scope '{scope.value}': {before} patterns")

            patterns, clusters = self._consolidate(
                scope, patterns, stored_clusters, config, now
            )
            merged = before - len(patterns)

            # Evict
            evictor = Evictor(
                config.capacity, config.eviction, DecayScorer(config.decay)
            )
            patterns, eviction = evictor.evict(scope, patterns, now, clusters)
            if eviction.evicted:
                clusterer = Clusterer(config.clustering.similarity_threshold)
                clusters = clusterer.prune(clusters, patterns)
                patterns = Clusterer.assign_cluster_ids(patterns, clusters)

            # Persist
            self._store.save_scope(scope, patterns, clusters)

        result = EvolutionResult(
            scope=scope,
            patterns_before=before,
            patterns_after=len(patterns),
            merged=merged,
            clusters=len(clusters),
            evicted=eviction.evicted_count,
            capacity_exceeded=eviction.capacity_exceeded,
        )
        logger.info(
            f"Scope '{scope.value}' evolved: {before} -> {len(patterns)} patterns "
            f"({merged} merged, {eviction.evicted_count} evicted, "
            f"{len(clusters)} clusters)"
        )
        return result

    def preview_eviction(
        self,
        scope: Scope,
        config: PatternConfig,
        now: datetime | None = None,
    ) -> EvictionPreview:
        """Report what eviction in the next run would remove.

        The stages before eviction run in memory exactly as in ``run``, so
        duplicates that the run would merge are never reported as evicted.
        Read-only: nothing is written and no lock is taken.
        """
        scope = Scope(scope)
        now = now or datetime.now(timezone.utc)
        evictor = Evictor(config.capacity, config.eviction, DecayScorer(config.decay))
        patterns = self._store.load_patterns(scope)
        if not patterns:
            return evictor.preview(scope, [], now)

        patterns, clusters = self._consolidate(
            scope, patterns, self._store.load_clusters(scope), config, now
        )
        return evictor.preview(scope, patterns, now, clusters)

    def _consolidate(
        self,
        scope: Scope,
        patterns: list[Pattern],
        stored_clusters: list[Cluster],
        config: PatternConfig,
        now: datetime,
    ) -> tuple[list[Pattern], list[Cluster]]:
        """Confidence, decay, deduplication and clustering, in memory."""
        # Recompute confidence
        patterns = ConfidenceScorer().apply(patterns, now)

        # Apply decay
        patterns = DecayScorer(config.decay).apply(patterns, now)

        # Deduplicate
        patterns = self._deduplicate(patterns, config)

        # Cluster
        return self._cluster(scope, patterns, stored_clusters, config)

    @staticmethod
    def _deduplicate(patterns: list[Pattern], config: PatternConfig) -> list[Pattern]:
        if not config.deduplication.enabled:
            logger.debug("Deduplication disabled, passing patterns through")
            return patterns
        deduplicator = Deduplicator(config.deduplication.similarity_threshold)
        return deduplicator.deduplicate(patterns)

    @staticmethod
    def _cluster(
        scope: Scope,
        patterns: list[Pattern],
        stored_clusters: list[Cluster],
        config: PatternConfig,
    ) -> tuple[list[Pattern], list[Cluster]]:
        clusterer = Clusterer(
            config.clustering.similarity_threshold,
            max_clusters=config.capacity.max_clusters_per_scope,
        )
        if config.clustering.enabled:
            clusters = clusterer.cluster(scope, patterns)
        else:
            logger.debug("Clustering disabled, keeping stored clusters")
            # Membership still has to follow deduplication
            clusters = clusterer.prune(stored_clusters, patterns)
        return Clusterer.assign_cluster_ids(patterns, clusters), clusters
