"""Pattern Service - Public entry point of the pattern lifecycle.

This is the main service class that coordinates pattern operations.
It delegates specialized logic to:
- PatternIngestor: Recording observations
- EvolutionPipeline: Confidence, decay, deduplication, clustering, eviction
- PatternQueryService: Read-only queries and recommendations
- PatternExporter: PATTERNS.md and JSON export
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from ...brain.neocortex import Deduplicator
from ..models import (
    DependencyValidationResult,
    EvictionPreview,
    EvolutionResult,
    ExtractedFragments,
    IngestResult,
    Pattern,
    PatternConfig,
    Scope,
    SessionSummary,
    StoreStats,
)
from .evolution import EvolutionPipeline
from .export import PatternExporter
from .ingest import PatternIngestor
from .query import DependencyChecker, PatternFilter, PatternQueryService

if TYPE_CHECKING:
    from ...infra.locks import ScopeLockManager
    from ...infra.storage import ScopeStore, SessionStore

logger = logging.getLogger(__name__)


class PatternService:
    """Facade over ingestion, evolution, queries and export.

    The configuration is fixed for the lifetime of a service instance.
    To pick up a changed configuration, build a new service (see
    ``Container.reload_pattern_config``).
    """

    def __init__(
        self,
        store: ScopeStore,
        sessions: SessionStore,
        locks: ScopeLockManager,
        config: PatternConfig,
        report_path: Path,
    ) -> None:
        """Initialize the service.

        Args:
            store: Per-scope pattern store.
            sessions: Session summary store.
            locks: Per-scope write locks.
            config: Pattern lifecycle configuration.
            report_path: Location of the generated PATTERNS.md.
        """
        self._store = store
        self._sessions = sessions
        self.config = config

        self._ingestor = PatternIngestor(store=store, sessions=sessions, locks=locks)
        self._pipeline = EvolutionPipeline(store=store, locks=locks)
        self._query = PatternQueryService(store=store)
        self._exporter = PatternExporter(store=store, report_path=report_path)

    # =========================================================================
    # Write path
    # =========================================================================

    def record_observation(
        self,
        scope: Scope,
        fragments: ExtractedFragments,
        session_id: str,
        now: datetime | None = None,
    ) -> IngestResult:
        """Ingest extracted fragments for a scope.

        Args:
            scope: Scope the fragments were observed in.
            fragments: Extracted fragments.
            session_id: Session that produced them.
            now: Reference time (default: current UTC time).

        Returns:
            Counts of new and re-observed patterns.
        """
        return self._ingestor.record(
            Scope(scope), fragments, session_id, self.config, now=now
        )

    def run_evolution(
        self, scope: Scope, now: datetime | None = None
    ) -> EvolutionResult:
        """Run the evolution pipeline on one scope.

        The report is regenerated afterwards when auto-generation is on and
        the scope was not empty.
        """
        result = self._pipeline.run(Scope(scope), self.config, now=now)
        if not result.skipped and self.config.export.auto_generate_markdown:
            self.export_markdown(now=now)
        return result

    def run_evolution_all_scopes(
        self, now: datetime | None = None
    ) -> list[EvolutionResult]:
        """Run the pipeline on every scope, in scope order.

        The report is regenerated once, after the last scope.
        """
        results = [self._pipeline.run(scope, self.config, now=now) for scope in Scope]
        evolved = [r for r in results if not r.skipped]
        if evolved and self.config.export.auto_generate_markdown:
            self.export_markdown(now=now)
        logger.info(f"Evolved {len(evolved)} of {len(results)} scopes")
        return results

    def export_markdown(self, now: datetime | None = None) -> Path:
        """Regenerate PATTERNS.md from the store."""
        return self._exporter.export_markdown(self.config.export, now=now)

    # =========================================================================
    # Read path
    # =========================================================================

    def query_patterns(self, criteria: PatternFilter | None = None) -> list[Pattern]:
        return self._query.query(criteria)

    def search(self, text: str, scope: Scope | None = None) -> list[Pattern]:
        return self._query.search(text, scope=scope)

    def get_pattern(self, pattern_id: str) -> Pattern:
        return self._query.get(pattern_id)

    def top_patterns(self, n: int = 10, scope: Scope | None = None) -> list[Pattern]:
        return self._query.top(n, scope=scope)

    def recommend(self, scope: Scope, limit: int = 10) -> list[Pattern]:
        return self._query.recommend(scope, limit=limit)

    def anti_patterns(self, scope: Scope | None = None) -> list[Pattern]:
        return self._query.anti_patterns(scope)

    def safe_parallel_patterns(self, scope: Scope | None = None) -> list[Pattern]:
        return self._query.safe_parallel_patterns(scope)

    def validate_dependencies(
        self, scope: Scope, checker: DependencyChecker | None = None
    ) -> DependencyValidationResult:
        return self._query.validate_dependencies(scope, checker)

    def find_related(self, pattern_id: str) -> list[Pattern]:
        return self._query.find_related(pattern_id)

    def get_eviction_preview(
        self, scope: Scope, now: datetime | None = None
    ) -> EvictionPreview:
        """What the next evolution run would evict (no side effects)."""
        return self._pipeline.preview_eviction(Scope(scope), self.config, now=now)

    def find_duplicates(self, scope: Scope) -> list[list[str]]:
        """Groups of pattern IDs the next run would merge, for analysis."""
        deduplicator = Deduplicator(self.config.deduplication.similarity_threshold)
        groups = deduplicator.find_duplicates(self._store.load_patterns(Scope(scope)))
        return [[p.id for p in group] for group in groups]

    def export_json(self, scope: Scope | None = None, pretty: bool = True) -> str:
        return self._exporter.export_json(scope, pretty=pretty)

    def stats(self) -> StoreStats:
        return self._query.stats()

    def list_sessions(self) -> list[SessionSummary]:
        """Recorded sessions, newest first."""
        return self._sessions.list_all()
