"""Domain Services Package.

This package contains the business logic layer for Metacortex.

Main components:
- PatternService: Main service class (facade/coordinator)
- PatternIngestor: Turns extracted fragments into stored patterns
- EvolutionPipeline: Per-scope consolidation pipeline
- PatternQueryService: Read-only queries and recommendations
- PatternExporter: PATTERNS.md and JSON export
"""

from .evolution import EvolutionPipeline
from .export import PatternExporter, export_json, render_markdown
from .ingest import PatternIngestor, extract_patterns
from .patterns import PatternService
from .query import PatternFilter, PatternQueryService

__all__ = [
    "PatternService",
    "PatternIngestor",
    "EvolutionPipeline",
    "PatternQueryService",
    "PatternFilter",
    "PatternExporter",
    "extract_patterns",
    "render_markdown",
    "export_json",
]
