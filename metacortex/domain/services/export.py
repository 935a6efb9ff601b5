"""Export - Render stored patterns as Markdown or JSON.

The Markdown report (PATTERNS.md) is derived data: it is rewritten
wholesale from the store and never edited by hand. Rendering is
deterministic for a given pattern set and timestamp.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from ..models import ExportConfig, Pattern, PatternType, Scope
from .query import rank

if TYPE_CHECKING:
    from ...infra.storage import ScopeStore

logger = logging.getLogger(__name__)

REPORT_TITLE = "# Pattern Library"

TYPE_HEADINGS: dict[PatternType, str] = {
    PatternType.SEQUENTIAL_DEP: "Sequential Dependencies",
    PatternType.PARALLEL_SUCCESS: "Parallel Execution Successes",
    PatternType.ACCOMPLISHMENT: "Accomplishments",
    PatternType.RISK: "Risks",
    PatternType.DECISION: "Decisions",
    PatternType.APPROACH: "Approaches",
    PatternType.TOOL_USAGE: "Tool Usage",
    PatternType.ANTI_PATTERN: "Anti-Patterns",
}


def _percent(value: float) -> str:
    return f"{value * 100:.0f}%"


def render_markdown(
    patterns: Sequence[Pattern],
    generated_at: datetime,
    top_per_type: int = 20,
    quick_reference_size: int = 10,
) -> str:
    """Render the pattern library report.

    Sections, in order:
    1. Header with generation time and total count
    2. Quick reference: top patterns overall by score
    3. One section per scope, broken down by type (capped per type)
    4. Anti-patterns to avoid, most frequent first
    """
    lines: list[str] = [
        REPORT_TITLE,
        "",
        f"**Generated**: {generated_at.isoformat()}",
        f"**Total Patterns**: {len(patterns)}",
        "",
        f"## Quick Reference (Top {quick_reference_size} by Score)",
        "",
    ]

    for i, p in enumerate(rank(patterns)[:quick_reference_size], start=1):
        lines.append(
            f"{i}. [{p.scope.value}] {p.content} "
            f"({p.frequency}x, confidence: {_percent(p.confidence)})"
        )
    lines.append("")

    for scope in Scope:
        lines.append(f"## {scope.value.capitalize()} Phase Patterns")
        lines.append("")
        scoped = [p for p in patterns if p.scope == scope]
        for pattern_type in PatternType:
            typed = [p for p in scoped if p.type == pattern_type]
            if not typed:
                continue
            lines.append(f"### {TYPE_HEADINGS[pattern_type]}")
            lines.append("")
            for p in rank(typed)[:top_per_type]:
                lines.append(f"- **{p.content}**")
                lines.append(f"  - Frequency: {p.frequency}x")
                lines.append(f"  - Confidence: {_percent(p.confidence)}")
                lines.append(f"  - Last seen: {p.last_seen.date().isoformat()}")
                if p.description:
                    lines.append(f"  - {p.description}")
                lines.append("")

    anti_patterns = sorted(
        (p for p in patterns if p.type == PatternType.ANTI_PATTERN),
        key=lambda p: (-p.frequency, p.id),
    )
    if anti_patterns:
        lines.append("## Anti-Patterns to Avoid")
        lines.append("")
        for p in anti_patterns:
            lines.append(f"- **{p.content}** ({p.frequency}x occurrences)")
            if p.description:
                lines.append(f"  - {p.description}")
            lines.append("")

    return "\n".join(lines)


def export_json(patterns: Sequence[Pattern], pretty: bool = True) -> str:
    """Serialize patterns for external consumers (embeddings omitted)."""
    return json.dumps(
        [p.to_export_dict() for p in patterns],
        indent=2 if pretty else None,
        ensure_ascii=False,
    )


class PatternExporter:
    """Writes the Markdown report from the current store contents."""

    def __init__(self, store: ScopeStore, report_path: Path) -> None:
        self._store = store
        self.report_path = Path(report_path)

    def export_markdown(
        self,
        config: ExportConfig | None = None,
        now: datetime | None = None,
    ) -> Path:
        """Regenerate PATTERNS.md atomically.

        Returns:
            Path of the written report.
        """
        from ...infra.storage import atomic_write_text

        config = config or ExportConfig()
        now = now or datetime.now(timezone.utc)
        patterns = self._store.load_all_patterns()
        content = render_markdown(
            patterns,
            generated_at=now,
            top_per_type=config.top_per_type,
            quick_reference_size=config.quick_reference_size,
        )
        atomic_write_text(self.report_path, content)
        logger.info(f"Wrote {len(patterns)} patterns to {self.report_path}")
        return self.report_path

    def export_json(self, scope: Scope | None = None, pretty: bool = True) -> str:
        patterns = (
            self._store.load_all_patterns()
            if scope is None
            else self._store.load_patterns(Scope(scope))
        )
        return export_json(patterns, pretty=pretty)
