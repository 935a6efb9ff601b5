"""Unit tests for Markdown and JSON export."""

from __future__ import annotations

import json

import pytest

from metacortex.domain.models import ExportConfig, PatternType, Scope
from metacortex.domain.services import PatternExporter, render_markdown
from metacortex.domain.services.export import export_json
from metacortex.infra import ScopeStore


@pytest.fixture
def library(make_pattern):
    return [
        make_pattern(
            "Gather requirements before estimating",
            scope=Scope.PLANNING,
            pattern_type=PatternType.SEQUENTIAL_DEP,
            frequency=4,
            score=0.9,
            confidence=0.8,
        ),
        make_pattern(
            "Event sourcing for the audit log",
            scope=Scope.DESIGN,
            pattern_type=PatternType.DECISION,
            score=0.4,
        ),
        make_pattern(
            "Skipping code review on hotfixes",
            scope=Scope.OPERATION,
            pattern_type=PatternType.ANTI_PATTERN,
            frequency=2,
            score=0.2,
            description="Caused two regressions",
        ),
        make_pattern(
            "Deploying on Friday evenings",
            scope=Scope.OPERATION,
            pattern_type=PatternType.ANTI_PATTERN,
            frequency=6,
            score=0.3,
        ),
    ]


class TestRenderMarkdown:
    """Tests for the PATTERNS.md renderer."""

    def test_sections_in_order(self, library, now):
        report = render_markdown(library, generated_at=now)

        positions = [
            report.index(heading)
            for heading in [
                "# Pattern Library",
                "## Quick Reference (Top 10 by Score)",
                "## Planning Phase Patterns",
                "## Design Phase Patterns",
                "## Implementation Phase Patterns",
                "## Operation Phase Patterns",
                "## Anti-Patterns to Avoid",
            ]
        ]
        assert positions == sorted(positions)
        assert f"**Generated**: {now.isoformat()}" in report
        assert "**Total Patterns**: 4" in report

    def test_quick_reference_ranked_by_score(self, library, now):
        report = render_markdown(library, generated_at=now, quick_reference_size=2)

        assert "## Quick Reference (Top 2 by Score)" in report
        assert (
            "1. [planning] Gather requirements before estimating "
            "(4x, confidence: 80%)" in report
        )
        assert "2. [design] Event sourcing for the audit log" in report
        assert "3. [" not in report

    def test_type_headings(self, library, now):
        report = render_markdown(library, generated_at=now)

        assert "### Sequential Dependencies" in report
        assert "### Decisions" in report
        assert "### Approaches" not in report

    def test_anti_patterns_most_frequent_first(self, library, now):
        report = render_markdown(library, generated_at=now)
        section = report[report.index("## Anti-Patterns to Avoid") :]

        friday = section.index("- **Deploying on Friday evenings** (6x occurrences)")
        review = section.index("- **Skipping code review on hotfixes** (2x occurrences)")
        assert friday < review
        assert "  - Caused two regressions" in section

    def test_no_anti_pattern_section_without_anti_patterns(self, library, now):
        report = render_markdown(library[:2], generated_at=now)

        assert "## Anti-Patterns to Avoid" not in report

    def test_per_type_cap(self, make_pattern, now):
        patterns = [
            make_pattern(f"Approach number {i:02d}", score=i / 100) for i in range(25)
        ]

        report = render_markdown(patterns, generated_at=now, top_per_type=20)

        section = report[report.index("### Approaches") :]
        assert section.count("- **Approach number") == 20
        assert "Approach number 24" in section
        assert "- **Approach number 04**" not in section

    def test_deterministic(self, library, now):
        first = render_markdown(library, generated_at=now)
        second = render_markdown(list(reversed(library)), generated_at=now)

        assert first == second

    def test_empty_library(self, now):
        report = render_markdown([], generated_at=now)

        assert "**Total Patterns**: 0" in report
        assert "## Design Phase Patterns" in report


class TestExportJson:
    """Tests for JSON export."""

    def test_embeddings_omitted(self, library):
        data = json.loads(export_json(library))

        assert len(data) == 4
        assert all("embedding" not in item for item in data)
        assert data[0]["scope"] == "planning"

    def test_compact(self, library):
        assert "\n" not in export_json(library, pretty=False)


class TestPatternExporter:
    """Tests for writing the report from the store."""

    def test_export_markdown_writes_report(self, temp_data_dir, library, now):
        store = ScopeStore(temp_data_dir)
        for scope in Scope:
            store.save_scope(scope, [p for p in library if p.scope == scope])
        exporter = PatternExporter(store, temp_data_dir / "PATTERNS.md")

        path = exporter.export_markdown(ExportConfig(quick_reference_size=3), now=now)

        content = path.read_text(encoding="utf-8")
        assert content == render_markdown(
            store.load_all_patterns(), generated_at=now, quick_reference_size=3
        )

    def test_export_json_by_scope(self, temp_data_dir, library):
        store = ScopeStore(temp_data_dir)
        store.save_scope(Scope.OPERATION, library[2:])
        exporter = PatternExporter(store, temp_data_dir / "PATTERNS.md")

        data = json.loads(exporter.export_json(Scope.OPERATION))

        assert {item["type"] for item in data} == {"anti-pattern"}
        assert json.loads(exporter.export_json(Scope.DESIGN)) == []
