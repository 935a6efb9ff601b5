"""Integration tests for the command line interface."""

from __future__ import annotations

import json

import pytest

from metacortex.config import reset_config
from metacortex.container import reset_container
from metacortex.main import main

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def fresh_container():
    """The CLI builds its container from METACORTEX_DATA_DIR."""
    reset_config()
    reset_container()
    yield
    reset_container()
    reset_config()


def run_cli(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


@pytest.fixture
def fragments_file(temp_data_dir):
    path = temp_data_dir / "fragments.json"
    path.write_text(
        json.dumps(
            {
                "approaches": ["Contract-first API design"],
                "tools_used": ["pytest"],
                "completed_at": "2026-01-15T12:00:00Z",
            }
        ),
        encoding="utf-8",
    )
    return path


class TestCli:
    """Tests for the metacortex command."""

    def test_stats_on_empty_store(self, capsys):
        assert run_cli(["stats"]) == 0

        stats = json.loads(capsys.readouterr().out)
        assert stats["total_patterns"] == 0

    def test_record_query_and_evolve(self, capsys, fragments_file, temp_data_dir):
        code = run_cli(
            [
                "record",
                "--scope",
                "design",
                "--session",
                "cli-1",
                "--file",
                str(fragments_file),
            ]
        )
        assert code == 0
        recorded = json.loads(capsys.readouterr().out)
        assert recorded["added"] == 2

        assert run_cli(["query", "--scope", "design", "--type", "approach"]) == 0
        results = json.loads(capsys.readouterr().out)
        assert [r["content"] for r in results] == ["Contract-first API design"]
        assert "embedding" not in results[0]

        assert run_cli(["evolve", "--scope", "design"]) == 0
        [evolved] = json.loads(capsys.readouterr().out)
        assert evolved["patterns_after"] == 2
        assert (temp_data_dir / "PATTERNS.md").exists()

        assert run_cli(["sessions"]) == 0
        [session] = json.loads(capsys.readouterr().out)
        assert session["session_id"] == "cli-1"

    def test_preview(self, capsys):
        assert run_cli(["preview", "--scope", "operation"]) == 0

        preview = json.loads(capsys.readouterr().out)
        assert preview["current"] == 0
        assert preview["would_evict"] == []

    def test_corrupt_store_exits_with_error(self, temp_data_dir):
        path = temp_data_dir / "design" / "patterns.json"
        path.parent.mkdir(parents=True)
        path.write_text("not json", encoding="utf-8")

        assert run_cli(["stats"]) == 1

    def test_invalid_fragments_exit_with_usage_error(self, temp_data_dir):
        path = temp_data_dir / "bad.json"
        path.write_text(json.dumps({"success_rate": 3}), encoding="utf-8")

        assert run_cli(["record", "--scope", "design", "--file", str(path)]) == 2

    def test_unknown_scope_rejected(self):
        assert run_cli(["preview", "--scope", "nowhere"]) == 2
