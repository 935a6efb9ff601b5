"""Pytest fixtures for Metacortex tests."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from metacortex.brain.neocortex import embed, extract_tags, semantic_hash
from metacortex.config import Config, reset_config
from metacortex.container import Container, reset_container
from metacortex.domain.identifiers import generate_pattern_id
from metacortex.domain.models import Pattern, PatternType, Scope

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary data directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_data_dir: Path) -> Generator[Config, None, None]:
    """Create a test configuration."""
    config = Config(data_dir=temp_data_dir, lock_timeout=0.5)
    yield config


@pytest.fixture
def container(test_config: Config) -> Generator[Container, None, None]:
    """Create a test container with isolated dependencies."""
    # Reset any global state
    reset_config()
    reset_container()

    container = Container.create(test_config)
    yield container

    # Cleanup
    container.close()
    reset_container()
    reset_config()


@pytest.fixture(autouse=True)
def set_test_env(temp_data_dir: Path) -> Generator[None, None, None]:
    """Set environment variables for tests."""
    old_env = os.environ.get("METACORTEX_DATA_DIR")
    os.environ["METACORTEX_DATA_DIR"] = str(temp_data_dir)
    yield
    if old_env:
        os.environ["METACORTEX_DATA_DIR"] = old_env
    else:
        os.environ.pop("METACORTEX_DATA_DIR", None)


@pytest.fixture
def now() -> datetime:
    """A fixed reference time."""
    return FIXED_NOW


@pytest.fixture
def make_pattern(now: datetime) -> Callable[..., Pattern]:
    """Factory for patterns observed ``age_days`` before ``now``."""

    def _make(
        content: str = "Run database migrations before seeding fixtures",
        scope: Scope = Scope.IMPLEMENTATION,
        pattern_type: PatternType = PatternType.APPROACH,
        frequency: int = 1,
        success_rate: float = 1.0,
        age_days: float = 0.0,
        first_seen_days: float | None = None,
        with_embedding: bool = True,
        **overrides: Any,
    ) -> Pattern:
        last_seen = now - timedelta(days=age_days)
        first_seen = now - timedelta(
            days=age_days if first_seen_days is None else first_seen_days
        )
        fields: dict[str, Any] = {
            "id": generate_pattern_id(scope, pattern_type, content),
            "semantic_hash": semantic_hash(content),
            "scope": scope,
            "type": pattern_type,
            "content": content,
            "tags": extract_tags(scope, pattern_type, content),
            "examples": ["session-1"],
            "frequency": frequency,
            "success_rate": success_rate,
            "first_seen": first_seen,
            "last_seen": last_seen,
            "embedding": embed(content) if with_embedding else None,
        }
        fields.update(overrides)
        return Pattern(**fields)

    return _make
