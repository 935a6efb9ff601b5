"""Unit tests for the JSON store, config store and scope locks."""

from __future__ import annotations

import json
import os
from datetime import timedelta

import pytest

from metacortex.domain.exceptions import (
    ConfigurationError,
    CorruptStoreError,
    ScopeLockedError,
    StorageError,
)
from metacortex.domain.models import (
    Cluster,
    PatternConfig,
    PatternType,
    Scope,
    SessionSummary,
)
from metacortex.infra import ConfigStore, ScopeLockManager, ScopeStore, SessionStore
from metacortex.infra.storage import atomic_write_text, build_index


@pytest.fixture
def store(temp_data_dir):
    return ScopeStore(temp_data_dir)


class TestAtomicWrite:
    """Tests for atomic file replacement."""

    def test_writes_and_creates_parents(self, temp_data_dir):
        path = temp_data_dir / "nested" / "dir" / "file.txt"
        atomic_write_text(path, "hello")

        assert path.read_text(encoding="utf-8") == "hello"

    def test_failure_keeps_previous_content(self, temp_data_dir, monkeypatch):
        path = temp_data_dir / "file.txt"
        atomic_write_text(path, "original")

        def failing_replace(src, dst):
            raise OSError("No space left on device")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(StorageError) as exc_info:
            atomic_write_text(path, "replacement")

        assert "No space left" in str(exc_info.value)
        assert path.read_text(encoding="utf-8") == "original"
        assert list(temp_data_dir.glob("*.tmp")) == []
        assert list(temp_data_dir.glob(".*.tmp")) == []


class TestScopeStore:
    """Tests for per-scope persistence."""

    def test_missing_files_read_as_empty(self, store):
        assert store.load_patterns(Scope.DESIGN) == []
        assert store.load_clusters(Scope.DESIGN) == []
        assert store.load_index(Scope.DESIGN) == {}

    def test_save_and_load_scope(self, store, make_pattern):
        patterns = [
            make_pattern("Write integration tests first", frequency=3),
            make_pattern("Profile before optimizing hot paths", age_days=4),
        ]
        cluster = Cluster(
            id="cluster-1",
            scope=Scope.IMPLEMENTATION,
            pattern_ids=[p.id for p in patterns],
            representative_id=patterns[0].id,
        )

        store.save_scope(Scope.IMPLEMENTATION, patterns, [cluster])

        assert store.load_patterns(Scope.IMPLEMENTATION) == patterns
        assert store.load_clusters(Scope.IMPLEMENTATION) == [cluster]
        assert store.load_index(Scope.IMPLEMENTATION) == {
            p.semantic_hash: p.id for p in patterns
        }

    def test_embedding_survives_round_trip(self, store, make_pattern):
        pattern = make_pattern()
        store.save_patterns(Scope.IMPLEMENTATION, [pattern])

        loaded = store.load_patterns(Scope.IMPLEMENTATION)[0]
        assert loaded.embedding == pattern.embedding
        assert len(loaded.embedding) == 100

    def test_save_scope_without_clusters_keeps_stored_clusters(
        self, store, make_pattern
    ):
        pattern = make_pattern()
        cluster = Cluster(
            id="cluster-1",
            scope=Scope.IMPLEMENTATION,
            pattern_ids=[pattern.id],
            representative_id=pattern.id,
        )
        store.save_scope(Scope.IMPLEMENTATION, [pattern], [cluster])
        store.save_scope(Scope.IMPLEMENTATION, [pattern])

        assert store.load_clusters(Scope.IMPLEMENTATION) == [cluster]

    def test_scopes_are_independent(self, store, make_pattern):
        store.save_scope(Scope.DESIGN, [make_pattern(scope=Scope.DESIGN)])

        assert store.load_patterns(Scope.OPERATION) == []
        assert len(store.load_all_patterns()) == 1

    def test_invalid_json_raises(self, store):
        path = store.patterns_path(Scope.DESIGN)
        path.parent.mkdir(parents=True)
        path.write_text("[{not json", encoding="utf-8")

        with pytest.raises(CorruptStoreError) as exc_info:
            store.load_patterns(Scope.DESIGN)

        assert exc_info.value.path == path

    def test_schema_mismatch_raises(self, store):
        path = store.patterns_path(Scope.DESIGN)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps([{"id": "only-an-id"}]), encoding="utf-8")

        with pytest.raises(CorruptStoreError, match="schema mismatch"):
            store.load_patterns(Scope.DESIGN)

    def test_foreign_scope_raises(self, store, make_pattern):
        pattern = make_pattern(scope=Scope.PLANNING)
        path = store.patterns_path(Scope.DESIGN)
        path.parent.mkdir(parents=True)
        path.write_text(
            json.dumps([pattern.model_dump(mode="json")]), encoding="utf-8"
        )

        with pytest.raises(CorruptStoreError, match="another scope"):
            store.load_patterns(Scope.DESIGN)

    def test_corrupt_index_raises(self, store):
        path = store.index_path(Scope.DESIGN)
        path.parent.mkdir(parents=True)
        path.write_text("", encoding="utf-8")

        with pytest.raises(CorruptStoreError):
            store.load_index(Scope.DESIGN)

    def test_build_index_first_wins(self, make_pattern):
        first = make_pattern("Write integration tests first")
        second = make_pattern(
            "Write integration tests first", pattern_type=PatternType.DECISION
        )
        assert first.semantic_hash == second.semantic_hash

        assert build_index([first, second]) == {first.semantic_hash: first.id}


class TestSessionStore:
    """Tests for the bounded session store."""

    def _summary(self, now, index):
        start = now + timedelta(minutes=index)
        return SessionSummary(
            session_id=f"session-{index:02d}",
            start_time=start,
            end_time=start,
            scopes=[Scope.DESIGN],
        )

    def test_save_and_load(self, temp_data_dir, now):
        sessions = SessionStore(temp_data_dir / "sessions")
        summary = self._summary(now, 1)
        sessions.save(summary)

        assert sessions.load("session-01") == summary
        assert sessions.load("missing") is None

    def test_oldest_sessions_evicted(self, temp_data_dir, now):
        sessions = SessionStore(temp_data_dir / "sessions", max_files=3)
        evicted = []
        for i in range(5):
            evicted.extend(sessions.save(self._summary(now, i)))

        assert evicted == ["session-00", "session-01"]
        assert [s.session_id for s in sessions.list_all()] == [
            "session-04",
            "session-03",
            "session-02",
        ]

    def test_list_empty(self, temp_data_dir):
        assert SessionStore(temp_data_dir / "sessions").list_all() == []


class TestConfigStore:
    """Tests for configuration persistence."""

    def test_load_creates_default(self, temp_data_dir):
        config_store = ConfigStore(temp_data_dir / "config.json")

        config = config_store.load()

        assert config == PatternConfig()
        assert (temp_data_dir / "config.json").exists()

    def test_update_persists(self, temp_data_dir):
        config_store = ConfigStore(temp_data_dir / "config.json")

        updated = config_store.update(decay={"half_life_days": 30})

        assert updated.decay.half_life_days == 30
        assert ConfigStore(temp_data_dir / "config.json").load() == updated

    def test_invalid_update_rejected(self, temp_data_dir):
        config_store = ConfigStore(temp_data_dir / "config.json")

        with pytest.raises(ConfigurationError, match="half_life_days"):
            config_store.update(decay={"half_life_days": 0})

        assert config_store.load().decay.half_life_days == 90

    def test_invalid_file_rejected(self, temp_data_dir):
        path = temp_data_dir / "config.json"
        path.write_text(json.dumps({"decay": {"half_life_days": -1}}))

        with pytest.raises(ConfigurationError):
            ConfigStore(path).load()

    def test_reset(self, temp_data_dir):
        config_store = ConfigStore(temp_data_dir / "config.json")
        config_store.update(embedding_dimensions=50)

        assert config_store.reset() == PatternConfig()
        assert config_store.load().embedding_dimensions == 100


class TestScopeLocks:
    """Tests for per-scope file locks."""

    def test_reentrant_within_manager(self, temp_data_dir):
        locks = ScopeLockManager(temp_data_dir, timeout=0.1)

        with locks.hold(Scope.DESIGN):
            with locks.hold(Scope.DESIGN):
                pass

    def test_second_writer_times_out(self, temp_data_dir):
        first = ScopeLockManager(temp_data_dir, timeout=0.1)
        second = ScopeLockManager(temp_data_dir, timeout=0.1)

        with first.hold(Scope.DESIGN):
            with pytest.raises(ScopeLockedError) as exc_info:
                with second.hold(Scope.DESIGN):
                    pass

        assert exc_info.value.scope == "design"

    def test_scopes_lock_independently(self, temp_data_dir):
        first = ScopeLockManager(temp_data_dir, timeout=0.1)
        second = ScopeLockManager(temp_data_dir, timeout=0.1)

        with first.hold(Scope.DESIGN):
            with second.hold(Scope.PLANNING):
                pass

    def test_lock_released_after_block(self, temp_data_dir):
        first = ScopeLockManager(temp_data_dir, timeout=0.1)
        second = ScopeLockManager(temp_data_dir, timeout=0.1)

        with first.hold(Scope.DESIGN):
            pass
        with second.hold(Scope.DESIGN):
            pass

    def test_session_ledger_lock_blocks_second_writer(self, temp_data_dir):
        first = ScopeLockManager(temp_data_dir, timeout=0.1)
        second = ScopeLockManager(temp_data_dir, timeout=0.1)

        with first.hold_sessions():
            with pytest.raises(ScopeLockedError) as exc_info:
                with second.hold_sessions():
                    pass

        assert exc_info.value.scope == "sessions"
        assert first.sessions_lock_path() == temp_data_dir / "sessions" / ".lock"

    def test_session_ledger_lock_independent_of_scopes(self, temp_data_dir):
        first = ScopeLockManager(temp_data_dir, timeout=0.1)
        second = ScopeLockManager(temp_data_dir, timeout=0.1)

        with first.hold(Scope.DESIGN):
            with second.hold_sessions():
                pass
