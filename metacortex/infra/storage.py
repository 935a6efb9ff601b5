"""JSON-backed pattern store.

Layout under the data directory:

    <scope>/patterns.json   array of Pattern records
    <scope>/clusters.json   array of Cluster records
    <scope>/index.json      semantic hash -> pattern ID
    sessions/<id>.json      session summaries (FIFO, bounded)

Every write replaces the target atomically, so readers never observe a
partially written file. A missing file reads as empty state; a file that is
present but cannot be parsed raises ``CorruptStoreError``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import CorruptStoreError, StorageError
from ..domain.models import Cluster, Pattern, Scope, SessionSummary

logger = logging.getLogger(__name__)

PATTERNS_FILE = "patterns.json"
CLUSTERS_FILE = "clusters.json"
INDEX_FILE = "index.json"
SESSIONS_DIR = "sessions"

_patterns_adapter = TypeAdapter(list[Pattern])
_clusters_adapter = TypeAdapter(list[Cluster])
_index_adapter = TypeAdapter(dict[str, str])


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` atomically.

    1. Write to a temp file in the same directory
    2. fsync so data is on disk before the rename
    3. Replace the target (atomic on the same filesystem)

    The temp file is removed if any step fails.

    Raises:
        StorageError: On any OS-level failure.
    """
    path = Path(path)
    temp_path: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as tf:
            tf.write(text)
            tf.flush()
            os.fsync(tf.fileno())
        os.replace(temp_path, path)
        temp_path = None
    except OSError as e:
        raise StorageError(path, str(e)) from e
    finally:
        if temp_path is not None and os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError:
                logger.warning(f"Could not remove temp file {temp_path}")


def write_json(path: Path, data: Any) -> None:
    """Pretty-print ``data`` as JSON and write it atomically."""
    atomic_write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def read_json(path: Path) -> Any | None:
    """Read a JSON file.

    Returns:
        Parsed data, or None if the file does not exist.

    Raises:
        CorruptStoreError: If the file exists but is not valid JSON.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise CorruptStoreError(path, f"unreadable: {e}") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptStoreError(path, f"invalid JSON: {e}") from e


def _validate(adapter: TypeAdapter, path: Path, data: Any) -> Any:
    try:
        return adapter.validate_python(data)
    except PydanticValidationError as e:
        raise CorruptStoreError(
            path, f"schema mismatch ({e.error_count()} errors)"
        ) from e


def build_index(patterns: Iterable[Pattern]) -> dict[str, str]:
    """Map semantic hash to pattern ID (first pattern wins on collisions)."""
    index: dict[str, str] = {}
    for pattern in patterns:
        index.setdefault(pattern.semantic_hash, pattern.id)
    return index


class ScopeStore:
    """Per-scope persistence of patterns, clusters and the semantic index.

    Scopes never share files, so each scope is an independent unit of
    persistence.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def scope_dir(self, scope: Scope) -> Path:
        return self.data_dir / Scope(scope).value

    def patterns_path(self, scope: Scope) -> Path:
        return self.scope_dir(scope) / PATTERNS_FILE

    def clusters_path(self, scope: Scope) -> Path:
        return self.scope_dir(scope) / CLUSTERS_FILE

    def index_path(self, scope: Scope) -> Path:
        return self.scope_dir(scope) / INDEX_FILE

    # --- reads ---

    def load_patterns(self, scope: Scope) -> list[Pattern]:
        path = self.patterns_path(scope)
        data = read_json(path)
        if data is None:
            return []
        patterns = _validate(_patterns_adapter, path, data)
        foreign = [p.id for p in patterns if p.scope != Scope(scope)]
        if foreign:
            raise CorruptStoreError(
                path, f"contains patterns of another scope: {foreign[0]}"
            )
        return patterns

    def load_clusters(self, scope: Scope) -> list[Cluster]:
        path = self.clusters_path(scope)
        data = read_json(path)
        if data is None:
            return []
        return _validate(_clusters_adapter, path, data)

    def load_index(self, scope: Scope) -> dict[str, str]:
        path = self.index_path(scope)
        data = read_json(path)
        if data is None:
            return {}
        return _validate(_index_adapter, path, data)

    def load_all_patterns(self) -> list[Pattern]:
        """Patterns of every scope, in scope order."""
        patterns: list[Pattern] = []
        for scope in Scope:
            patterns.extend(self.load_patterns(scope))
        return patterns

    def load_all_clusters(self) -> list[Cluster]:
        clusters: list[Cluster] = []
        for scope in Scope:
            clusters.extend(self.load_clusters(scope))
        return clusters

    # --- writes ---

    def save_patterns(self, scope: Scope, patterns: Iterable[Pattern]) -> None:
        write_json(
            self.patterns_path(scope),
            [p.model_dump(mode="json") for p in patterns],
        )

    def save_clusters(self, scope: Scope, clusters: Iterable[Cluster]) -> None:
        write_json(
            self.clusters_path(scope),
            [c.model_dump(mode="json") for c in clusters],
        )

    def save_index(self, scope: Scope, index: dict[str, str]) -> None:
        write_json(self.index_path(scope), index)

    def save_scope(
        self,
        scope: Scope,
        patterns: list[Pattern],
        clusters: list[Cluster] | None = None,
    ) -> None:
        """Persist patterns, clusters and the index rebuilt from ``patterns``.

        When ``clusters`` is None the stored clusters are left untouched.
        """
        if clusters is not None:
            self.save_clusters(scope, clusters)
        self.save_index(scope, build_index(patterns))
        # Patterns last: clusters and index are derivable from them
        self.save_patterns(scope, patterns)
        logger.debug(f"Saved {len(patterns)} patterns for scope '{Scope(scope).value}'")


class SessionStore:
    """Bounded FIFO store of session summaries.

    Writers hold ``ScopeLockManager.hold_sessions()`` around load, merge
    and ``save``, since every scope shares this ledger.
    """

    def __init__(self, sessions_dir: Path, max_files: int = 10) -> None:
        self.sessions_dir = Path(sessions_dir)
        self.max_files = max_files

    def _path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def save(self, session: SessionSummary) -> list[str]:
        """Save a session and evict the oldest beyond ``max_files``.

        Returns:
            IDs of the evicted sessions.
        """
        write_json(self._path(session.session_id), session.model_dump(mode="json"))
        return self._cleanup()

    def load(self, session_id: str) -> SessionSummary | None:
        path = self._path(session_id)
        data = read_json(path)
        if data is None:
            return None
        try:
            return SessionSummary.model_validate(data)
        except PydanticValidationError as e:
            raise CorruptStoreError(path, "invalid session summary") from e

    def list_all(self) -> list[SessionSummary]:
        """All sessions, newest first (by start time)."""
        if not self.sessions_dir.exists():
            return []
        sessions = []
        for path in sorted(self.sessions_dir.glob("*.json")):
            session = self.load(path.stem)
            if session is not None:
                sessions.append(session)
        return sorted(sessions, key=lambda s: s.start_time, reverse=True)

    def _cleanup(self) -> list[str]:
        sessions = self.list_all()
        evicted = [s.session_id for s in sessions[self.max_files :]]
        for session_id in evicted:
            try:
                self._path(session_id).unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(self._path(session_id), str(e)) from e
        if evicted:
            logger.info(f"Evicted {len(evicted)} old session summaries")
        return evicted
