"""Per-scope write locks.

Every read-modify-write cycle on a scope (ingest, evolution) runs while
holding that scope's lock, so two pipeline runs on the same scope never
interleave. Locks on different scopes are independent.

The session ledger is shared by every scope and has a lock of its own.
It is always taken after a scope lock, never before.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from ..domain.exceptions import ScopeLockedError
from ..domain.models import Scope
from .storage import SESSIONS_DIR

logger = logging.getLogger(__name__)

LOCK_FILE = ".lock"


class ScopeLockManager:
    """Hands out one file lock per scope, plus one for the session ledger."""

    def __init__(self, data_dir: Path, timeout: float = 10.0) -> None:
        """Initialize the lock manager.

        Args:
            data_dir: Root of the pattern store
            timeout: Seconds to wait for a lock
        """
        self.data_dir = Path(data_dir)
        self.timeout = timeout
        self._locks: dict[Path, FileLock] = {}

    def lock_path(self, scope: Scope) -> Path:
        return self.data_dir / Scope(scope).value / LOCK_FILE

    def sessions_lock_path(self) -> Path:
        return self.data_dir / SESSIONS_DIR / LOCK_FILE

    def _lock_at(self, path: Path) -> FileLock:
        if path not in self._locks:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._locks[path] = FileLock(path, timeout=self.timeout)
        return self._locks[path]

    @contextmanager
    def _held(self, path: Path, name: str) -> Iterator[None]:
        lock = self._lock_at(path)
        try:
            lock.acquire()
        except Timeout as e:
            raise ScopeLockedError(name, self.timeout) from e
        logger.debug(f"Acquired lock for '{name}'")
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def hold(self, scope: Scope) -> Iterator[None]:
        """Hold the scope lock for the duration of the block.

        Re-entrant within one manager.

        Raises:
            ScopeLockedError: If the lock is not acquired within the timeout.
        """
        with self._held(self.lock_path(scope), Scope(scope).value):
            yield

    @contextmanager
    def hold_sessions(self) -> Iterator[None]:
        """Hold the session ledger lock for the duration of the block.

        Raises:
            ScopeLockedError: If the lock is not acquired within the timeout.
        """
        with self._held(self.sessions_lock_path(), SESSIONS_DIR):
            yield
