"""Custom exceptions for Metacortex."""

from __future__ import annotations

from pathlib import Path


class MetacortexError(Exception):
    """Base exception for Metacortex."""

    pass


class ValidationError(MetacortexError):
    """Raised when input validation fails."""

    pass


class ConfigurationError(MetacortexError):
    """Raised when the pattern configuration is out of range or malformed."""

    pass


class CorruptStoreError(MetacortexError):
    """Raised when a persisted file exists but cannot be parsed.

    The store fails closed: partial data is never returned.
    """

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Store file '{self.path}' is corrupted: {reason}")


class StorageError(MetacortexError):
    """Raised when writing to the store fails (disk full, permissions, ...)."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to write '{self.path}': {reason}")


class PatternNotFoundError(MetacortexError):
    """Raised when a pattern is not found."""

    def __init__(self, pattern_id: str) -> None:
        self.pattern_id = pattern_id
        super().__init__(f"Pattern with ID '{pattern_id}' not found")


class ScopeLockedError(MetacortexError):
    """Raised when another writer holds a scope lock or the session ledger lock."""

    def __init__(self, scope: str, timeout: float) -> None:
        self.scope = scope
        self.timeout = timeout
        super().__init__(
            f"Scope '{scope}' is locked by another writer (waited {timeout}s)"
        )
