"""Infrastructure layer - JSON persistence, configuration storage and locking."""

from .config_store import ConfigStore
from .locks import ScopeLockManager
from .storage import ScopeStore, SessionStore, atomic_write_text

__all__ = [
    "ConfigStore",
    "ScopeLockManager",
    "ScopeStore",
    "SessionStore",
    "atomic_write_text",
]
