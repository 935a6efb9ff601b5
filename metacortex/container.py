"""Dependency injection container for Metacortex."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import Config, get_config
from .domain.models import PatternConfig
from .domain.services import PatternService
from .infra.config_store import ConfigStore
from .infra.locks import ScopeLockManager
from .infra.storage import ScopeStore, SessionStore

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Dependency injection container.

    Manages the lifecycle of all application components. The pattern
    configuration is loaded once and cached; ``reload_pattern_config``
    re-reads it and rebuilds the service that depends on it.
    """

    config: Config
    _config_store: ConfigStore | None = None
    _pattern_config: PatternConfig | None = None
    _store: ScopeStore | None = None
    _sessions: SessionStore | None = None
    _locks: ScopeLockManager | None = None
    _service: PatternService | None = None

    @classmethod
    def create(cls, config: Config | None = None) -> Container:
        """Create a new container with the given config.

        Args:
            config: Optional config. Uses global config if not provided.

        Returns:
            A new Container instance.
        """
        return cls(config=config or get_config())

    @property
    def config_store(self) -> ConfigStore:
        """Get the config store (lazy initialization)."""
        if self._config_store is None:
            self._config_store = ConfigStore(self.config.config_path)
        return self._config_store

    @property
    def pattern_config(self) -> PatternConfig:
        """Get the pattern configuration (loaded once)."""
        if self._pattern_config is None:
            self._pattern_config = self.config_store.load()
        return self._pattern_config

    @property
    def store(self) -> ScopeStore:
        """Get the pattern store (lazy initialization)."""
        if self._store is None:
            self._store = ScopeStore(self.config.data_dir)
        return self._store

    @property
    def sessions(self) -> SessionStore:
        """Get the session store (lazy initialization)."""
        if self._sessions is None:
            self._sessions = SessionStore(
                self.config.sessions_dir,
                max_files=self.pattern_config.capacity.max_session_files,
            )
        return self._sessions

    @property
    def locks(self) -> ScopeLockManager:
        """Get the scope lock manager (lazy initialization)."""
        if self._locks is None:
            self._locks = ScopeLockManager(
                self.config.data_dir, timeout=self.config.lock_timeout
            )
        return self._locks

    @property
    def pattern_service(self) -> PatternService:
        """Get the pattern service (lazy initialization)."""
        if self._service is None:
            self._service = PatternService(
                store=self.store,
                sessions=self.sessions,
                locks=self.locks,
                config=self.pattern_config,
                report_path=self.config.report_path,
            )
        return self._service

    def reload_pattern_config(self) -> PatternConfig:
        """Re-read config.json and rebuild dependents."""
        self._pattern_config = self.config_store.load()
        self._sessions = None
        self._service = None
        logger.info("Pattern configuration reloaded")
        return self._pattern_config

    def close(self) -> None:
        """Drop all cached components."""
        self._pattern_config = None
        self._store = None
        self._sessions = None
        self._locks = None
        self._service = None


# Module-level container instance
_container: Container | None = None


def get_container() -> Container:
    """Get the global container instance."""
    global _container
    if _container is None:
        _container = Container.create()
    return _container


def reset_container() -> None:
    """Reset the container (for testing)."""
    global _container
    if _container is not None:
        _container.close()
    _container = None
