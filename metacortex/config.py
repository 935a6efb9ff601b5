"""Runtime settings for Metacortex.

These are process-level settings (where the store lives, how long to wait
for a lock). Pattern lifecycle tuning lives in ``config.json`` and is
loaded through ``infra.config_store.ConfigStore``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    """Metacortex configuration."""

    # Data storage
    data_dir: Path = field(default_factory=lambda: Path.home() / ".metacortex")

    # Seconds to wait for a scope lock before giving up
    lock_timeout: float = 10.0

    @property
    def config_path(self) -> Path:
        """Path of the persisted pattern configuration."""
        return self.data_dir / "config.json"

    @property
    def sessions_dir(self) -> Path:
        return self.data_dir / "sessions"

    @property
    def report_path(self) -> Path:
        """Path of the generated Markdown report."""
        return self.data_dir / "PATTERNS.md"

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        data_dir_str = os.environ.get("METACORTEX_DATA_DIR")
        data_dir = Path(data_dir_str) if data_dir_str else Path.home() / ".metacortex"

        return cls(
            data_dir=data_dir,
            lock_timeout=float(os.environ.get("METACORTEX_LOCK_TIMEOUT", "10.0")),
        )


# Module-level config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the config (for testing)."""
    global _config
    _config = None
