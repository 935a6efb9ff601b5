"""Load and persist the pattern configuration.

This is the only place configuration is read from or written to disk. The
loaded ``PatternConfig`` is an immutable value; callers pass it explicitly
to the pipeline and reload through this boundary when needed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import ConfigurationError
from ..domain.models import PatternConfig
from .storage import read_json, write_json

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"


class ConfigStore:
    """Reads and writes ``config.json``."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> PatternConfig:
        """Load the configuration.

        A missing file is created with default values.

        Raises:
            CorruptStoreError: If the file is not valid JSON.
            ConfigurationError: If values are out of range or unknown.
        """
        data = read_json(self.path)
        if data is None:
            config = PatternConfig()
            self.save(config)
            logger.info(f"Created default configuration at {self.path}")
            return config
        return self._validate(data)

    def save(self, config: PatternConfig) -> None:
        write_json(self.path, config.model_dump(mode="json"))

    def update(self, **sections: Any) -> PatternConfig:
        """Merge ``sections`` into the stored config, save and return it.

        Example:
            store.update(decay={"half_life_days": 30})

        Raises:
            ConfigurationError: If the merged config is invalid.
        """
        current = self.load()
        try:
            updated = current.merged(sections)
        except PydanticValidationError as e:
            raise ConfigurationError(_describe(e)) from e
        self.save(updated)
        return updated

    def reset(self) -> PatternConfig:
        """Overwrite the stored config with defaults."""
        config = PatternConfig()
        self.save(config)
        return config

    def _validate(self, data: Any) -> PatternConfig:
        try:
            return PatternConfig.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {self.path}: {_describe(e)}"
            ) from e


def _describe(error: PydanticValidationError) -> str:
    problems = [
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    ]
    return "; ".join(problems)
