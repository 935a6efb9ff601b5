"""Domain layer - Core pattern lifecycle logic and models."""

from .exceptions import (
    ConfigurationError,
    CorruptStoreError,
    MetacortexError,
    PatternNotFoundError,
    ScopeLockedError,
    StorageError,
    ValidationError,
)
from .models import (
    Cluster,
    ExtractedFragments,
    Pattern,
    PatternConfig,
    PatternType,
    Scope,
)

__all__ = [
    # Exceptions
    "MetacortexError",
    "ValidationError",
    "ConfigurationError",
    "CorruptStoreError",
    "StorageError",
    "PatternNotFoundError",
    "ScopeLockedError",
    # Models
    "Pattern",
    "Cluster",
    "PatternConfig",
    "PatternType",
    "Scope",
    "ExtractedFragments",
]
