"""ID generation and hashing utilities.

Every identifier is derived from content, so the same input always yields
the same ID across processes and runs.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timezone

from .models.enums import PatternType, Scope

PATTERN_HASH_LENGTH = 12


def hash_content(content: str, length: int = PATTERN_HASH_LENGTH) -> str:
    """Hash content with SHA-256 and return the first ``length`` hex chars."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:length]


def generate_pattern_id(scope: Scope, pattern_type: PatternType, content: str) -> str:
    """Generate a stable pattern ID of the form ``{scope}:{type}:{hash}``."""
    return f"{Scope(scope).value}:{PatternType(pattern_type).value}:{hash_content(content)}"


def parse_pattern_id(pattern_id: str) -> tuple[Scope, PatternType, str] | None:
    """Split a pattern ID into its components.

    Returns:
        (scope, type, hash) or None if the ID is not well formed.
    """
    parts = pattern_id.split(":")
    if len(parts) != 3:
        return None
    scope, pattern_type, digest = parts
    try:
        return Scope(scope), PatternType(pattern_type), digest
    except ValueError:
        return None


def generate_cluster_id(pattern_ids: list[str]) -> str:
    """Generate a cluster ID from its member set.

    Members are sorted first, so membership order never changes the ID.
    """
    combined = "|".join(sorted(pattern_ids))
    return f"cluster-{hash_content(combined)}"


def generate_session_id(now: datetime | None = None) -> str:
    """Generate a session ID like ``2026-01-15-093012-a1b2``."""
    now = now or datetime.now(timezone.utc)
    return f"{now.strftime('%Y-%m-%d-%H%M%S')}-{secrets.token_hex(2)}"
