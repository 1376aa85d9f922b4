"""Environment variable parsing utilities."""

from __future__ import annotations

import os
from pathlib import Path


def parse_bool_env(value: str | None) -> bool | None:
    """Parse a boolean from an environment variable string.

    Returns True for "1", "true", "yes", "on" (case-insensitive).
    Returns None if value is None.
    """
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes", "on"}


def path_from_env(name: str, default: Path) -> Path:
    """Return the path stored in ``name`` or ``default`` when unset or blank."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return Path(raw).expanduser()
