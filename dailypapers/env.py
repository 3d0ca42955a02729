from __future__ import annotations

import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)

_CACHE: Dict[str, Optional[str]] = {}

# Prefixes some hosting platforms put in front of user-defined secrets
_ALT_PREFIXES = (
    "DAILYPAPERS_",
    "CODESPACE_SECRET_",
    "CODESPACES_SECRET_",
)


def get_secret(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Retrieve a setting or secret from the environment, trying known prefixes.
    """
    key = name.upper()
    if key in _CACHE:
        return _CACHE[key] if _CACHE[key] is not None else default

    value = os.getenv(key)
    if value:
        _CACHE[key] = value
        return value

    for prefix in _ALT_PREFIXES:
        alt_value = os.getenv(prefix + key)
        if alt_value:
            _CACHE[key] = alt_value
            return alt_value

    _CACHE[key] = None
    return default


def get_int(name: str, default: int) -> int:
    raw = get_secret(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


def get_float(name: str, default: float) -> float:
    raw = get_secret(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def clear_cache() -> None:
    _CACHE.clear()
