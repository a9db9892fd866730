"""Typed readers for environment configuration.

Malformed values never abort start-up: the reader logs a warning and the
caller's default wins.
"""

from __future__ import annotations

import os
from typing import Callable, List, Optional, TypeVar

from core.logging import get_logger

logger = get_logger(__name__)

N = TypeVar("N", int, float)

_BOOL_WORDS = {
    "1": True,
    "true": True,
    "yes": True,
    "y": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "n": False,
    "off": False,
}


def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    if key in os.environ:
        return os.environ[key]
    logger.debug("%s is unset; default=%r.", key, default)
    return default


def _env_number(key: str, default: N, cast: Callable[[str], N], minimum: Optional[N]) -> N:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        parsed = cast(raw.strip())
    except ValueError:
        parsed = None
    if parsed is None or (minimum is not None and parsed < minimum):
        logger.warning("Ignoring %s=%r (expected %s >= %s); using %r.", key, raw, cast.__name__, minimum, default)
        return default
    return parsed


def env_int(key: str, default: int, *, minimum: Optional[int] = None) -> int:
    return _env_number(key, default, int, minimum)


def env_float(key: str, default: float, *, minimum: Optional[float] = None) -> float:
    return _env_number(key, default, float, minimum)


def env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    flag = _BOOL_WORDS.get(raw.strip().lower())
    if flag is None:
        logger.warning("Ignoring %s=%r (not a boolean); using %s.", key, raw, default)
        return default
    return flag


def env_list(key: str, default: Optional[List[str]] = None) -> List[str]:
    """Comma separated values with blanks dropped."""
    raw = os.environ.get(key)
    if raw is None:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


__all__ = ["env_bool", "env_float", "env_int", "env_list", "env_str"]
