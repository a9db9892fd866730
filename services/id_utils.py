"""Shared helpers for coercing UUID inputs used across web/services layers."""

from __future__ import annotations

import uuid
from typing import Any, Optional


def normalize_uuid(value: Any) -> Optional[uuid.UUID]:
    """Convert ``value`` into a UUID if possible, otherwise return ``None``."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError):
        return None


__all__ = ["normalize_uuid"]
