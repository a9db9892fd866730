"""Admin authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from fastapi import HTTPException, Request, status

from core.env import env_list, env_str
from core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdminSession:
    """Represents a validated administrator credential."""

    actor: str
    issued_at: datetime
    token_hint: Optional[str] = None


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail={"code": code, "message": message})


def _mask_token(token: str) -> str:
    if not token:
        return ""
    if len(token) <= 4:
        return "*" * len(token)
    return f"{token[:2]}***{token[-2:]}"


def _parse_token_entry(entry: str, default_actor: str) -> Tuple[str, str]:
    """``actor:token``, ``actor=token`` or a bare token owned by ``default_actor``."""
    separator = ":" if ":" in entry else "=" if "=" in entry else None
    if separator is None:
        return default_actor, entry.strip()
    actor, _, token = entry.partition(separator)
    return actor.strip() or default_actor, token.strip()


def load_admin_token_map() -> Dict[str, str]:
    """Map each accepted admin token to the actor recorded as ``createdBy``."""
    default_actor = (env_str("ADMIN_API_ACTOR") or "").strip() or "admin"
    mapping: Dict[str, str] = {}
    for entry in env_list("ADMIN_API_TOKENS"):
        actor, token = _parse_token_entry(entry, default_actor)
        if token:
            mapping[token] = actor

    single_token = (env_str("ADMIN_API_TOKEN") or "").strip()
    if single_token:
        mapping[single_token] = default_actor
    return mapping


def _extract_admin_token(request: Request) -> Optional[str]:
    scheme, _, credential = (request.headers.get("authorization") or "").partition(" ")
    if scheme.lower() == "bearer" and credential.strip():
        return credential.strip()
    return (request.headers.get("x-admin-token") or "").strip() or None


def require_admin_session(request: Request) -> AdminSession:
    """
    Validate that the current request carries a recognised admin credential.

    Accepted carriers, in order:
    1. Authorization: Bearer <token>
    2. X-Admin-Token header
    """

    token_map = load_admin_token_map()
    if not token_map:
        logger.error("ADMIN_API_TOKEN or ADMIN_API_TOKENS is not configured; admin access blocked.")
        raise _unauthorized("admin.unauthorized", "Admin access is not configured.")

    provided = _extract_admin_token(request)
    if not provided:
        logger.warning("Admin access denied: missing credential.")
        raise _unauthorized("admin.unauthorized", "Unauthorized")

    actor = token_map.get(provided)
    if not actor:
        logger.warning("Admin access denied: invalid token %s.", _mask_token(provided))
        raise _unauthorized("admin.unauthorized", "Unauthorized")

    session = AdminSession(
        actor=actor,
        issued_at=datetime.now(timezone.utc),
        token_hint=_mask_token(provided),
    )
    request.state.admin_session = session
    return session


__all__ = ["AdminSession", "load_admin_token_map", "require_admin_session"]
