"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from services.campaign_submission_service import UNKNOWN, SubmissionMetadata
from services.submission_rate_limiter import SubmissionRateLimiter, build_default_rate_limiter, get_client_ip

_rate_limiter: Optional[SubmissionRateLimiter] = None


def get_submission_rate_limiter() -> SubmissionRateLimiter:
    """Process-wide limiter; tests replace it through ``app.dependency_overrides``."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = build_default_rate_limiter()
    return _rate_limiter


def get_submission_metadata(request: Request) -> SubmissionMetadata:
    return SubmissionMetadata(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent") or UNKNOWN,
    )
