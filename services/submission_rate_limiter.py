"""Rate limiting for public campaign submissions.

The limiter is handed a store at construction time so a single-process
deployment can count in memory while multi-process deployments share Redis.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

import redis
from fastapi import HTTPException, Request, status

from core.env import env_bool, env_int, env_str
from core.logging import get_logger

logger = get_logger(__name__)

SUBMISSION_LIMIT = env_int("CAMPAIGN_SUBMISSION_LIMIT", 10, minimum=1)
SUBMISSION_WINDOW_SECONDS = env_int("CAMPAIGN_SUBMISSION_WINDOW_SECONDS", 900, minimum=1)
_REDIS_URL = env_str("CAMPAIGN_RATE_LIMIT_REDIS_URL")
_KEY_PREFIX = env_str("CAMPAIGN_RATE_LIMIT_PREFIX") or "campaign_submit"
TRUST_PROXY_HEADERS = env_bool("CAMPAIGN_TRUST_PROXY_HEADERS", False)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: Optional[int]
    reset_at: Optional[datetime]
    backend_error: bool = False


class RateLimitStore:
    """Fixed-window hit counter."""

    def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        """Record one hit; return ``(count_in_window, seconds_until_reset)``."""
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):
    """Per-process counter; suitable for single-worker deployments and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[int, float]] = {}

    def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        now = self._clock()
        with self._lock:
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, reset_at)
            self._prune(now)
        return count, max(int(reset_at - now), 0)

    def _prune(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if reset_at <= now]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


class RedisRateLimitStore(RateLimitStore):
    def __init__(self, client: "redis.Redis", *, prefix: str = _KEY_PREFIX):
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = _KEY_PREFIX) -> "RedisRateLimitStore":
        return cls(redis.Redis.from_url(url, decode_responses=False), prefix=prefix)

    def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        redis_key = f"{self._prefix}:{key}"
        pipeline = self._client.pipeline()
        pipeline.incr(redis_key)
        pipeline.ttl(redis_key)
        count, ttl = pipeline.execute()
        if ttl is None or ttl < 0:
            self._client.expire(redis_key, window_seconds)
            ttl = window_seconds
        return int(count), int(ttl)


class SubmissionRateLimiter:
    def __init__(
        self,
        store: RateLimitStore,
        *,
        limit: int = SUBMISSION_LIMIT,
        window_seconds: int = SUBMISSION_WINDOW_SECONDS,
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds

    def check(self, campaign_key: str, client_ip: str) -> RateLimitResult:
        key = f"{campaign_key}:{client_ip or 'unknown'}"
        try:
            count, ttl = self.store.hit(key, self.window_seconds)
        except Exception as exc:  # fail open
            logger.warning("Submission rate limiter backend failed for %s: %s", key, exc, exc_info=True)
            return RateLimitResult(allowed=True, remaining=None, reset_at=None, backend_error=True)
        reset_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        return RateLimitResult(allowed=count <= self.limit, remaining=max(self.limit - count, 0), reset_at=reset_at)

    def enforce(self, campaign_key: str, request: Request) -> RateLimitResult:
        client_ip = get_client_ip(request)
        result = self.check(campaign_key, client_ip)
        if not result.allowed:
            logger.warning(
                "Submission rate limit exceeded for campaign %s from %s (limit: %d/%ds)",
                campaign_key,
                client_ip,
                self.limit,
                self.window_seconds,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "code": "rate_limit_exceeded",
                    "message": "Too many submissions. Please try again later.",
                    "remaining": 0,
                    "resetAt": result.reset_at.isoformat() if result.reset_at else None,
                },
            )
        return result


def get_client_ip(request: Request, *, trust_proxy_headers: Optional[bool] = None) -> str:
    """Socket peer address; X-Forwarded-For / X-Real-IP only count behind a trusted proxy."""
    trusted = TRUST_PROXY_HEADERS if trust_proxy_headers is None else trust_proxy_headers
    if trusted:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first

        real_ip = request.headers.get("X-Real-IP")
        if real_ip and real_ip.strip():
            return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def build_default_rate_limiter() -> SubmissionRateLimiter:
    if _REDIS_URL:
        logger.info("Submission rate limiter using Redis store.")
        return SubmissionRateLimiter(RedisRateLimitStore.from_url(_REDIS_URL))
    return SubmissionRateLimiter(InMemoryRateLimitStore())


__all__ = [
    "InMemoryRateLimitStore",
    "RateLimitResult",
    "RateLimitStore",
    "RedisRateLimitStore",
    "SubmissionRateLimiter",
    "build_default_rate_limiter",
    "get_client_ip",
]
