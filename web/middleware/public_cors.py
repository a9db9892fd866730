"""Open CORS headers for the unauthenticated campaign endpoints only."""

from __future__ import annotations

import re
from typing import Pattern, Sequence, Tuple

from fastapi import Request
from fastapi.responses import Response

PUBLIC_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

_PUBLIC_ROUTES: Sequence[Tuple[str, Pattern[str]]] = (
    ("GET", re.compile(r"^/api/v1/campaigns/?$")),
    ("GET", re.compile(r"^/api/v1/campaigns/slug/[^/]+/?$")),
    ("POST", re.compile(r"^/api/v1/campaigns/[^/]+/submissions/?$")),
    ("POST", re.compile(r"^/api/v1/campaign-submissions/?$")),
)


def is_public_route(method: str, path: str) -> bool:
    method = (method or "").upper()
    return any(method == allowed and pattern.match(path or "") for allowed, pattern in _PUBLIC_ROUTES)


def _apply_public_headers(response: Response) -> Response:
    for key, value in PUBLIC_CORS_HEADERS.items():
        response.headers[key] = value
    if "access-control-allow-credentials" in response.headers:
        del response.headers["access-control-allow-credentials"]
    return response


async def public_cors_middleware(request: Request, call_next):
    path = request.url.path if request.url else ""
    if request.method == "OPTIONS":
        requested = request.headers.get("access-control-request-method", "")
        if is_public_route(requested, path):
            return _apply_public_headers(Response(status_code=200))
        return await call_next(request)

    response = await call_next(request)
    if is_public_route(request.method, path):
        _apply_public_headers(response)
    return response


__all__ = ["PUBLIC_CORS_HEADERS", "is_public_route", "public_cors_middleware"]
