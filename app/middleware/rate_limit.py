"""Per-client request limits via slowapi.

Each generation request fans out into one provider call per subject, so
``POST /api/generate`` is held to a few requests a minute while the paper
endpoints, which only touch Supabase, get a generous allowance.
"""

import json
from typing import Any, Callable, List

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.config import get_settings

DEFAULT_RETRY_AFTER = 60

RATE_LIMITS = {
    "generate": "5/minute",   # POST /api/generate
    "papers": "100/minute",   # GET/DELETE /api/papers*
}


def _trusted_proxies() -> List[str]:
    raw = get_settings().trusted_proxies or ""
    return [ip.strip() for ip in raw.split(",") if ip.strip()]


def get_client_ip(request: Request) -> str:
    """
    Resolve the address requests are counted against.

    X-Forwarded-For is honoured only when the direct peer is listed in
    ``TRUSTED_PROXIES``; otherwise any client could pick its own key.
    """
    peer: str = get_remote_address(request)
    if peer not in _trusted_proxies():
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For")
    if not forwarded_for:
        return peer
    return forwarded_for.split(",")[0].strip()


limiter = Limiter(key_func=get_client_ip, default_limits=["200/minute"])


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Turn a slowapi rejection into a JSON 429 with Retry-After headers."""
    retry_after = getattr(exc, "retry_after", DEFAULT_RETRY_AFTER)

    headers = {"Retry-After": str(retry_after), "X-RateLimit-Remaining": "0"}
    limit_detail = getattr(exc, "detail", None)
    if limit_detail:
        headers["X-RateLimit-Limit"] = limit_detail

    body = {
        "detail": "Rate limit exceeded",
        "message": f"Too many requests. Please retry after {retry_after} seconds.",
        "retry_after": retry_after,
    }
    return Response(
        content=json.dumps(body),
        status_code=429,
        media_type="application/json",
        headers=headers,
    )


def get_limiter() -> Limiter:
    return limiter


def limit_papers(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply the paper endpoint limit."""
    decorated: Callable[..., Any] = limiter.limit(RATE_LIMITS["papers"])(func)
    return decorated
