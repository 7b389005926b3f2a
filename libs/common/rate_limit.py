"""Rate limiting for the storefront API.

Uses slowapi. Storage defaults to in-process memory; point
RATE_LIMIT_STORAGE_URI at Redis when running several workers.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def get_client_ip(request: Request) -> str:
    """
    Get client IP from request, honouring X-Forwarded-For behind a proxy.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


@lru_cache
def get_limiter() -> Limiter:
    """Create and return a cached Limiter instance."""
    settings = get_settings()
    return Limiter(
        key_func=get_client_ip,
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Render a 429 in the standard response envelope."""
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "data": None,
            "message": f"Rate limit exceeded: {exc.detail}",
        },
        headers={"Retry-After": "60"},
    )


def auth_limit(func: Callable) -> Callable:
    """Strict limit for credential endpoints (10/minute)."""
    return limiter.limit("10/minute")(func)


def payment_limit(func: Callable) -> Callable:
    """Limit for payment creation endpoints (20/minute)."""
    return limiter.limit("20/minute")(func)
