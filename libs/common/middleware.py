"""Request tracing middleware for the storefront API.

Every request gets an X-Request-ID (propagated from the caller when present),
and its start, completion and duration are logged with that id attached.

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app)
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

QUIET_PATHS = {"/health", "/docs", "/openapi.json"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request context and log the request lifecycle."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in QUIET_PATHS
        start_time = time.perf_counter()

        try:
            if not quiet:
                logger.info(
                    "%s %s started",
                    request.method,
                    request.url.path,
                    extra={
                        "extra_fields": {
                            "query": request.url.query or None,
                            "client": request.client.host if request.client else None,
                        }
                    },
                )

            try:
                response = await call_next(request)
            except Exception as e:
                logger.exception(
                    "%s %s failed with unhandled exception",
                    request.method,
                    request.url.path,
                    extra={
                        "extra_fields": {
                            "error": str(e),
                            "duration_ms": _elapsed_ms(start_time),
                        }
                    },
                )
                raise

            duration_ms = _elapsed_ms(start_time)
            if not quiet:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "%s %s completed with %d",
                    request.method,
                    request.url.path,
                    response.status_code,
                    extra={
                        "extra_fields": {
                            "status_code": response.status_code,
                            "duration_ms": duration_ms,
                        }
                    },
                )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"
            return response
        finally:
            clear_request_context()


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def add_observability_middleware(app: FastAPI) -> None:
    """
    Configure logging and install the request context middleware.
    """
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Observability middleware initialized")
