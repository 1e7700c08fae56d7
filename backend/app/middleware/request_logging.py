"""Request logging middleware."""

import time

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = structlog.get_logger(__name__)

PROCESS_TIME_HEADER = "X-Process-Time-Ms"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with its status code and duration.

    Also sets an ``X-Process-Time-Ms`` response header. Cross-origin requests
    carry their Origin in the log context.

    Usage:
        app.add_middleware(RequestLoggingMiddleware)
    """

    def __init__(self, app: ASGIApp, skip_paths: tuple[str, ...] = ()):
        """
        Initialize request logging middleware.

        Args:
            app: ASGI application
            skip_paths: Paths logged at debug level only (e.g. health checks)
        """
        super().__init__(app)
        self.skip_paths = skip_paths

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers[PROCESS_TIME_HEADER] = str(elapsed_ms)

        log_context = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
        }
        origin = request.headers.get("Origin")
        if origin:
            log_context["origin"] = origin

        if response.status_code >= 500:
            logger.error("http.request_failed", **log_context)
        elif response.status_code >= 400:
            logger.warning("http.request_rejected", **log_context)
        elif request.url.path in self.skip_paths:
            logger.debug("http.request", **log_context)
        else:
            logger.info("http.request", **log_context)

        return response
