"""
API Middleware

Binds a request id into the structlog context so every event logged while a
report runs (loader, pipeline, engine) can be traced back to its request.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log report requests with timing and a request id"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get("X-Request-ID", str(time.time_ns()))

        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            path=request.url.path,
        ):
            logger.info(
                "Report request received",
                method=request.method,
                query=str(request.query_params) or None,
            )

            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "Report request answered",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id
        return response
