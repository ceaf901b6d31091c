"""
Request correlation middleware.

Reads X-Correlation-ID from the incoming request (or mints one), exposes it
on request.state, binds it to the logging context for the lifetime of the
request and echoes it back on the response together with the elapsed time.
"""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging import set_correlation_id, clear_correlation_id, get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
TIMING_HEADER = "X-Response-Time-Ms"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Attach a correlation ID to every request.

    Usage:
        app.add_middleware(CorrelationIdMiddleware)

    Access in endpoints:
        correlation_id = request.state.correlation_id
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        token = set_correlation_id(correlation_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)

            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers[CORRELATION_HEADER] = correlation_id
            response.headers[TIMING_HEADER] = f"{elapsed_ms:.1f}"

            logger.debug(
                f"Request completed: {request.method} {request.url.path}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "elapsed_ms": round(elapsed_ms, 1),
                },
            )
            return response
        finally:
            clear_correlation_id(token)
