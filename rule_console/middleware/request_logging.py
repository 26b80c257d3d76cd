"""
Request logging middleware with per-request trace ids.
"""
import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests with trace_id and latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse the caller's trace id when it sends one
        trace_id = request.headers.get("X-Trace-ID") or str(uuid.uuid4())
        request.state.trace_id = trace_id

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            # Unhandled exception during request processing
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.error(
                f"[{trace_id}] {request.method} {request.url.path} -> EXCEPTION after {latency_ms}ms: {exc}",
                exc_info=True
            )
            # Re-raise to let global exception handler deal with it
            raise

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        status_code = response.status_code
        log_level = logging.WARNING if status_code >= 400 else logging.INFO
        # Snapshot polling is chatty; keep successful GETs at DEBUG
        if request.method == "GET" and status_code < 400:
            log_level = logging.DEBUG

        logger.log(
            log_level,
            f"[{trace_id}] {request.method} {request.url.path} -> {status_code} ({latency_ms}ms)"
        )

        # Add trace_id to response headers (for debugging)
        response.headers["X-Trace-ID"] = trace_id
        return response
