"""Request logging middleware."""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from structlog.contextvars import bind_contextvars, clear_contextvars

from mlb_prediction_sync.monitoring import get_logger

log = get_logger()

QUIET_PATHS = frozenset({"/api/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with a request id bound to structlog contextvars.

    The request id is echoed in the ``X-Request-ID`` response header so a
    client report can be matched to log lines. Health probes are not logged.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        clear_contextvars()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id

        if request.url.path not in QUIET_PATHS:
            log.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
        return response
