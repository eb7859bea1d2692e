"""
Access logging with request correlation.

One `request_completed` line per API call, at a level that follows the
outcome (5xx error, 4xx warning, otherwise info), carrying the error `code`
the exception handlers put on `request.state`. Health checks and metric
scrapes are not logged.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog

from railbook.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
UNLOGGED_PATHS = frozenset({"/health", "/metrics"})


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        start = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=_elapsed_ms(start))
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        if request.url.path in UNLOGGED_PATHS:
            return response

        status = response.status_code
        if status >= 500:
            log = logger.error
        elif status >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "request_completed",
            status_code=status,
            error_code=getattr(request.state, "error_code", None),
            duration_ms=_elapsed_ms(start),
        )
        return response
