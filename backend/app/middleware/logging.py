"""
Shelfmark Backend: Request Logging Middleware
===============================================

What:  One access log line per HTTP request, with status and duration.
Why:   Gives every request a status and latency record even when no
       service code logs anything.
How:   Times the downstream call and logs method, path, status, duration and
       client address under the "shelfmark.access" logger. The request id is
       attached by RequestIDLogFilter.
When:  Inside RequestIDMiddleware, so the id is already set.

Log levels:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.
    GET /health is not logged.

Request and response bodies are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("shelfmark.access")

_SKIP_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration for each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _SKIP_PATHS:
            return await call_next(request)

        # perf_counter is monotonic; wall-clock jumps do not skew durations
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        logger.log(
            _level_for(status),
            "%s %s %d %.1fms from %s",
            request.method,
            path,
            status,
            duration_ms,
            client_ip,
            # Also passed as extra so the OTel log bridge exports them as attributes
            extra={
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
