"""
Shelfmark Backend: Request ID Middleware
==========================================

What:  Assigns a correlation id to each request and stamps it on every log line.
Why:   Lets one request's access line, service logs and error body be matched.
How:   The id comes from the client's X-Request-ID header or is generated,
       stored in a ContextVar for the duration of the request, and echoed
       back in the X-Request-ID response header. RequestIDLogFilter copies
       the current value onto each LogRecord as `request_id`.
When:  Outermost application middleware, so everything downstream sees the id.

Unexpected errors:
    Starlette renders the catch-all Exception handler in ServerErrorMiddleware,
    which runs outside this middleware. The ContextVar is already reset there,
    so unhandled exceptions are turned into the 500 body here instead, while
    the id is still known.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local: concurrent requests on one event loop each see their own id
# Alternative: threading.local, which all coroutines on one thread would share
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


def internal_error_response(rid: str) -> JSONResponse:
    """The 500 body for exceptions no specific handler claimed."""
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again or contact support.",
            "request_id": rid,
        },
        headers={REQUEST_ID_HEADER: rid} if rid else None,
    )


class RequestIDLogFilter(logging.Filter):
    """
    Adds `record.request_id` so formatters can use %(request_id)s.

    Records emitted outside a request get "-".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID if present, else a short uuid4 prefix
        2. Store it in request_id_var and request.state.request_id
        3. Turn an unhandled exception into a 500 carrying the id
        4. Add it to the response headers
        5. Reset the ContextVar when the request finishes
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 hex characters are enough to tell requests apart in one log stream
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        # ContextVar for loggers, request.state for route handlers
        request.state.request_id = rid
        try:
            response = await call_next(request)
        except Exception as e:
            # ShelfmarkError subclasses never get here; their handlers run inside
            logger.error("Unexpected error: %s", str(e), exc_info=True)
            response = internal_error_response(rid)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
