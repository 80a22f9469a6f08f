"""
Shelfmark Backend: Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the failure modes of the book API.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by the database layer, services and routes; caught by handlers.

Exception Hierarchy:
    ShelfmarkError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── NotFoundError            → 404 Not Found
    ├── StoreConnectivityError   → 503 Service Unavailable
    └── StoreProtocolError       → 500 Internal Server Error

Note:
    A missing book is NOT an exception inside BookService. The service answers
    None/False and the route decides to raise NotFoundError. Store errors are
    never retried; they propagate to the handlers unchanged.
"""

from typing import Any, Dict, Optional


class ShelfmarkError(Exception):
    """
    Base exception for all Shelfmark application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ShelfmarkError):
    """
    Raised when client input fails a business rule.

    When:    A non-empty book id that is not 24 hex characters.
    HTTP:    400 Bad Request

    Schema-level problems (wrong types, missing body) are still handled by
    FastAPI's own 422 response.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(ShelfmarkError):
    """
    Raised by route handlers when a book is absent or soft-deleted.

    HTTP:    404 Not Found

    `message` overrides the generated text, so routes can reproduce the
    "not found or already deleted" wording for lifecycle operations.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StoreConnectivityError(ShelfmarkError):
    """
    Raised when the document store cannot be reached or is misconfigured.

    When:    MONGODB_URL missing or malformed (on first use), server selection
             timeout, network error mid-operation.
    HTTP:    503 Service Unavailable

    The core never retries; the client may retry the request later.
    """

    def __init__(
        self,
        message: str = "The book store is temporarily unavailable. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreProtocolError(ShelfmarkError):
    """
    Raised for any other failure reported by the MongoDB driver.

    When:    Malformed documents, BSON encoding errors, server-side command
             errors (e.g. duplicate key, write errors).
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; driver details
    live in `context` and are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
