"""
Shelfmark Backend: Pydantic Request/Response Schemas
======================================================

What:  Pydantic models defining the HTTP contract of the book API.
How:   FastAPI validates request bodies against these models, serializes
       responses through them, and builds the OpenAPI docs from them.
Who:   Used by route handlers only. BookService works with app.models.book.Book.

Wire format:
    JSON uses camelCase (isDeleted, deletedAt, deletedBy), matching the
    stored documents. Requests accept either camelCase or snake_case.
    Prices are emitted as JSON numbers.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from app.models.book import MAX_PRICE_DIGITS, Book

# Decimal is kept exact in Python and rendered as a number in JSON
Price = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class BookUpsertRequest(_CamelModel):
    """
    Body of POST /api/books/upsert and /api/books/upsert-partial.

    id:    Omit or send "" to have the store generate one. A non-empty id
           must be 24 hex characters (checked by BookService → 400).
    price: Non-negative by convention; not enforced. At most 34 significant
           digits (the Decimal128 limit), otherwise 422.
    """

    id: str = Field(default="", description="Existing book id, or empty to create")
    title: str = Field(default="", description="Book title")
    author: str = Field(default="", description="Book author")
    price: Decimal = Field(
        default=Decimal("0"), max_digits=MAX_PRICE_DIGITS, description="Book price"
    )

    def to_book(self) -> Book:
        """
        Convert to a fresh, active Book record.

        A full upsert replaces the whole document, so lifecycle fields are
        reset to their active defaults.
        """
        return Book(
            id=self.id.strip(),
            title=self.title,
            author=self.author,
            price=self.price,
        )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class BookResponse(_CamelModel):
    """Full representation of a stored book, including lifecycle fields."""

    id: str = Field(description="24 hex character identifier")
    title: str
    author: str
    price: Price
    is_deleted: bool = Field(description="Soft-delete marker")
    deleted_at: Optional[datetime] = Field(
        default=None, description="When the book was soft-deleted (UTC)"
    )
    deleted_by: Optional[str] = Field(
        default=None, description="Who soft-deleted the book"
    )

    @classmethod
    def from_book(cls, book: Book) -> "BookResponse":
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            price=book.price,
            is_deleted=book.is_deleted,
            deleted_at=book.deleted_at,
            deleted_by=book.deleted_by,
        )


class MessageResponse(BaseModel):
    """Acknowledgement for mutating operations."""

    message: str = Field(description="Human-readable result")
    id: Optional[str] = Field(default=None, description="Id of the affected book")


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Book not found or already deleted.",
            "request_id": "1f2e3d4c"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check body returned by GET /health."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Document store connectivity: connected, disconnected")
    telemetry: str = Field(description="OTLP export: enabled, disabled")
    uptime_seconds: float = Field(description="Seconds since service started")
