"""
Shelfmark Backend: Book Route Handlers
========================================

What:  HTTP surface of the Book Record Store.
How:   Each handler converts the request into a BookService call and the
       result into a status code. None/False from the service becomes a 404.
Who:   Any HTTP client; documented at /docs.

Route Inventory:
    GET    /api/books                  → every book (soft-deleted included)
    GET    /api/books/active           → active books only
    POST   /api/books/upsert           → full replace-or-insert
    POST   /api/books/upsert-partial   → title/author/price only
    GET    /api/books/{id}             → one active book
    DELETE /api/books/{id}             → soft delete
    PUT    /api/books/restore/{id}     → undo soft delete

Path ids must be 24 hex characters; anything else is rejected by FastAPI
with 422 before reaching the service.
"""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Header, Path, Query, Request

from app.config import settings
from app.exceptions import NotFoundError
from app.schemas.book import (
    BookResponse,
    BookUpsertRequest,
    ErrorResponse,
    MessageResponse,
)
from app.services.book_service import BookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/books", tags=["Books"])

BookId = Annotated[
    str,
    Path(pattern=r"^[0-9a-fA-F]{24}$", description="24 hex character book id"),
]

_STORE_ERRORS = {
    503: {"description": "Document store unavailable", "model": ErrorResponse},
    500: {"description": "Document store error", "model": ErrorResponse},
}


def get_book_service(request: Request) -> BookService:
    """FastAPI dependency returning the service built in the lifespan."""
    return request.app.state.book_service


@router.get(
    "",
    response_model=List[BookResponse],
    responses=_STORE_ERRORS,
    summary="List all books, including soft-deleted ones",
)
async def get_books(service: BookService = Depends(get_book_service)) -> List[BookResponse]:
    books = await service.get_all()
    return [BookResponse.from_book(book) for book in books]


@router.get(
    "/active",
    response_model=List[BookResponse],
    responses=_STORE_ERRORS,
    summary="List books that are not soft-deleted",
)
async def get_active_books(
    service: BookService = Depends(get_book_service),
) -> List[BookResponse]:
    books = await service.get_active()
    return [BookResponse.from_book(book) for book in books]


@router.post(
    "/upsert",
    response_model=MessageResponse,
    responses={400: {"description": "Malformed id", "model": ErrorResponse}, **_STORE_ERRORS},
    summary="Insert or fully replace a book",
    description=(
        "Replaces the whole stored document with the request body, or inserts it "
        "when no book has this id. An empty id is replaced by a generated one. "
        "Lifecycle fields are reset, so upserting a soft-deleted book reactivates it."
    ),
)
async def upsert_book(
    payload: BookUpsertRequest,
    service: BookService = Depends(get_book_service),
) -> MessageResponse:
    book = payload.to_book()
    await service.upsert(book)
    return MessageResponse(message="Book upserted successfully.", id=book.id)


@router.post(
    "/upsert-partial",
    response_model=MessageResponse,
    responses={400: {"description": "Malformed id", "model": ErrorResponse}, **_STORE_ERRORS},
    summary="Insert a book or update only its title, author and price",
    description=(
        "Sets title, author and price on the stored document, inserting a new one "
        "when no book has this id. Soft-delete state of an existing book is kept."
    ),
)
async def upsert_partial(
    payload: BookUpsertRequest,
    service: BookService = Depends(get_book_service),
) -> MessageResponse:
    book = payload.to_book()
    await service.upsert_partial(book)
    return MessageResponse(message="Book upserted (partial update) successfully.", id=book.id)


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    responses={404: {"description": "Book not found", "model": ErrorResponse}, **_STORE_ERRORS},
    summary="Get an active book by id",
)
async def get_book(
    book_id: BookId,
    service: BookService = Depends(get_book_service),
) -> BookResponse:
    book = await service.get_by_id(book_id)
    if book is None:
        raise NotFoundError(resource="book", resource_id=book_id)
    return BookResponse.from_book(book)


@router.delete(
    "/{book_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Book not found or already deleted", "model": ErrorResponse},
        **_STORE_ERRORS,
    },
    summary="Soft-delete a book",
    description=(
        "Marks the book as deleted and records when and by whom. The actor is taken "
        "from the deleted_by query parameter, then the X-Actor header, then the "
        "configured default."
    ),
)
async def soft_delete_book(
    book_id: BookId,
    deleted_by: Optional[str] = Query(default=None, min_length=1, description="Actor id"),
    x_actor: Optional[str] = Header(default=None, alias="X-Actor"),
    service: BookService = Depends(get_book_service),
) -> MessageResponse:
    actor = deleted_by or x_actor or settings.default_deleted_by
    deleted = await service.soft_delete(book_id, actor)
    if not deleted:
        raise NotFoundError(
            resource="book",
            resource_id=book_id,
            message="Book not found or already deleted.",
        )
    return MessageResponse(message="Book soft-deleted successfully.", id=book_id)


@router.put(
    "/restore/{book_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Book not found or already active", "model": ErrorResponse},
        **_STORE_ERRORS,
    },
    summary="Restore a soft-deleted book",
)
async def restore_book(
    book_id: BookId,
    service: BookService = Depends(get_book_service),
) -> MessageResponse:
    restored = await service.restore(book_id)
    if not restored:
        raise NotFoundError(
            resource="book",
            resource_id=book_id,
            message="Book not found or already active.",
        )
    return MessageResponse(message="Book restored successfully.", id=book_id)
