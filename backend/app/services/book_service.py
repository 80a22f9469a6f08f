"""
Shelfmark Backend: Book Service (Book Record Store)
=====================================================

What:  Upsert, partial upsert, soft delete, restore and retrieval of books.
Why:   Keeps the lifecycle rules (what "active" means, which fields each write
       may touch) in one place, away from HTTP and driver details.
How:   Each operation is exactly one MongoDB round trip on one document,
       relying on the server's per-document atomicity. No locks, no retries.
Who:   Called by the book route handlers; calls the Books collection.
When:  Constructed once in the application lifespan and shared by all requests.

Operation Map:
    ┌────────────────┬──────────────────────────────────────────────────────┐
    │ upsert         │ replace_one(_id, whole document, upsert=True)        │
    │ upsert_partial │ update_one(_id, $set title/author/price, upsert=True)│
    │ soft_delete    │ update_one(_id + active, $set isDeleted/audit)       │
    │ restore        │ update_one(_id + deleted, $set isDeleted, $unset)    │
    │ get_all        │ find({})                                             │
    │ get_active     │ find(isDeleted != true)                              │
    │ get_by_id      │ find_one(_id + isDeleted != true)                    │
    └────────────────┴──────────────────────────────────────────────────────┘

Not-found Handling:
    A missing (or soft-deleted, for get_by_id) book is answered with
    None/False, never an exception. An id that is not 24 hex characters can
    never exist in the store, so lookups treat it the same way.

Error Handling:
    Driver network failures → StoreConnectivityError (→ 503)
    Any other driver/BSON failure, or a stored document that does not map
    to a Book → StoreProtocolError (→ 500)
    Both propagate to the caller unchanged; nothing is retried here.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from bson.errors import BSONError
from bson.objectid import ObjectId
from pydantic import ValidationError as SchemaValidationError
from pymongo.errors import ConnectionFailure, PyMongoError

from app.database import CollectionProvider
from app.exceptions import (
    ShelfmarkError,
    StoreConnectivityError,
    StoreProtocolError,
    ValidationError,
)
from app.models.book import (
    Book,
    DELETED_AT,
    DELETED_BY,
    IS_DELETED,
)

logger = logging.getLogger(__name__)

# Matches active books, including documents written before isDeleted existed
_ACTIVE = {IS_DELETED: {"$ne": True}}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_id(book_id: str) -> Optional[ObjectId]:
    """ObjectId for a well-formed id, None for anything else."""
    if isinstance(book_id, str) and ObjectId.is_valid(book_id):
        return ObjectId(book_id)
    return None


class BookService:
    """
    Book Record Store over a MongoDB collection.

    Args:
        collection_provider: Returns the Books collection. Called at the start
            of every operation, so a misconfigured store fails on first use
            rather than when the service is built.
    """

    def __init__(self, collection_provider: CollectionProvider):
        self._collection_provider = collection_provider

    @contextmanager
    def _store_errors(self, operation: str, book_id: Optional[str] = None) -> Iterator[None]:
        """Translate driver exceptions into the application hierarchy."""
        try:
            yield
        except ShelfmarkError:
            raise
        except ConnectionFailure as e:
            logger.error("Store unreachable during %s (id=%s): %s", operation, book_id, str(e))
            raise StoreConnectivityError(
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e
        except (PyMongoError, BSONError, SchemaValidationError) as e:
            # SchemaValidationError: a stored document that does not map to a Book
            logger.error(
                "Store error during %s (id=%s): %s", operation, book_id, str(e), exc_info=True
            )
            raise StoreProtocolError(
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e

    @staticmethod
    def _assign_id(book: Book) -> ObjectId:
        """
        Give the book an id if it has none; normalize it otherwise.

        Raises:
            ValidationError: non-empty id that is not 24 hex characters
        """
        if not book.id:
            oid = ObjectId()
        elif ObjectId.is_valid(book.id):
            oid = ObjectId(book.id)
        else:
            raise ValidationError(
                message=f"Book id '{book.id}' must be a 24 character hex string.",
                field="id",
            )
        book.id = str(oid)
        return oid

    # ── Writes ────────────────────────────────────────────────────────────

    async def upsert(self, book: Book) -> None:
        """
        Replace the whole stored document with `book`, inserting if absent.

        Side effect: `book.id` is set when it was empty.
        """
        oid = self._assign_id(book)
        # replace_one rewrites every field, so a soft-deleted book comes back active
        with self._store_errors("upsert", book.id):
            collection = self._collection_provider()
            result = await collection.replace_one({"_id": oid}, book.to_document(), upsert=True)
        logger.info(
            "Book %s upserted (%s)",
            book.id,
            "inserted" if result.upserted_id is not None else "replaced",
        )

    async def upsert_partial(self, book: Book) -> None:
        """
        Set only title, author and price on the stored document.

        On an existing document isDeleted/deletedAt/deletedBy are left as they
        are. On insert the document holds the id, the three content fields
        and isDeleted=false; nothing else is copied from `book`.

        Side effect: `book.id` is set when it was empty.
        """
        oid = self._assign_id(book)
        with self._store_errors("upsert_partial", book.id):
            collection = self._collection_provider()
            result = await collection.update_one(
                {"_id": oid},
                {
                    "$set": book.content_fields(),
                    # Applied only when the upsert inserts; existing lifecycle state is kept
                    "$setOnInsert": {IS_DELETED: False},
                },
                upsert=True,
            )
        logger.info(
            "Book %s partially upserted (%s)",
            book.id,
            "inserted" if result.upserted_id is not None else "updated",
        )

    async def soft_delete(self, book_id: str, deleted_by: str) -> bool:
        """
        Mark an active book as deleted and stamp the audit fields.

        Returns:
            True if a book was marked deleted; False if the id does not exist
            or the book is already deleted (its original audit fields stay).
        """
        oid = _parse_id(book_id)
        if oid is None:
            return False

        with self._store_errors("soft_delete", book_id):
            collection = self._collection_provider()
            # The active filter makes a second delete match nothing; first audit fields stay
            result = await collection.update_one(
                {"_id": oid, **_ACTIVE},
                {
                    "$set": {
                        IS_DELETED: True,
                        DELETED_AT: _utcnow(),
                        DELETED_BY: deleted_by,
                    }
                },
                upsert=False,
            )

        deleted = result.modified_count > 0
        if deleted:
            logger.info("Book %s soft-deleted by %s", book_id, deleted_by)
        return deleted

    async def restore(self, book_id: str) -> bool:
        """
        Reactivate a soft-deleted book and remove its audit fields.

        Returns:
            True if a book was restored; False if the id does not exist or
            the book is already active.
        """
        oid = _parse_id(book_id)
        if oid is None:
            return False

        with self._store_errors("restore", book_id):
            collection = self._collection_provider()
            # $unset, not null: audit fields exist only while isDeleted is true
            result = await collection.update_one(
                {"_id": oid, IS_DELETED: True},
                {
                    "$set": {IS_DELETED: False},
                    "$unset": {DELETED_AT: "", DELETED_BY: ""},
                },
                upsert=False,
            )

        restored = result.modified_count > 0
        if restored:
            logger.info("Book %s restored", book_id)
        return restored

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_all(self) -> List[Book]:
        """Every book, soft-deleted ones included."""
        with self._store_errors("get_all"):
            collection = self._collection_provider()
            docs = await collection.find({}).to_list(None)
            return [Book.from_document(doc) for doc in docs]

    async def get_active(self) -> List[Book]:
        """Only books that are not soft-deleted."""
        with self._store_errors("get_active"):
            collection = self._collection_provider()
            docs = await collection.find(dict(_ACTIVE)).to_list(None)
            return [Book.from_document(doc) for doc in docs]

    async def get_by_id(self, book_id: str) -> Optional[Book]:
        """The book with this id, or None if absent or soft-deleted."""
        oid = _parse_id(book_id)
        if oid is None:
            return None

        with self._store_errors("get_by_id", book_id):
            collection = self._collection_provider()
            doc = await collection.find_one({"_id": oid, **_ACTIVE})
            return Book.from_document(doc) if doc is not None else None
