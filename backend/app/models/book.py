"""
Shelfmark Backend: Book Record Model
======================================

What:  The Book record and its mapping to/from MongoDB documents.
How:   A Pydantic model holds the Python view (snake_case, str id, Decimal
       price); to_document/from_document translate to the stored layout.
Who:   Used by BookService for every read and write, and by the book routes.

Stored Layout (collection "Books"):
    {
        "_id":       ObjectId,      ← 24 hex chars when rendered as str
        "title":     str,
        "author":    str,
        "price":     Decimal128,
        "isDeleted": bool,
        "deletedAt": datetime,      ← only while isDeleted is true
        "deletedBy": str            ← only while isDeleted is true
    }

Lifecycle:
    1. Created by upsert / partial upsert (id generated when empty)
    2. Mutated by upsert (whole document) or partial upsert (title/author/price)
    3. Soft-deleted: isDeleted=true plus deletedAt/deletedBy
    4. Restored: isDeleted=false, audit fields removed
    5. Never physically deleted
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from bson import Decimal128
from bson.objectid import ObjectId
from pydantic import BaseModel, Field

# Field names as stored in MongoDB
TITLE = "title"
AUTHOR = "author"
PRICE = "price"
IS_DELETED = "isDeleted"
DELETED_AT = "deletedAt"
DELETED_BY = "deletedBy"

# Decimal128 holds at most 34 significant digits; longer prices raise decimal.Inexact
MAX_PRICE_DIGITS = 34


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if value is None:
        return Decimal("0")
    # Legacy documents may hold doubles; go through str to keep 12.5 == 12.5
    return Decimal(str(value))


class Book(BaseModel):
    """
    A book record.

    `id` is an empty string until the store assigns one. It is mutated in
    place by BookService.upsert / upsert_partial.
    """

    id: str = Field(default="", description="24 hex character identifier")
    title: str = ""
    author: str = ""
    price: Decimal = Field(default=Decimal("0"), max_digits=MAX_PRICE_DIGITS)
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """
        Full document for replace-or-insert.

        Audit fields are written only for a deleted record, keeping the
        "present iff isDeleted" invariant even if a caller sets them on an
        active one.
        """
        doc: Dict[str, Any] = {
            "_id": ObjectId(self.id),
            TITLE: self.title,
            AUTHOR: self.author,
            PRICE: Decimal128(self.price),
            IS_DELETED: self.is_deleted,
        }
        if self.is_deleted:
            if self.deleted_at is not None:
                doc[DELETED_AT] = self.deleted_at
            if self.deleted_by is not None:
                doc[DELETED_BY] = self.deleted_by
        return doc

    def content_fields(self) -> Dict[str, Any]:
        """The fields a partial upsert is allowed to set."""
        return {
            TITLE: self.title,
            AUTHOR: self.author,
            PRICE: Decimal128(self.price),
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Book":
        """Build a Book from a stored document; missing fields take defaults."""
        is_deleted = bool(doc.get(IS_DELETED, False))
        return cls(
            id=str(doc["_id"]),
            title=doc.get(TITLE) or "",
            author=doc.get(AUTHOR) or "",
            price=_to_decimal(doc.get(PRICE)),
            is_deleted=is_deleted,
            deleted_at=doc.get(DELETED_AT) if is_deleted else None,
            deleted_by=doc.get(DELETED_BY) if is_deleted else None,
        )
