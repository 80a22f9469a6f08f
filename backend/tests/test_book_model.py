"""
Shelfmark Backend: Book Model Tests
=====================================

What:  Tests for the Book ↔ MongoDB document mapping.
How:   Pure functions, no store involved.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from bson import Decimal128
from bson.objectid import ObjectId
from pydantic import ValidationError as PydanticValidationError

from app.models.book import Book

BOOK_ID = "a1b2c3d4e5f6a1b2c3d4e5f6"


class TestToDocument:

    def test_active_book_layout(self):
        doc = Book(id=BOOK_ID, title="Dune", author="Herbert", price=Decimal("12.5")).to_document()

        assert doc == {
            "_id": ObjectId(BOOK_ID),
            "title": "Dune",
            "author": "Herbert",
            "price": Decimal128("12.5"),
            "isDeleted": False,
        }

    def test_deleted_book_carries_audit_fields(self):
        when = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        doc = Book(id=BOOK_ID, is_deleted=True, deleted_at=when, deleted_by="alice").to_document()

        assert doc["isDeleted"] is True
        assert doc["deletedAt"] == when
        assert doc["deletedBy"] == "alice"

    def test_audit_fields_dropped_while_active(self):
        """deletedAt/deletedBy only exist alongside isDeleted=true."""
        doc = Book(id=BOOK_ID, deleted_by="alice", deleted_at=datetime.now(timezone.utc)).to_document()

        assert "deletedAt" not in doc
        assert "deletedBy" not in doc

    def test_content_fields_exclude_lifecycle(self):
        fields = Book(id=BOOK_ID, title="Dune", is_deleted=True).content_fields()

        assert set(fields) == {"title", "author", "price"}


class TestFromDocument:

    def test_defaults_for_sparse_document(self):
        """A partially inserted document maps with default lifecycle values."""
        oid = ObjectId()
        book = Book.from_document({"_id": oid, "title": "Emma", "price": Decimal128("7")})

        assert book.id == str(oid)
        assert book.title == "Emma"
        assert book.author == ""
        assert book.price == Decimal("7")
        assert book.is_deleted is False
        assert book.deleted_at is None

    def test_double_price_kept_exact(self):
        book = Book.from_document({"_id": ObjectId(), "price": 12.5})

        assert book.price == Decimal("12.5")

    def test_audit_fields_ignored_on_active_document(self):
        book = Book.from_document(
            {"_id": ObjectId(), "isDeleted": False, "deletedBy": "stale"}
        )

        assert book.deleted_by is None

    def test_deleted_document(self):
        when = datetime(2024, 1, 15, tzinfo=timezone.utc)
        book = Book.from_document(
            {"_id": ObjectId(BOOK_ID), "isDeleted": True, "deletedAt": when, "deletedBy": "bob"}
        )

        assert book.id == BOOK_ID
        assert book.is_deleted is True
        assert book.deleted_at == when
        assert book.deleted_by == "bob"


class TestPricePrecision:

    def test_price_beyond_decimal128_rejected(self):
        """Decimal128 stores 34 significant digits; more would fail on write."""
        with pytest.raises(PydanticValidationError):
            Book(price=Decimal("0.123456789012345678901234567890123456789"))

    def test_price_at_decimal128_limit_maps(self):
        price = Decimal("1234567890.123456789012345678901234")

        doc = Book(id=BOOK_ID, price=price).to_document()

        assert doc["price"] == Decimal128(price)
