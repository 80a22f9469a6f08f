"""
Shelfmark Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── fake_collection: In-memory stand-in for the MongoDB Books collection
    ├── book_service:    BookService wired to fake_collection
    ├── sample_book:     Unsaved Book with no id
    ├── fake_store:      Object with an async ping() for the health route
    ├── test_app:        Fresh app with fake_store and book_service attached
    └── test_client:     HTTPX AsyncClient talking to test_app
"""

import copy
import os
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
from unittest.mock import AsyncMock, MagicMock

# Override settings for testing BEFORE any app imports
os.environ["MONGODB_URL"] = "mongodb://localhost:27017"
os.environ["OTLP_ENDPOINT"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from bson.objectid import ObjectId
from httpx import AsyncClient, ASGITransport
from pymongo.results import UpdateResult

from app.models.book import Book
from app.services.book_service import BookService


# ══════════════════════════════════════════════════════════════════════════
# In-memory collection
# ══════════════════════════════════════════════════════════════════════════

_MISSING = object()


def _matches(doc: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """Equality and $ne, the only operators BookService uses."""
    for key, condition in query.items():
        value = doc.get(key, _MISSING)
        if isinstance(condition, dict) and "$ne" in condition:
            if value is not _MISSING and value == condition["$ne"]:
                return False
        elif value is _MISSING or value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    """
    Implements find_one / find / replace_one / update_one over a dict.

    Documents are deep-copied on the way in and out, like a real round trip.
    `docs` is keyed by ObjectId so tests can inspect stored state directly.
    """

    def __init__(self):
        self.docs: Dict[ObjectId, Dict[str, Any]] = {}

    def _first(self, query: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        for doc in self.docs.values():
            if _matches(doc, query):
                return doc
        return None

    async def find_one(self, query: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        doc = self._first(query)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, query: Optional[Mapping[str, Any]] = None) -> FakeCursor:
        query = query or {}
        return FakeCursor([copy.deepcopy(d) for d in self.docs.values() if _matches(d, query)])

    async def replace_one(self, query, replacement, upsert=False) -> UpdateResult:
        existing = self._first(query)
        if existing is not None:
            new_doc = copy.deepcopy(dict(replacement))
            new_doc["_id"] = existing["_id"]
            modified = int(new_doc != existing)
            self.docs[existing["_id"]] = new_doc
            return UpdateResult({"n": 1, "nModified": modified}, True)
        if upsert:
            new_doc = copy.deepcopy(dict(replacement))
            new_doc.setdefault("_id", query["_id"])
            self.docs[new_doc["_id"]] = new_doc
            return UpdateResult({"n": 1, "nModified": 0, "upserted": new_doc["_id"]}, True)
        return UpdateResult({"n": 0, "nModified": 0}, True)

    async def update_one(self, query, update, upsert=False) -> UpdateResult:
        existing = self._first(query)
        if existing is not None:
            before = copy.deepcopy(existing)
            existing.update(copy.deepcopy(update.get("$set", {})))
            for key in update.get("$unset", {}):
                existing.pop(key, None)
            return UpdateResult({"n": 1, "nModified": int(existing != before)}, True)
        if upsert:
            # Mongo seeds an upserted document with the filter's equality fields
            new_doc = {k: v for k, v in query.items() if not isinstance(v, dict)}
            new_doc.update(copy.deepcopy(update.get("$set", {})))
            new_doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
            self.docs[new_doc["_id"]] = new_doc
            return UpdateResult({"n": 1, "nModified": 0, "upserted": new_doc["_id"]}, True)
        return UpdateResult({"n": 0, "nModified": 0}, True)


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_collection():
    return FakeCollection()


@pytest.fixture
def book_service(fake_collection):
    return BookService(lambda: fake_collection)


@pytest.fixture
def sample_book():
    """The running example: an unsaved copy of Dune."""
    return Book(title="Dune", author="Herbert", price=Decimal("12.5"))


@pytest.fixture
def fake_store():
    """Stands in for MongoStore on app.state; only ping() is used."""
    store = MagicMock()
    store.ping = AsyncMock(return_value=True)
    return store


@pytest.fixture
def test_app(book_service, fake_store):
    """
    A fresh app with the store and service attached.

    ASGITransport does not run the lifespan, so app.state is filled here.
    """
    from app.main import create_app

    app = create_app()
    app.state.store = fake_store
    app.state.book_service = book_service
    return app


@pytest_asyncio.fixture
async def test_client(test_app):
    """HTTPX AsyncClient bound to test_app."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
