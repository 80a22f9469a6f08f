"""
Shelfmark Backend: Document Store Connection Management
=========================================================

What:  Owns the single long-lived MongoDB client and hands out collections.
How:   MongoStore is constructed once in the application lifespan with the
       configured connection string. The AsyncMongoClient itself is created
       lazily on first use and then reused by every request.
Who:   main.py (construction and shutdown), health route (ping),
       BookService (through a collection provider).

Failure Model:
    - Empty connection string        → StoreConnectivityError on first use
    - Malformed connection string    → StoreConnectivityError on first use
    - Unreachable server             → driver raises on the first operation
                                       (translated by BookService)
    Nothing here retries. The driver's serverSelectionTimeoutMS is the only
    timeout applied.

Concurrency:
    AsyncMongoClient is safe for concurrent use by many coroutines and keeps
    its own connection pool, so no per-request acquire/release is needed.
    Client creation is synchronous, so two coroutines cannot race on it
    within one event loop.
"""

import logging
from typing import Callable, Dict, Optional

from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import ConfigurationError, PyMongoError

from app.exceptions import StoreConnectivityError

logger = logging.getLogger(__name__)

# What: Zero-argument callable returning the collection to operate on.
# BookService calls it at the start of every operation, so connection
# problems surface on first use instead of at construction.
CollectionProvider = Callable[[], AsyncCollection]


class MongoStore:
    """
    Lazily connected handle to one MongoDB database.

    Attributes:
        database_name: Database holding the application collections
        timeout_ms:    Driver server selection timeout in milliseconds
    """

    def __init__(
        self,
        url: Optional[str],
        database_name: str = "BookStore",
        timeout_ms: int = 5000,
        app_name: str = "shelfmark",
    ):
        self._url = url
        self.database_name = database_name
        self.timeout_ms = timeout_ms
        self._app_name = app_name
        self._client: Optional[AsyncMongoClient] = None
        self._collections: Dict[str, AsyncCollection] = {}

    @property
    def is_connected(self) -> bool:
        """True once the client has been created (not a liveness check)."""
        return self._client is not None

    def _get_client(self) -> AsyncMongoClient:
        if self._client is not None:
            return self._client

        if not self._url or not self._url.strip():
            logger.error("Document store used without a connection string")
            raise StoreConnectivityError(
                message="The book store is not configured. Set MONGODB_URL and restart.",
                context={"reason": "missing_connection_string"},
            )

        try:
            self._client = AsyncMongoClient(
                self._url,
                tz_aware=True,
                serverSelectionTimeoutMS=self.timeout_ms,
                appname=self._app_name,
            )
        except (ConfigurationError, ValueError, TypeError) as e:
            # InvalidURI is a ConfigurationError; bad ports surface as ValueError
            logger.error("Invalid MongoDB connection string: %s", type(e).__name__)
            raise StoreConnectivityError(
                message="The book store connection string is invalid.",
                context={"reason": "invalid_connection_string", "error_type": type(e).__name__},
            ) from e

        logger.info(
            "MongoDB client created (database=%s, timeout=%dms)",
            self.database_name,
            self.timeout_ms,
        )
        return self._client

    def get_collection(self, name: str) -> AsyncCollection:
        """
        Return the named collection, creating the client on first call.

        Raises:
            StoreConnectivityError: connection string missing or malformed
        """
        collection = self._collections.get(name)
        if collection is None:
            collection = self._get_client()[self.database_name][name]
            self._collections[name] = collection
        return collection

    def collection_provider(self, name: str) -> CollectionProvider:
        """Bind a collection name into a provider for BookService."""
        return lambda: self.get_collection(name)

    async def ping(self) -> bool:
        """
        Lightweight liveness probe used by GET /health.

        Returns False instead of raising so health checks always answer.
        """
        try:
            client = self._get_client()
            await client.admin.command("ping")
            return True
        except (StoreConnectivityError, PyMongoError) as e:
            logger.warning("Document store ping failed: %s", type(e).__name__)
            return False

    async def close(self) -> None:
        """
        What:  Closes the client and its connection pool.
        When:  Called during application shutdown (lifespan handler).
        """
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._collections.clear()
            logger.info("MongoDB client closed")
