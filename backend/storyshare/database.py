"""
StoryShare Backend — MongoDB Connection Management
====================================================

What:  Lazily established, process-wide MongoDB connection (motor), the
       FastAPI dependency that hands it to route handlers, and index setup.
How:   `ConnectionManager.get_connection()` memoizes one in-flight connect
       task. Every concurrent first caller awaits that same task, so exactly
       one `AsyncIOMotorClient` is created; later callers get the cached
       database handle without awaiting anything.
Who:   Route handlers via `Depends(get_database)`; the lifespan handler for
       index creation and shutdown.
When:  First connection on the first request that needs the database;
       closed on application shutdown.

Failure Model:
    A missing or unusable MONGODB_URI, or a server that does not answer the
    initial ping within the selection timeout, raises DatabaseConnectionError.
    The error propagates to every caller awaiting that attempt. Nothing is
    retried here; the memoized task is dropped so the next request starts a
    fresh attempt of its own.
"""

import asyncio
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from storyshare.config import settings
from storyshare.exceptions import DatabaseConnectionError
from storyshare.models.comment import COMMENTS_COLLECTION
from storyshare.models.story import STORIES_COLLECTION

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Owns the single motor client for the process.

    State:
        _database:    Ready handle once the first connect succeeded
        _connecting:  The one in-flight connect task (None when idle)

    The in-flight task is awaited through `asyncio.shield`, so a request
    that gets cancelled mid-connect does not cancel the connect for the
    other requests waiting on it.
    """

    def __init__(
        self,
        uri: str,
        database_name: str,
        connect_timeout_ms: int = 5000,
    ):
        self.uri = uri
        self.database_name = database_name
        self.connect_timeout_ms = connect_timeout_ms
        self._client: Optional[AsyncIOMotorClient] = None
        self._database: Optional[AsyncIOMotorDatabase] = None
        self._connecting: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self._database is not None

    async def get_connection(self) -> AsyncIOMotorDatabase:
        """
        Return a ready-to-use database handle, connecting on first use.

        Raises:
            DatabaseConnectionError: URI missing/invalid or server unreachable.
        """
        if self._database is not None:
            return self._database

        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._connect())

        task = self._connecting
        try:
            return await asyncio.shield(task)
        except Exception:
            # Only the failed attempt is forgotten; a newer one is left alone
            if self._connecting is task:
                self._connecting = None
            raise

    async def _connect(self) -> AsyncIOMotorDatabase:
        if not self.uri:
            raise DatabaseConnectionError(
                message="Could not connect to the database",
                context={"reason": "MONGODB_URI environment variable is not set"},
            )

        client: Optional[AsyncIOMotorClient] = None
        try:
            client = AsyncIOMotorClient(
                self.uri,
                serverSelectionTimeoutMS=self.connect_timeout_ms,
                appname="storyshare",
                tz_aware=True,
            )
            # motor connects lazily; ping forces server selection now
            await client.admin.command("ping")
        except (PyMongoError, ValueError) as e:
            logger.error("MongoDB connection failed: %s", str(e))
            if client is not None:
                client.close()
            raise DatabaseConnectionError(
                context={"error_type": type(e).__name__, "error": str(e)},
            ) from e

        self._client = client
        self._database = client[self.database_name]
        self._connecting = None
        logger.info("Connected to MongoDB database '%s'", self.database_name)
        return self._database

    def close(self) -> None:
        """Close the client (if any) and forget the cached handle."""
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB connection closed")
        self._client = None
        self._database = None
        self._connecting = None


# ── Singleton Instance ────────────────────────────────────────────────────
connection_manager = ConnectionManager(
    uri=settings.mongodb_uri,
    database_name=settings.mongodb_database,
    connect_timeout_ms=settings.mongodb_connect_timeout_ms,
)


# ── Database Dependency ───────────────────────────────────────────────────
async def get_database() -> AsyncIOMotorDatabase:
    """
    FastAPI dependency that provides the shared database handle.

    Example usage in a route:
        @router.get("/stories")
        async def list_stories(db: AsyncIOMotorDatabase = Depends(get_database)):
            ...

    Raises:
        DatabaseConnectionError, mapped to a 500 envelope by the global handler.
    """
    return await connection_manager.get_connection()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Create the listing indexes. `create_index` is a no-op when the index
    already exists, so this runs on every startup.
    """
    await db[STORIES_COLLECTION].create_index(
        [("createdAt", DESCENDING)],
        name="idx_stories_created_at",
    )
    await db[COMMENTS_COLLECTION].create_index(
        [("storyId", ASCENDING), ("timestamp", DESCENDING)],
        name="idx_comments_story_timestamp",
    )


async def dispose_connection() -> None:
    """Close the shared client during application shutdown."""
    connection_manager.close()
