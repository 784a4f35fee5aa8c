"""
StoryShare Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    ├── mock_db:          MagicMock standing in for an AsyncIOMotorDatabase
    ├── mock_s3_client:   MagicMock standing in for a boto3 S3 client
    ├── sample_story_doc / sample_comment_doc: stored documents
    └── test_client:      HTTPX AsyncClient bound to the app, DB dependency overridden
"""

import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Set BEFORE any storyshare import so the settings singleton picks them up
os.environ["MONGODB_URI"] = ""
os.environ["AWS_S3_BUCKET"] = "storyshare-test-bucket"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["LOG_LEVEL"] = "WARNING"


class FakeCollection:
    """
    Minimal stand-in for an AsyncIOMotorCollection.

    find() returns a cursor mock whose sort() returns itself and whose
    to_list() resolves to `documents`; insert_one/find_one are AsyncMocks.
    """

    def __init__(self, documents=None):
        self.cursor = MagicMock()
        self.cursor.sort.return_value = self.cursor
        self.cursor.to_list = AsyncMock(return_value=list(documents or []))
        self.find = MagicMock(return_value=self.cursor)
        self.find_one = AsyncMock(return_value=None)
        self.insert_one = AsyncMock()
        self.create_index = AsyncMock()


@pytest.fixture
def mock_db():
    """
    Provides a mock motor database.

    Usage:
        async def test_get_story(mock_db):
            mock_db.stories.find_one.return_value = doc
            story = await story_service.get_story(mock_db, str(doc["_id"]))
    """
    collections = {"stories": FakeCollection(), "comments": FakeCollection()}
    db = MagicMock()
    db.__getitem__.side_effect = collections.__getitem__
    db.stories = collections["stories"]
    db.comments = collections["comments"]
    db.command = AsyncMock(return_value={"ok": 1})
    return db


@pytest.fixture
def mock_s3_client():
    """A boto3-shaped S3 client whose calls all succeed by default."""
    client = MagicMock()
    client.head_bucket.return_value = {}
    client.generate_presigned_url.return_value = (
        "https://storyshare-test-bucket.s3.amazonaws.com/story-covers/x.png?X-Amz-Signature=abc"
    )
    return client


@pytest.fixture
def sample_story_doc():
    return {
        "_id": ObjectId(),
        "title": "The Lighthouse Keeper",
        "content": "Every night for forty years, the light never failed.",
        "authorName": "Ada",
        "coverImage": "https://storyshare-test-bucket.s3.us-east-1.amazonaws.com/story-covers/a-b.png",
        "createdAt": datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
    }


@pytest.fixture
def sample_comment_doc(sample_story_doc):
    return {
        "_id": ObjectId(),
        "storyId": sample_story_doc["_id"],
        "text": "Beautiful ending.",
        "commenterName": "Bob",
        "timestamp": datetime(2024, 1, 15, 13, 0, 0, tzinfo=timezone.utc),
    }


@pytest_asyncio.fixture
async def test_client(mock_db):
    """
    HTTPX AsyncClient talking to the app in-process.

    The lifespan is not run (ASGITransport does not send lifespan events),
    and get_database is overridden with `mock_db`. Unhandled exceptions are
    turned into responses instead of being re-raised into the test.
    """
    from storyshare.database import get_database
    from storyshare.main import app

    async def override_get_database():
        return mock_db

    app.dependency_overrides[get_database] = override_get_database
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
