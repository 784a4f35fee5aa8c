"""
StoryShare Backend — Story Document Model
===========================================

What:  Shape of a document in the `stories` collection and its conversion to
       and from the BSON dict motor reads and writes.
Who:   Used by StoryService for inserts and reads; by database.ensure_indexes
       for the collection name.

Document layout (camelCase, as stored):
    {
        "_id":        ObjectId,
        "title":      str  (≤ 200 chars),
        "content":    str,
        "coverImage": str  (absent when no cover),
        "authorName": str  (≤ 100 chars),
        "createdAt":  datetime (UTC, millisecond precision)
    }

Lifecycle:
    Created once by StoryService.create_story and never updated or deleted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId

STORIES_COLLECTION = "stories"

TITLE_MAX_LENGTH = 200
AUTHOR_NAME_MAX_LENGTH = 100

# Projection for the listing view; _id is included implicitly
STORY_SUMMARY_PROJECTION = {
    "title": 1,
    "content": 1,
    "coverImage": 1,
    "authorName": 1,
    "createdAt": 1,
}


def utc_now() -> datetime:
    """
    Current UTC time truncated to milliseconds.

    BSON datetimes hold milliseconds, so truncating before insert makes the
    returned record equal to what a later read gives back.
    """
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


@dataclass
class Story:
    """A published story. Immutable once inserted."""

    title: str
    content: str
    author_name: str
    cover_image: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    id: ObjectId = field(default_factory=ObjectId)

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "_id": self.id,
            "title": self.title,
            "content": self.content,
            "authorName": self.author_name,
            "createdAt": self.created_at,
        }
        if self.cover_image:
            doc["coverImage"] = self.cover_image
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Story":
        created_at = doc["createdAt"]
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=doc["_id"],
            title=doc["title"],
            content=doc["content"],
            author_name=doc["authorName"],
            cover_image=doc.get("coverImage"),
            created_at=created_at,
        )

    def __repr__(self) -> str:
        return f"<Story(id={self.id}, title='{self.title[:30]}', created_at='{self.created_at}')>"
