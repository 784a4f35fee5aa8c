"""
StoryShare Backend — Comment Document Model
=============================================

What:  Shape of a document in the `comments` collection.

Document layout (camelCase, as stored):
    {
        "_id":           ObjectId,
        "storyId":       ObjectId  (story that existed at creation time),
        "text":          str  (≤ 500 chars),
        "commenterName": str  (≤ 100 chars),
        "timestamp":     datetime (UTC, millisecond precision)
    }

The storyId reference is not enforced by MongoDB; the handler checks the
story exists before the comment is inserted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from bson import ObjectId

from storyshare.models.story import utc_now

COMMENTS_COLLECTION = "comments"

COMMENT_TEXT_MAX_LENGTH = 500
COMMENTER_NAME_MAX_LENGTH = 100


@dataclass
class Comment:
    """A reply attached to exactly one story."""

    story_id: ObjectId
    text: str
    commenter_name: str
    timestamp: datetime = field(default_factory=utc_now)
    id: ObjectId = field(default_factory=ObjectId)

    def to_document(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "storyId": self.story_id,
            "text": self.text,
            "commenterName": self.commenter_name,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Comment":
        timestamp = doc["timestamp"]
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            id=doc["_id"],
            story_id=doc["storyId"],
            text=doc["text"],
            commenter_name=doc["commenterName"],
            timestamp=timestamp,
        )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, story_id={self.story_id}, timestamp='{self.timestamp}')>"
