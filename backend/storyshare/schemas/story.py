"""
StoryShare Backend — Pydantic Request/Response Schemas
=======================================================

What:  The API contract between the front end and the backend.
How:   FastAPI validates request bodies against these models and serializes
       responses through them. Field names are snake_case in Python and
       camelCase on the wire (`authorName`, `coverImage`, `uploadUrl`, ...).
Who:   Route handlers (request/response models) and the API client.

Envelope:
    Every response body is an ApiResponse:
        {"success": true,  "data": ...}
        {"success": false, "error": "Story not found"}

Request models keep every field Optional on purpose: a missing field must
reach the store's validators and come back as the 400 envelope naming that
field, instead of FastAPI's generic 422.
"""

from datetime import datetime
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from storyshare.models.comment import Comment
from storyshare.models.story import Story

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for every wire model: camelCase aliases, snake_case attributes."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


# ══════════════════════════════════════════════════════════════════════════
# Envelope
# ══════════════════════════════════════════════════════════════════════════


class ApiResponse(CamelModel, Generic[T]):
    """Uniform `{success, data?, error?}` wrapper used by every handler."""

    success: bool = Field(description="True when the request succeeded")
    data: Optional[T] = Field(default=None, description="Payload on success")
    error: Optional[str] = Field(default=None, description="User-facing message on failure")


class ErrorResponse(CamelModel):
    """Failure envelope, used for OpenAPI docs of error responses."""

    success: bool = False
    error: str


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class StoryResponse(CamelModel):
    """
    A story as returned by the API.

    Also used for the listing (summary) view: the summary projection keeps
    every field of a story, so both views share this model.
    """

    id: str = Field(description="Story identifier (24-char hex ObjectId)")
    title: str
    content: str
    cover_image: Optional[str] = Field(default=None, description="Public URL of the cover")
    author_name: str
    created_at: datetime = Field(description="Creation time (UTC ISO 8601)")

    @classmethod
    def from_model(cls, story: Story) -> "StoryResponse":
        return cls(
            id=str(story.id),
            title=story.title,
            content=story.content,
            cover_image=story.cover_image,
            author_name=story.author_name,
            created_at=story.created_at,
        )


class CommentResponse(CamelModel):
    id: str
    story_id: str
    text: str
    commenter_name: str
    timestamp: datetime

    @classmethod
    def from_model(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=str(comment.id),
            story_id=str(comment.story_id),
            text=comment.text,
            commenter_name=comment.commenter_name,
            timestamp=comment.timestamp,
        )


class StoryDetailResponse(CamelModel):
    """GET /api/stories/{id}: the story plus its comments, newest first."""

    story: StoryResponse
    comments: List[CommentResponse]


class UploadResponse(CamelModel):
    url: str = Field(description="Public URL of the stored object")
    key: str = Field(description="Object key inside the bucket")


class PresignedUploadResponse(CamelModel):
    upload_url: str = Field(description="Signed URL accepting one PUT (expires in 5 minutes)")
    key: str
    public_url: str = Field(description="Where the object is readable after the PUT")
    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Headers the signature covers; send all of them on the PUT",
    )


class HealthResponse(CamelModel):
    status: str = Field(description="healthy, degraded, or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    storage: str = Field(description="available or unavailable")
    uptime_seconds: float


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class StoryCreate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    author_name: Optional[str] = None
    cover_image: Optional[str] = None


class CommentCreate(CamelModel):
    text: Optional[str] = None
    commenter_name: Optional[str] = None


class PresignedUploadRequest(CamelModel):
    file_name: Optional[str] = None
    content_type: Optional[str] = None
