"""
StoryShare Backend — Comment Service (Comment Store)
======================================================

What:  Create and list Comment documents for a story.
Who:   Called by the comment route handlers and the story detail handler.

Caller Contract:
    create_comment() assumes the handler already checked that story_id is
    well-formed and that the story exists (InvalidIdError / NotFoundError
    are the handler's job). This service only validates text/commenterName.

    list_comments() does not check that the story exists. A malformed id
    returns an empty list here without a query; handlers that want a 400
    validate the id themselves.
"""

import logging
from typing import List, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from storyshare.exceptions import DatabaseError, ValidationError
from storyshare.models.comment import COMMENTS_COLLECTION, Comment
from storyshare.models.validation import is_valid_object_id, validate_comment

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("timestamp", DESCENDING), ("_id", DESCENDING)]


class CommentService:
    """Business logic for comments. Stateless."""

    async def list_comments(
        self,
        db: AsyncIOMotorDatabase,
        story_id: Union[str, ObjectId],
    ) -> List[Comment]:
        """Return all comments of a story, newest first."""
        if not is_valid_object_id(story_id):
            return []

        try:
            cursor = db[COMMENTS_COLLECTION].find({"storyId": ObjectId(story_id)}).sort(NEWEST_FIRST)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Database error listing comments for %s: %s", story_id, str(e))
            raise DatabaseError(
                message="Failed to fetch comments",
                context={"story_id": str(story_id), "error_type": type(e).__name__},
            ) from e
        return [Comment.from_document(doc) for doc in documents]

    async def create_comment(
        self,
        db: AsyncIOMotorDatabase,
        story_id: Union[str, ObjectId],
        text: str,
        commenter_name: str,
    ) -> Comment:
        """
        Validate and insert a comment on an existing story.

        Raises:
            ValidationError: text/commenterName missing, blank, or too long.
            DatabaseError: the insert failed.
        """
        result = validate_comment(text, commenter_name)
        if not result.ok:
            raise ValidationError(
                message=result.message,
                fields=result.fields,
                context={"kind": result.kind},
            )

        comment = Comment(
            story_id=ObjectId(story_id),
            text=text,
            commenter_name=commenter_name,
        )
        try:
            await db[COMMENTS_COLLECTION].insert_one(comment.to_document())
        except PyMongoError as e:
            logger.error("Database error creating comment on %s: %s", story_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create comment",
                context={"story_id": str(story_id), "error_type": type(e).__name__},
            ) from e

        logger.info("Comment %s added to story %s", comment.id, comment.story_id)
        return comment


# ── Singleton Instance ────────────────────────────────────────────────────
comment_service = CommentService()
