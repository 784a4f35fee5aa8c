"""
StoryShare Backend — Story Service (Story Store)
==================================================

What:  Create, fetch, and list Story documents.
How:   Validates input with the plain validators in models.validation, then
       issues single-document motor operations. No updates, no deletes.
Who:   Called by the stories route handlers.

Error Translation:
    invalid input            → ValidationError (400)
    malformed identifier     → InvalidIdError (400), raised before any query
    no document for that id  → NotFoundError (404)
    driver failure           → DatabaseError (500)
"""

import logging
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from storyshare.exceptions import DatabaseError, InvalidIdError, NotFoundError, ValidationError
from storyshare.models.story import STORIES_COLLECTION, STORY_SUMMARY_PROJECTION, Story
from storyshare.models.validation import is_valid_object_id, validate_story

logger = logging.getLogger(__name__)

# Newest first; _id breaks ties between stories created in the same millisecond
NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


class StoryService:
    """
    Business logic for stories. Stateless: the database handle is passed
    into every call.
    """

    async def list_stories(self, db: AsyncIOMotorDatabase) -> List[Story]:
        """
        Return every story, newest first, projected to the summary fields.

        No pagination: the whole collection is returned.
        """
        try:
            cursor = db[STORIES_COLLECTION].find({}, STORY_SUMMARY_PROJECTION).sort(NEWEST_FIRST)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Database error listing stories: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch stories",
                context={"error_type": type(e).__name__},
            ) from e
        return [Story.from_document(doc) for doc in documents]

    async def create_story(
        self,
        db: AsyncIOMotorDatabase,
        title: Optional[str],
        content: Optional[str],
        author_name: Optional[str],
        cover_image: Optional[str] = None,
    ) -> Story:
        """
        Validate and insert a new story.

        Returns:
            The full record, including the generated id and createdAt.

        Raises:
            ValidationError: a required field is missing/blank or too long.
            DatabaseError: the insert failed.
        """
        result = validate_story(title, content, author_name, cover_image)
        if not result.ok:
            raise ValidationError(
                message=result.message,
                fields=result.fields,
                context={"kind": result.kind},
            )

        story = Story(
            title=title,
            content=content,
            author_name=author_name,
            cover_image=cover_image or None,
        )
        try:
            await db[STORIES_COLLECTION].insert_one(story.to_document())
        except PyMongoError as e:
            logger.error("Database error creating story: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create story",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Story created: %s by %s", story.id, story.author_name)
        return story

    async def get_story(self, db: AsyncIOMotorDatabase, story_id: str) -> Story:
        """
        Fetch one story by id.

        The id format is checked first so "malformed id" (400) and
        "not found" (404) stay distinguishable; a malformed id never reaches
        the database.
        """
        if not is_valid_object_id(story_id):
            raise InvalidIdError(resource="story", resource_id=str(story_id))

        try:
            doc = await db[STORIES_COLLECTION].find_one({"_id": ObjectId(story_id)})
        except PyMongoError as e:
            logger.error("Database error fetching story %s: %s", story_id, str(e))
            raise DatabaseError(
                message="Failed to fetch story",
                context={"story_id": str(story_id), "error_type": type(e).__name__},
            ) from e

        if doc is None:
            raise NotFoundError(resource="story", resource_id=str(story_id))
        return Story.from_document(doc)


# ── Singleton Instance ────────────────────────────────────────────────────
story_service = StoryService()
