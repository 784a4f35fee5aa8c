"""
StoryShare Backend — Story & Comment Route Handlers
=====================================================

What:  GET/POST /api/stories, GET /api/stories/{id},
       GET/POST /api/stories/{id}/comments.
How:   Thin adapters: parse the body, call StoryService/CommentService, wrap
       the result in the success envelope. Failures are raised as
       application exceptions and formatted by the global handlers in main.py.
Who:   Called by the front end's home, story, and create pages.

Id Checks:
    Every route with a story id rejects a malformed one with 400 before
    anything is queried. Comment creation checks, in order:
    id format (400) → story exists (404) → text/commenterName (400).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from storyshare.database import get_database
from storyshare.exceptions import InvalidIdError
from storyshare.models.validation import is_valid_object_id
from storyshare.schemas.story import (
    ApiResponse,
    CommentCreate,
    CommentResponse,
    ErrorResponse,
    StoryCreate,
    StoryDetailResponse,
    StoryResponse,
)
from storyshare.services.comment_service import comment_service
from storyshare.services.story_service import story_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Stories"])


@router.get(
    "/stories",
    response_model=ApiResponse[List[StoryResponse]],
    response_model_exclude_none=True,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List all stories, newest first",
)
async def list_stories(
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> ApiResponse[List[StoryResponse]]:
    stories = await story_service.list_stories(db)
    return ApiResponse(success=True, data=[StoryResponse.from_model(s) for s in stories])


@router.post(
    "/stories",
    status_code=201,
    response_model=ApiResponse[StoryResponse],
    response_model_exclude_none=True,
    responses={
        400: {"description": "Missing or oversized field", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Publish a new story",
)
async def create_story(
    body: StoryCreate,
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> ApiResponse[StoryResponse]:
    story = await story_service.create_story(
        db,
        title=body.title,
        content=body.content,
        author_name=body.author_name,
        cover_image=body.cover_image,
    )
    return ApiResponse(success=True, data=StoryResponse.from_model(story))


@router.get(
    "/stories/{story_id}",
    response_model=ApiResponse[StoryDetailResponse],
    response_model_exclude_none=True,
    responses={
        400: {"description": "Invalid story ID", "model": ErrorResponse},
        404: {"description": "Story not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a story with its comments",
)
async def get_story(
    story_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> ApiResponse[StoryDetailResponse]:
    story = await story_service.get_story(db, story_id)
    comments = await comment_service.list_comments(db, story.id)
    return ApiResponse(
        success=True,
        data=StoryDetailResponse(
            story=StoryResponse.from_model(story),
            comments=[CommentResponse.from_model(c) for c in comments],
        ),
    )


@router.get(
    "/stories/{story_id}/comments",
    response_model=ApiResponse[List[CommentResponse]],
    response_model_exclude_none=True,
    responses={
        400: {"description": "Invalid story ID", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List a story's comments, newest first",
)
async def list_comments(
    story_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> ApiResponse[List[CommentResponse]]:
    # The store returns [] for a malformed id; the API reports it as a 400
    if not is_valid_object_id(story_id):
        raise InvalidIdError(resource="story", resource_id=story_id)

    comments = await comment_service.list_comments(db, story_id)
    return ApiResponse(success=True, data=[CommentResponse.from_model(c) for c in comments])


@router.post(
    "/stories/{story_id}/comments",
    status_code=201,
    response_model=ApiResponse[CommentResponse],
    response_model_exclude_none=True,
    responses={
        400: {"description": "Invalid story ID or missing field", "model": ErrorResponse},
        404: {"description": "Story not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Add a comment to a story",
)
async def create_comment(
    story_id: str,
    body: CommentCreate,
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> ApiResponse[CommentResponse]:
    # get_story raises InvalidIdError / NotFoundError before the insert
    story = await story_service.get_story(db, story_id)

    comment = await comment_service.create_comment(
        db,
        story_id=story.id,
        text=body.text,
        commenter_name=body.commenter_name,
    )
    return ApiResponse(success=True, data=CommentResponse.from_model(comment))
