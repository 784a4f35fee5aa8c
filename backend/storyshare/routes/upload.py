"""
StoryShare Backend — Upload Route Handlers
============================================

What:  POST /api/upload (server-proxied) and POST /api/upload/presigned
       (signed URL for a direct client PUT).
How:   Reads the multipart file or JSON body, delegates to StorageService,
       returns the success envelope.
Who:   Called by the story form when the author picks a cover image.

Request Flow (POST /api/upload):
    1. Client sends multipart/form-data with a 'file' field
    2. No file → 400 "No file uploaded"
    3. At most max_upload_size + 1 bytes are read into memory
    4. StorageService checks type and size, provisions the bucket, stores
    5. 200 with {url, key}

Request Flow (POST /api/upload/presigned):
    1. Client sends {fileName, contentType}
    2. Missing either → 400; disallowed type → 400
    3. 200 with {uploadUrl, key, publicUrl, headers}; the client PUTs the
       bytes with every header in `headers`
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, UploadFile

from storyshare.exceptions import ValidationError
from storyshare.schemas.story import (
    ApiResponse,
    ErrorResponse,
    PresignedUploadRequest,
    PresignedUploadResponse,
    UploadResponse,
)
from storyshare.services.storage_service import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Upload"])


@router.post(
    "/upload",
    response_model=ApiResponse[UploadResponse],
    responses={
        400: {"description": "No file, disallowed type, or too large", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Upload a cover image through the server",
)
async def upload_file(
    file: Optional[UploadFile] = File(
        default=None,
        description="Cover image (JPEG, PNG, or WebP, max 5MB)",
    ),
) -> ApiResponse[UploadResponse]:
    if file is None:
        raise ValidationError(message="No file uploaded", fields=["file"])

    try:
        # One byte past the limit is enough for the service to reject it
        content = await file.read(storage_service.max_upload_size + 1)
        logger.info(
            "Received upload: filename=%s, content_type=%s, read=%d bytes",
            file.filename or "unknown",
            file.content_type,
            len(content),
        )
        result = await storage_service.upload_image(
            content=content,
            file_name=file.filename or "upload",
            content_type=file.content_type,
        )
    finally:
        await file.close()

    return ApiResponse(success=True, data=UploadResponse(url=result.url, key=result.key))


@router.post(
    "/upload/presigned",
    response_model=ApiResponse[PresignedUploadResponse],
    responses={
        400: {"description": "Missing fields or disallowed type", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Get a signed URL for a direct upload to storage",
)
async def create_presigned_upload(
    body: PresignedUploadRequest,
) -> ApiResponse[PresignedUploadResponse]:
    missing = [
        name
        for name, value in (("fileName", body.file_name), ("contentType", body.content_type))
        if not value
    ]
    if missing:
        raise ValidationError(message="fileName and contentType are required", fields=missing)

    presigned = await storage_service.create_presigned_upload(
        file_name=body.file_name,
        content_type=body.content_type,
    )
    return ApiResponse(
        success=True,
        data=PresignedUploadResponse(
            upload_url=presigned.upload_url,
            key=presigned.key,
            public_url=presigned.public_url,
            headers=presigned.headers,
        ),
    )
