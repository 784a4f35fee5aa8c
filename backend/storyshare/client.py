"""
StoryShare Backend — Async API Client
=======================================

What:  Python client for the StoryShare JSON API, including both upload
       strategies as a browser front end would run them.
How:   httpx.AsyncClient; every call unwraps the `{success, data, error}`
       envelope and raises ApiError when `success` is false.
Who:   Scripts, integration tests, and anything else talking to a running
       backend.

Presigned Upload Flow (upload_file_presigned):
    1. POST /api/upload/presigned {fileName, contentType}
    2. PUT the bytes to uploadUrl with the signed headers the server returned
       (Content-Type and x-amz-acl)
    3. Non-2xx on the PUT → UploadError (no retry)
    4. Return {url: publicUrl, key, ...}

validate_file() is the only size guard on the presigned path: the signed URL
pins the content type but accepts any body size.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from storyshare.exceptions import StoryShareError, UnsupportedMediaTypeError, UploadError, ValidationError
from storyshare.services.storage_service import ALLOWED_CONTENT_TYPES

logger = logging.getLogger(__name__)

MAX_CLIENT_FILE_SIZE = 5 * 1024 * 1024  # 5MB


class ApiError(StoryShareError):
    """The API answered with `success: false`."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message=message, context={"status_code": status_code})
        self.status_code = status_code


@dataclass(frozen=True)
class UploadedFile:
    url: str
    key: str
    file_name: str
    file_size: int
    content_type: str


def validate_file(content_type: Optional[str], size: int) -> None:
    """
    Client-side pre-check before either upload strategy.

    Raises:
        UnsupportedMediaTypeError: type not JPEG/PNG/WebP.
        ValidationError: file larger than 5MB.
    """
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedMediaTypeError(content_type=content_type)
    if size > MAX_CLIENT_FILE_SIZE:
        raise ValidationError(message="File size must be less than 5MB", fields=["file"])


class StoryShareClient:
    """
    Thin async wrapper around the API.

    Pass an existing `http_client` to share a connection pool (or to inject
    a mock transport); otherwise one is created and closed by `aclose()`.
    """

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "StoryShareClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._http.request(method, f"{self.base_url}{path}", **kwargs)
        try:
            payload = response.json()
        except ValueError:
            raise ApiError(response.status_code, f"Unexpected response ({response.status_code})")

        if not payload.get("success"):
            raise ApiError(response.status_code, payload.get("error") or "Request failed")
        return payload.get("data")

    # ── Stories ───────────────────────────────────────────────────────────

    async def list_stories(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/stories")

    async def create_story(
        self,
        title: str,
        content: str,
        author_name: str,
        cover_image: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {"title": title, "content": content, "authorName": author_name}
        if cover_image:
            body["coverImage"] = cover_image
        return await self._request("POST", "/api/stories", json=body)

    async def get_story(self, story_id: str) -> Dict[str, Any]:
        """Returns {"story": {...}, "comments": [...]}."""
        return await self._request("GET", f"/api/stories/{story_id}")

    # ── Comments ──────────────────────────────────────────────────────────

    async def list_comments(self, story_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/api/stories/{story_id}/comments")

    async def create_comment(self, story_id: str, text: str, commenter_name: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/api/stories/{story_id}/comments",
            json={"text": text, "commenterName": commenter_name},
        )

    # ── Uploads ───────────────────────────────────────────────────────────

    async def upload_file(self, content: bytes, file_name: str, content_type: str) -> UploadedFile:
        """Strategy A: send the bytes through the backend."""
        validate_file(content_type, len(content))
        data = await self._request(
            "POST",
            "/api/upload",
            files={"file": (file_name, content, content_type)},
        )
        return UploadedFile(
            url=data["url"],
            key=data.get("key", ""),
            file_name=file_name,
            file_size=len(content),
            content_type=content_type,
        )

    async def upload_file_presigned(self, content: bytes, file_name: str, content_type: str) -> UploadedFile:
        """Strategy B: get a signed URL, then PUT the bytes straight to storage."""
        validate_file(content_type, len(content))
        presigned = await self._request(
            "POST",
            "/api/upload/presigned",
            json={"fileName": file_name, "contentType": content_type},
        )

        try:
            response = await self._http.put(
                presigned["uploadUrl"],
                content=content,
                headers=presigned.get("headers") or {"Content-Type": content_type},
            )
        except httpx.HTTPError as e:
            logger.error("Presigned upload of %s failed: %s", file_name, str(e))
            raise UploadError(
                message="Failed to upload file with presigned URL",
                context={"key": presigned["key"], "error": str(e)},
            ) from e

        if not response.is_success:
            logger.error("Presigned upload of %s returned %d", file_name, response.status_code)
            raise UploadError(
                message="Failed to upload file with presigned URL",
                context={"key": presigned["key"], "status_code": response.status_code},
            )

        return UploadedFile(
            url=presigned["publicUrl"],
            key=presigned["key"],
            file_name=file_name,
            file_size=len(content),
            content_type=content_type,
        )
