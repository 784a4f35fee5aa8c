"""
StoryShare Backend — API Client Tests
=======================================

What:  Tests for StoryShareClient and validate_file().
How:   One httpx.MockTransport routes requests for the API host into the
       app (ASGITransport) and everything else to an in-memory object store.
       Presigned URLs are signed by a real boto3 client; signing is local,
       only head_bucket is patched.

Test Strategy:
    ✅ Presigned round trip: PUT the bytes, read them back at publicUrl
    ✅ The PUT carries every signed header (Content-Type, x-amz-acl)
    ✅ Non-2xx PUT or transport failure → UploadError
    ✅ Client pre-check blocks gif / >5MB before any request
    ✅ Failure envelope → ApiError carrying status and message
"""

from typing import List
from unittest.mock import patch

import boto3
import httpx
import pytest
import pytest_asyncio
from botocore.config import Config
from httpx import ASGITransport

from storyshare.client import MAX_CLIENT_FILE_SIZE, ApiError, StoryShareClient, validate_file
from storyshare.database import get_database
from storyshare.exceptions import UnsupportedMediaTypeError, UploadError, ValidationError
from storyshare.main import app
from storyshare.services.storage_service import StorageService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeObjectStore:
    """
    Accepts PUTs and serves GETs by URL path, whatever the bucket host.

    Like S3, a PUT to a presigned URL is refused unless it carries every
    header named in X-Amz-SignedHeaders.
    """

    def __init__(self):
        self.objects = {}
        self.requests = []
        self.put_status = 200
        self.fail_puts = False

    @staticmethod
    def missing_signed_headers(request: httpx.Request) -> List[str]:
        signed = request.url.params.get("X-Amz-SignedHeaders", "")
        return [name for name in signed.split(";") if name and name not in request.headers]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "PUT":
            if self.fail_puts:
                raise httpx.ConnectError("connection refused", request=request)
            missing = self.missing_signed_headers(request)
            if missing:
                return httpx.Response(
                    403,
                    text=f"<Error><Code>SignatureDoesNotMatch</Code><Missing>{missing}</Missing></Error>",
                )
            if self.put_status >= 300:
                return httpx.Response(self.put_status, text="<Error><Code>AccessDenied</Code></Error>")
            self.objects[request.url.path] = (request.content, request.headers.get("content-type"))
            return httpx.Response(200)
        if request.method == "GET" and request.url.path in self.objects:
            body, content_type = self.objects[request.url.path]
            return httpx.Response(200, content=body, headers={"Content-Type": content_type})
        return httpx.Response(404)


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def signing_storage():
    s3 = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(signature_version="s3v4", s3={"addressing_style": "virtual"}),
    )
    service = StorageService(
        bucket="storyshare-test-bucket",
        region="us-east-1",
        client=s3,
        key_prefix="story-covers",
    )
    with patch.object(s3, "head_bucket", return_value={}), patch(
        "storyshare.routes.upload.storage_service", service
    ):
        yield service


@pytest_asyncio.fixture
async def api(mock_db, object_store):
    """StoryShareClient whose HTTP traffic never leaves the process."""
    asgi = ASGITransport(app=app, raise_app_exceptions=False)

    async def route(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.test":
            return await asgi.handle_async_request(request)
        return object_store.handle(request)

    async def override_get_database():
        return mock_db

    app.dependency_overrides[get_database] = override_get_database
    async with httpx.AsyncClient(transport=httpx.MockTransport(route)) as http:
        yield StoryShareClient("http://api.test/", http_client=http)
    app.dependency_overrides.clear()


class TestValidateFile:
    """Client-side pre-check."""

    def test_accepts_allowed_types(self):
        for content_type in ("image/jpeg", "image/png", "image/webp"):
            validate_file(content_type, 1024)

    def test_rejects_gif(self):
        with pytest.raises(UnsupportedMediaTypeError):
            validate_file("image/gif", 10)

    def test_size_limit(self):
        validate_file("image/png", MAX_CLIENT_FILE_SIZE)
        with pytest.raises(ValidationError, match="5MB"):
            validate_file("image/png", MAX_CLIENT_FILE_SIZE + 1)


class TestPresignedUpload:
    """Strategy B through the client."""

    @pytest.mark.asyncio
    async def test_round_trip(self, api, object_store, signing_storage):
        uploaded = await api.upload_file_presigned(PNG_BYTES, "my cover.png", "image/png")

        assert uploaded.key.startswith("story-covers/")
        assert uploaded.key.endswith("-my_cover.png")
        assert uploaded.url == signing_storage.public_url(uploaded.key)
        assert uploaded.file_size == len(PNG_BYTES)

        put = next(r for r in object_store.requests if r.method == "PUT")
        assert put.headers["content-type"] == "image/png"
        assert put.headers["x-amz-acl"] == "public-read"
        assert "X-Amz-Signature" in str(put.url)
        assert "x-amz-acl" in put.url.params["X-Amz-SignedHeaders"].split(";")
        assert FakeObjectStore.missing_signed_headers(put) == []

        async with httpx.AsyncClient(transport=httpx.MockTransport(object_store.handle)) as http:
            fetched = await http.get(uploaded.url)
        assert fetched.status_code == 200
        assert fetched.content == PNG_BYTES
        assert fetched.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    async def test_put_with_content_type_only_is_refused(self, api, object_store, signing_storage):
        """The ACL is a signed header, so Content-Type alone does not satisfy the signature."""
        presigned = await api._request(
            "POST",
            "/api/upload/presigned",
            json={"fileName": "cover.png", "contentType": "image/png"},
        )
        assert presigned["headers"] == {"Content-Type": "image/png", "x-amz-acl": "public-read"}

        async with httpx.AsyncClient(transport=httpx.MockTransport(object_store.handle)) as http:
            bare = await http.put(
                presigned["uploadUrl"], content=PNG_BYTES, headers={"Content-Type": "image/png"}
            )
            signed = await http.put(
                presigned["uploadUrl"], content=PNG_BYTES, headers=presigned["headers"]
            )

        assert bare.status_code == 403
        assert signed.status_code == 200

    @pytest.mark.asyncio
    async def test_non_exact_content_type_rejected(self, api, object_store, signing_storage):
        with pytest.raises(ApiError) as exc_info:
            await api._request(
                "POST",
                "/api/upload/presigned",
                json={"fileName": "a.png", "contentType": "Image/PNG; q=1"},
            )
        assert exc_info.value.status_code == 400
        assert object_store.requests == []

    @pytest.mark.asyncio
    async def test_rejected_put_is_upload_error(self, api, object_store, signing_storage):
        object_store.put_status = 403

        with pytest.raises(UploadError, match="presigned URL"):
            await api.upload_file_presigned(PNG_BYTES, "cover.png", "image/png")
        assert object_store.objects == {}

    @pytest.mark.asyncio
    async def test_transport_failure_is_upload_error(self, api, object_store, signing_storage):
        object_store.fail_puts = True

        with pytest.raises(UploadError):
            await api.upload_file_presigned(PNG_BYTES, "cover.png", "image/png")

    @pytest.mark.asyncio
    async def test_gif_blocked_before_any_request(self, api, object_store):
        with pytest.raises(UnsupportedMediaTypeError):
            await api.upload_file_presigned(b"GIF89a", "anim.gif", "image/gif")
        assert object_store.requests == []


class TestServerUpload:
    """Strategy A through the client."""

    @pytest.mark.asyncio
    async def test_upload_file(self, api, mock_s3_client):
        service = StorageService(
            bucket="storyshare-test-bucket",
            region="us-east-1",
            client=mock_s3_client,
            key_prefix="story-covers",
        )
        with patch("storyshare.routes.upload.storage_service", service):
            uploaded = await api.upload_file(PNG_BYTES, "cover.png", "image/png")

        assert uploaded.url == service.public_url(uploaded.key)
        assert mock_s3_client.put_object.call_args.kwargs["Body"] == PNG_BYTES

    @pytest.mark.asyncio
    async def test_oversized_blocked_before_any_request(self, api, object_store):
        with pytest.raises(ValidationError):
            await api.upload_file(b"x" * (MAX_CLIENT_FILE_SIZE + 1), "big.png", "image/png")
        assert object_store.requests == []


class TestStoriesThroughClient:
    """Envelope unwrapping."""

    @pytest.mark.asyncio
    async def test_create_story_returns_data(self, api):
        story = await api.create_story("T", "C", "Ada")
        assert story["title"] == "T"
        assert story["authorName"] == "Ada"

    @pytest.mark.asyncio
    async def test_failure_envelope_raises_api_error(self, api):
        with pytest.raises(ApiError) as exc_info:
            await api.get_story("not-an-id")

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid story ID"

    @pytest.mark.asyncio
    async def test_list_stories(self, api, mock_db, sample_story_doc):
        mock_db.stories.cursor.to_list.return_value = [sample_story_doc]
        stories = await api.list_stories()
        assert [s["id"] for s in stories] == [str(sample_story_doc["_id"])]
