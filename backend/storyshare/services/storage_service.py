"""
StoryShare Backend — Object Storage Service (Upload Service)
==============================================================

What:  Gets cover images into S3 (or an S3-compatible store) two ways, and
       provisions the bucket on demand for both.
How:   boto3 client; blocking calls run in a worker thread via
       asyncio.to_thread so the event loop keeps serving other requests.
Who:   Called by the upload route handlers and the health check.

Upload Strategies:
    A. Server-proxied (upload_image):
       allow-list check → size check → ensure bucket → put_object → {url, key}
    B. Presigned direct (create_presigned_upload):
       allow-list check → ensure bucket → signed PUT URL (5 min, public-read)
       → {upload_url, key, public_url, headers}; the client PUTs the bytes
       itself, sending every header in `headers` (Content-Type, x-amz-acl).
       The signed URL pins the content type but NOT the byte size; the
       client-side 5MB pre-check is the only size guard on this path.

Bucket Provisioning (ensure_bucket_exists, shared by A and B):
    head_bucket
      ├── ok        → done (every call checks; nothing else happens)
      └── 404       → create_bucket (LocationConstraint unless us-east-1)
                      → clear public access block → public-read policy
    Two concurrent first uploads can both see 404 and both create; the
    loser's BucketAlreadyOwnedByYou is treated as success. A failure midway
    leaves the bucket half-provisioned; nothing is cleaned up.

Key Format:
    <prefix>/<uuid4 hex>-<sanitized file name>
    e.g. story-covers/3f2a...9c-my_summer_photo.jpg
"""

import asyncio
import json
import logging
import re
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from storyshare.config import settings
from storyshare.exceptions import UnsupportedMediaTypeError, UploadError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

PUBLIC_READ_ACL = "public-read"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

# head_bucket reports a missing bucket with a bare 404 code
_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}

# us-east-1 rejects an explicit LocationConstraint
_DEFAULT_REGION = "us-east-1"


@dataclass(frozen=True)
class UploadResult:
    url: str
    key: str


@dataclass(frozen=True)
class PresignedUpload:
    upload_url: str
    key: str
    public_url: str
    # Headers covered by the signature; the PUT must send all of them
    headers: Dict[str, str] = field(default_factory=dict)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def sanitize_file_name(file_name: str) -> str:
    """Replace every character outside [A-Za-z0-9.-] with an underscore."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", file_name or "")
    return cleaned or "upload"


class StorageService:
    """
    S3 access for cover images.

    All constructor arguments default to settings; tests pass a mock
    `client` instead of letting the service build a real one.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        client=None,
        key_prefix: Optional[str] = None,
        public_base_url: Optional[str] = None,
        presigned_expires: Optional[int] = None,
        max_upload_size: Optional[int] = None,
    ):
        self.bucket = bucket if bucket is not None else settings.aws_s3_bucket
        self.region = region or settings.aws_region
        self.key_prefix = key_prefix if key_prefix is not None else settings.s3_key_prefix
        self.public_base_url = public_base_url or settings.s3_public_base_url
        self.presigned_expires = presigned_expires or settings.presigned_url_expires
        self.max_upload_size = max_upload_size or settings.max_upload_size
        self._client = client
        self._client_lock = threading.Lock()

    @property
    def client(self):
        """boto3 S3 client, created once on first use (possibly from a worker thread)."""
        if self._client is not None:
            return self._client
        with self._client_lock:
            if self._client is None:
                # The default boto3 session is not thread-safe
                self._client = boto3.client(
                    "s3",
                    region_name=self.region,
                    endpoint_url=settings.aws_s3_endpoint_url,
                    aws_access_key_id=settings.aws_access_key_id or None,
                    aws_secret_access_key=settings.aws_secret_access_key or None,
                    config=Config(
                        signature_version="s3v4",
                        s3={"addressing_style": "virtual"},
                    ),
                )
        return self._client

    # ── Naming ────────────────────────────────────────────────────────────

    def validate_content_type(self, content_type: Optional[str]) -> str:
        """
        Check a content type against the image allow-list.

        Matching is exact: "Image/PNG" or "image/png; q=1" are rejected. The
        value is stored (Strategy A) or signed (Strategy B) as given, so the
        caller's later PUT header matches the signature.

        Raises:
            UnsupportedMediaTypeError for anything not on the list.
        """
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise UnsupportedMediaTypeError(
                content_type=content_type,
                context={"allowed": list(ALLOWED_CONTENT_TYPES)},
            )
        return content_type

    def generate_key(self, file_name: str) -> str:
        unique_name = f"{uuid.uuid4().hex}-{sanitize_file_name(file_name)}"
        if self.key_prefix:
            return f"{self.key_prefix}/{unique_name}"
        return unique_name

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{quote(key)}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quote(key)}"

    # ── Bucket Provisioning ───────────────────────────────────────────────

    async def ensure_bucket_exists(self) -> None:
        """Create the bucket with a public-read policy if it is missing."""
        await asyncio.to_thread(self._ensure_bucket_exists)

    def _ensure_bucket_exists(self) -> None:
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return
        except ClientError as e:
            if _error_code(e) not in _MISSING_BUCKET_CODES:
                logger.error("Error checking bucket %s: %s", self.bucket, str(e))
                raise UploadError(context={"step": "head_bucket", "code": _error_code(e)}) from e
        except BotoCoreError as e:
            logger.error("Error checking bucket %s: %s", self.bucket, str(e))
            raise UploadError(context={"step": "head_bucket", "error": str(e)}) from e

        logger.info('Bucket "%s" not found. Creating...', self.bucket)
        try:
            self._create_bucket()
            self._attach_public_read_policy()
        except (ClientError, BotoCoreError) as e:
            logger.error("Error creating bucket %s: %s", self.bucket, str(e))
            raise UploadError(context={"step": "create_bucket", "error": str(e)}) from e
        logger.info('Bucket "%s" created', self.bucket)

    def _create_bucket(self) -> None:
        params = {
            "Bucket": self.bucket,
            # Object ACLs (public-read on presigned PUTs) need non-enforced ownership
            "ObjectOwnership": "BucketOwnerPreferred",
        }
        if self.region != _DEFAULT_REGION:
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.client.create_bucket(**params)
        except ClientError as e:
            if _error_code(e) != "BucketAlreadyOwnedByYou":
                raise
            logger.info('Bucket "%s" was created concurrently', self.bucket)

    def _attach_public_read_policy(self) -> None:
        try:
            self.client.delete_public_access_block(Bucket=self.bucket)
        except ClientError as e:
            if _error_code(e) not in {"NoSuchPublicAccessBlockConfiguration", "NotImplemented"}:
                raise

        policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "AllowPublicRead",
                    "Effect": "Allow",
                    "Principal": "*",
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{self.bucket}/*"],
                }
            ],
        }
        self.client.put_bucket_policy(Bucket=self.bucket, Policy=json.dumps(policy))

    # ── Strategy A: server-proxied upload ─────────────────────────────────

    async def upload_image(
        self,
        content: bytes,
        file_name: str,
        content_type: Optional[str],
    ) -> UploadResult:
        """
        Store image bytes received by the server.

        Raises:
            UnsupportedMediaTypeError: content type not allowed.
            ValidationError: empty file or larger than max_upload_size.
            UploadError: any storage failure (provisioning or put).
        """
        self.validate_content_type(content_type)

        if not content:
            raise ValidationError(message="Uploaded file is empty", fields=["file"])
        if len(content) > self.max_upload_size:
            max_mb = self.max_upload_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size must be less than {max_mb:.0f}MB",
                fields=["file"],
                context={"size": len(content), "max_size": self.max_upload_size},
            )

        await self.ensure_bucket_exists()
        key = self.generate_key(file_name)

        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error uploading %s to S3: %s", key, str(e))
            raise UploadError(
                message="Failed to upload file to S3",
                context={"step": "put_object", "key": key, "error": str(e)},
            ) from e

        logger.info("Uploaded %s (%d bytes, %s)", key, len(content), content_type)
        return UploadResult(url=self.public_url(key), key=key)

    # ── Strategy B: presigned direct upload ───────────────────────────────

    async def create_presigned_upload(
        self,
        file_name: str,
        content_type: Optional[str],
    ) -> PresignedUpload:
        """
        Issue a signed URL for one PUT of `content_type` to a fresh key.

        The caller must PUT with every header in the returned `headers`
        (Content-Type and x-amz-acl), within `presigned_expires` seconds; the
        object is readable publicly after.
        """
        self.validate_content_type(content_type)
        await self.ensure_bucket_exists()
        key = self.generate_key(file_name)

        try:
            upload_url = self.client.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": key,
                    "ContentType": content_type,
                    "ACL": PUBLIC_READ_ACL,
                },
                ExpiresIn=self.presigned_expires,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error generating presigned URL for %s: %s", key, str(e))
            raise UploadError(
                message="Failed to generate presigned URL",
                context={"step": "presign", "key": key, "error": str(e)},
            ) from e

        return PresignedUpload(
            upload_url=upload_url,
            key=key,
            public_url=self.public_url(key),
            # SigV4 signs x-amz-acl as a header rather than a query parameter
            headers={"Content-Type": content_type, "x-amz-acl": PUBLIC_READ_ACL},
        )

    # ── Health ────────────────────────────────────────────────────────────

    async def health_check(self) -> bool:
        """True when the bucket answers a head request. Never raises."""
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self.bucket)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning("Storage health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
storage_service = StorageService()
