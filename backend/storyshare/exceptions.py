"""
StoryShare Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure the stores, the
       upload service, and the connection manager can report.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) turn them into
       the `{success: false, error}` envelope with the matching status code.
Who:   Raised by services and the connection manager; caught by global handlers.

Exception Hierarchy:
    StoryShareError (base)
    ├── ValidationError            → 400 Bad Request (missing / oversized field)
    ├── InvalidIdError             → 400 Bad Request (malformed identifier)
    ├── NotFoundError              → 404 Not Found
    ├── UnsupportedMediaTypeError  → 400 Bad Request (disallowed content type)
    ├── UploadError                → 500 Internal Server Error (storage provider)
    ├── DatabaseConnectionError    → 500 Internal Server Error (store unreachable)
    └── DatabaseError              → 500 Internal Server Error (query failed)

Nothing in this hierarchy is retried automatically.
"""

from typing import Any, Dict, Iterable, Optional


class StoryShareError(Exception):
    """
    Base exception for all StoryShare application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(StoryShareError):
    """
    Raised when client input fails validation.

    When:    Required field missing or blank, field longer than its limit,
             upload larger than the configured maximum.
    HTTP:    400 Bad Request

    `fields` lists every offending field by its wire name (e.g. "authorName").
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        fields: Optional[Iterable[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.fields = list(fields or [])
        ctx = context or {}
        if self.fields:
            ctx["fields"] = self.fields
        super().__init__(message=message, context=ctx)


class InvalidIdError(StoryShareError):
    """
    Raised when an identifier is not a well-formed ObjectId.

    Always raised before storage is queried, so a 400 here never means
    "looked it up and it wasn't there" (that's NotFoundError).
    """

    status_code = 400

    def __init__(
        self,
        resource: str = "story",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"Invalid {resource} ID", context=ctx)


class NotFoundError(StoryShareError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found

    Motor returns None for a missing document; the stores convert that None
    into this exception.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "story",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource.capitalize()} not found", context=ctx)


class UnsupportedMediaTypeError(StoryShareError):
    """
    Raised when an upload's content type is not on the image allow-list.

    Applies to both the server-proxied and the presigned upload strategies.
    """

    status_code = 400

    def __init__(
        self,
        content_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["content_type"] = content_type
        super().__init__(
            message="Only JPEG, PNG, and WebP images are allowed",
            context=ctx,
        )
        self.content_type = content_type


class UploadError(StoryShareError):
    """
    Raised when the object store rejects or fails an operation.

    When:    Bucket check/creation/policy failed, put_object failed, signing
             failed, or a client PUT against a signed URL returned non-2xx.
    HTTP:    500 Internal Server Error

    A half-provisioned bucket is left as-is; nothing is rolled back.
    """

    def __init__(
        self,
        message: str = "Failed to upload file",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseConnectionError(StoryShareError):
    """
    Raised when the document store is unreachable or misconfigured.

    When:    MONGODB_URI missing, URI unparsable, server selection timed out.
    HTTP:    500 Internal Server Error

    Propagates to the caller as-is; the connection manager does not retry.
    """

    def __init__(
        self,
        message: str = "Could not connect to the database",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(StoryShareError):
    """
    Raised when a database operation fails after a connection was obtained.

    The message returned to the client is always generic; driver details go
    to the server log via `context`.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
