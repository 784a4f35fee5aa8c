"""
StoryShare Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn storyshare.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:   Request ID → Logging → GZip → CORS        │
    │                                                          │
    │  Routes:       /api/stories[/{id}[/comments]]            │
    │                /api/upload[/presigned]    /health        │
    │                                                          │
    │  Exception Handlers (all return the envelope):           │
    │    Validation / InvalidId / MediaType → 400              │
    │    NotFound → 404                                        │
    │    Upload / DatabaseConnection / Database → 500          │
    │    anything else → 500, fixed message                    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → required settings (missing bucket aborts startup)
              → index creation (best effort; the connection stays lazy)
    Shutdown: close the MongoDB client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storyshare import __version__
from storyshare.config import settings
from storyshare.database import connection_manager, dispose_connection, ensure_indexes
from storyshare.exceptions import StoryShareError
from storyshare.middleware.logging import RequestLoggingMiddleware
from storyshare.middleware.request_id import RequestIDMiddleware, request_id_var
from storyshare.routes import health, stories, upload

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure root logging once, before anything else logs.

    Format: 2024-01-15T12:00:00 [INFO] storyshare.services.story_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Driver and HTTP libraries log every operation at DEBUG/INFO
    for noisy in ("uvicorn.access", "pymongo", "botocore", "boto3", "urllib3", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("StoryShare Backend starting up...")

    # Missing bucket name is fatal: the ValueError aborts startup
    settings.validate_required_for_production()

    try:
        db = await connection_manager.get_connection()
        await ensure_indexes(db)
        logger.info("MongoDB indexes ensured")
    except (StoryShareError, PyMongoError) as e:
        # Requests will connect lazily and report the failure themselves
        logger.warning("Could not prepare MongoDB at startup: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("StoryShare Backend shutting down...")
    await dispose_connection()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_envelope(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map every failure to the `{success: false, error}` envelope.

    `exc.context` is logged server-side only; the response carries the
    user-facing message.
    """

    @app.exception_handler(StoryShareError)
    async def handle_application_error(request: Request, exc: StoryShareError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid, type(exc).__name__, exc.message, exc.context,
            )
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return error_envelope(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed JSON or wrong field types: a client error, so 400."""
        rid = request_id_var.get("")
        errors = exc.errors()
        message = "Invalid request body"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            detail = first.get("msg", "")
            message = f"Invalid request: {location}: {detail}" if location else f"Invalid request: {detail}"
        logger.warning("[%s] Request validation failed: %s", rid, message)
        return error_envelope(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return error_envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return error_envelope(500, UNEXPECTED_ERROR_MESSAGE)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="StoryShare API",
        description=(
            "Publish short stories with optional cover images and comment on "
            "other people's stories."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(stories.router)
    app.include_router(upload.router)
    app.include_router(health.router)

    return app


app = create_app()
