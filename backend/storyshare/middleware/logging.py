"""
StoryShare Backend — Request Logging Middleware
=================================================

What:  One access-log line per HTTP request.
How:   Times the downstream call, then logs the matched route template
       (`/api/stories/{story_id}`, not the raw id), status, duration,
       request ID, and client IP. Upload requests also log their size.

Log level by status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO

Request bodies are never logged: story text and names are user content.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from storyshare.middleware.request_id import request_id_var

logger = logging.getLogger("storyshare.access")

QUIET_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


def _status_level(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log keyed by route template, so per-story URLs group together."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        fields = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "route": _route_template(request),
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }
        if fields["route"].startswith("/api/upload"):
            fields["content_length"] = request.headers.get("content-length", "unknown")

        logger.log(
            _status_level(response.status_code),
            "%(method)s %(route)s %(status)d %(duration_ms).1fms [%(request_id)s] from %(client_ip)s",
            fields,
            extra=fields,
        )
        return response
