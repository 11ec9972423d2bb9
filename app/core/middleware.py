"""Shared FastAPI middleware."""

from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse

from app.core.config import get_settings

logger = logging.getLogger("app.requests")

BODY_METHODS = {"POST", "PUT", "PATCH"}


def _too_large(limit: int) -> JSONResponse:
    return JSONResponse({"detail": f"Payload too large (max {limit} bytes)."}, status_code=413)


class MaxBodySizeMiddleware(BaseHTTPMiddleware):
    """
    Reject request bodies larger than MAX_REQUEST_BODY_BYTES.

    Observations are JSON metadata; the media itself is uploaded straight to
    storage with a presigned URL, so a large body is always a client bug.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        if request.method not in BODY_METHODS:
            return await call_next(request)

        limit = get_settings().MAX_REQUEST_BODY_BYTES
        declared = request.headers.get("content-length")
        if declared is not None:
            if not declared.isdigit():
                return JSONResponse({"detail": "Invalid Content-Length header."}, status_code=400)
            if int(declared) > limit:
                return _too_large(limit)
        else:
            # Chunked upload: request.body() is cached, so the route can still read it
            if len(await request.body()) > limit:
                return _too_large(limit)

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One DEBUG line per request; server errors are left to the exception handlers."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
