"""
Application exceptions.

Everything a route can surface to a client is an ``AppException`` (an
``HTTPException`` with a fixed status). ``CatalogMisconfigurationError`` is
a programming error in the badge catalog and is never caught.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exception_handlers import http_exception_handler

logger = logging.getLogger(__name__)


class AppException(HTTPException):
    """Base application exception."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, status_code: int = None):
        super().__init__(status_code=status_code or self.status_code_default, detail=detail)


class BadRequestException(AppException):
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = "Bad request"):
        super().__init__(detail)


class InvalidSubmissionException(BadRequestException):
    """A submission payload failed validation. ``detail`` names the failing rule."""


class UnauthorizedException(AppException):
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(detail)


class ForbiddenException(AppException):
    """Authenticated, but not on the admin allow-list."""

    status_code_default = status.HTTP_403_FORBIDDEN

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(detail)


class NotFoundException(AppException):
    status_code_default = status.HTTP_404_NOT_FOUND

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail)


class SubmissionNotFoundException(NotFoundException):
    """Unknown, malformed or already soft-deleted submission id."""

    def __init__(self, submission_id: str = ""):
        self.submission_id = submission_id
        super().__init__("Submission not found")


class StoreUnavailableException(AppException):
    """
    The submission store could not be reached or failed mid-query.

    Raised instead of returning an empty history, so a user never sees
    zero progress because of an outage.
    """

    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, detail: str = "Submission store unavailable"):
        super().__init__(detail)


class MediaStorageException(AppException):
    """Media storage is not configured or refused to sign a URL."""

    status_code_default = status.HTTP_502_BAD_GATEWAY

    def __init__(self, detail: str = "Could not sign upload"):
        super().__init__(detail)


class CatalogMisconfigurationError(RuntimeError):
    """A badge definition references a metric the aggregator does not produce."""


async def _log_app_exception(request: Request, exc: AppException):
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return await http_exception_handler(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Server-side failures are logged before FastAPI renders the usual ``{"detail": ...}`` body."""
    app.add_exception_handler(AppException, _log_app_exception)
