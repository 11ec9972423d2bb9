"""Observation submission API routes."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Type, TypeVar
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from app.core.aws import S3Service
from app.core.config import get_settings
from app.core.dependencies import get_current_user_optional
from app.core.exceptions import BadRequestException, MediaStorageException
from app.submissions.models import (
    MapPoint,
    MapResponse,
    PublicSubmission,
    SubmissionCreate,
    SubmissionCreatedResponse,
    SubmissionListResponse,
    UploadSignRequest,
    UploadSignResponse,
)
from app.submissions.service import SubmissionService

router = APIRouter(tags=["Submissions"])

WEEK_TOP_LIMIT = 5

RowModel = TypeVar("RowModel", bound=BaseModel)


async def with_media_urls(rows: List[Dict], model: Type[RowModel]) -> List[RowModel]:
    """Attach a short-lived signed ``media_url`` to each row (None if signing fails)."""
    storage = S3Service()
    urls = await asyncio.gather(*(
        asyncio.to_thread(storage.signed_media_url, row.get("media_path_original"))
        for row in rows
    ))
    return [model(**{**row, "media_url": url}) for row, url in zip(rows, urls)]


def week_start(now: Optional[datetime] = None) -> datetime:
    """Monday 00:00 of the current week in the configured local timezone, as UTC."""
    tz = ZoneInfo(get_settings().STREAK_TIMEZONE)
    local_now = (now or datetime.now(timezone.utc)).astimezone(tz)
    monday = (local_now - timedelta(days=local_now.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return monday.astimezone(timezone.utc)


@router.post("/submissions", response_model=SubmissionCreatedResponse)
async def create_submission(
    payload: SubmissionCreate,
    current_user: Optional[dict] = Depends(get_current_user_optional),
):
    """
    Register a new observation.

    Logged-in observations are public and count toward badges; anonymous ones are
    stored but kept out of public listings.
    """
    user_id = current_user["id"] if current_user else None
    submission_id = await SubmissionService.create(payload, user_id)
    return SubmissionCreatedResponse(id=submission_id, bucket=get_settings().MEDIA_BUCKET)


@router.get("/submissions/list", response_model=SubmissionListResponse)
async def list_submissions():
    """Public gallery feed, newest first."""
    rows = await SubmissionService.list_public()
    return SubmissionListResponse(data=await with_media_urls(rows, PublicSubmission))


@router.get("/submissions/week", response_model=SubmissionListResponse)
async def list_week_top():
    """The latest public observations from this week (home page top five)."""
    rows = await SubmissionService.list_public(since=week_start(), limit=WEEK_TOP_LIMIT)
    return SubmissionListResponse(data=await with_media_urls(rows, PublicSubmission))


@router.get("/map", response_model=MapResponse)
async def get_map_points():
    """Map layer data. Same as the list, minus owner ids."""
    rows = await SubmissionService.list_public()
    return MapResponse(data=await with_media_urls(rows, MapPoint))


@router.post("/uploads/sign", response_model=UploadSignResponse)
async def sign_upload(payload: UploadSignRequest):
    """Hand out a presigned PUT URL so the client can upload media directly."""
    path = payload.path.strip()
    if not path:
        raise BadRequestException("Missing path")

    settings = get_settings()
    try:
        url = await asyncio.to_thread(
            S3Service().generate_presigned_put_url,
            path,
            payload.contentType,
            settings.SIGNED_UPLOAD_TTL_SECONDS,
        )
    except ValueError as e:
        raise MediaStorageException(str(e))
    except (ClientError, BotoCoreError):
        raise MediaStorageException()

    return UploadSignResponse(path=path, uploadUrl=url, contentType=payload.contentType)
