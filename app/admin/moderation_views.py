"""Admin review console endpoints: list, soft-delete and export observations, list submitters."""

import csv
import hmac
import io
import logging
from datetime import datetime, timezone
from typing import Iterable, List

from fastapi import APIRouter, Depends, Path
from fastapi.responses import Response
from pydantic import BaseModel

from app.admin.dependencies import require_admin
from app.core.config import get_settings
from app.core.exceptions import UnauthorizedException
from app.submissions.models import AdminSubmission, Submitter
from app.submissions.service import SubmissionService
from app.submissions.views import with_media_urls

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

EXPORT_COLUMNS = (
    "id",
    "created_at",
    "display_name",
    "media_type",
    "level",
    "lat_public",
    "lng_public",
    "comment",
    "valg",
    "wind_dir",
    "wave_dir",
    "is_public",
    "media_url",
)


class VerifyRequest(BaseModel):
    password: str = ""


class OkResponse(BaseModel):
    ok: bool = True


class AdminSubmissionsResponse(BaseModel):
    data: List[AdminSubmission]


class SubmittersResponse(BaseModel):
    data: List[Submitter]


def _csv_cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_submissions_csv(rows: Iterable[AdminSubmission]) -> str:
    """Spreadsheet-friendly CSV: BOM prefix, every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for row in rows:
        data = row.model_dump(mode="json")
        writer.writerow([_csv_cell(data.get(col)) for col in EXPORT_COLUMNS])
    return "\ufeff" + buffer.getvalue()


@router.post("/verify", response_model=OkResponse)
async def verify_admin_password(payload: VerifyRequest):
    """Password gate for the console UI. An unset ADMIN_PASSWORD never matches."""
    expected = get_settings().ADMIN_PASSWORD
    if not expected or not payload.password or not hmac.compare_digest(payload.password.encode(), expected.encode()):
        raise UnauthorizedException("Feil passord")
    return OkResponse()


@router.get("/submissions", response_model=AdminSubmissionsResponse)
async def list_admin_submissions(admin: str = Depends(require_admin)):
    """Every non-deleted observation, public or not, newest first."""
    rows = await SubmissionService.list_all()
    return AdminSubmissionsResponse(data=await with_media_urls(rows, AdminSubmission))


@router.get("/submissions/export.csv")
async def export_submissions_csv(admin: str = Depends(require_admin)):
    """Download non-deleted observations as CSV."""
    rows = await SubmissionService.list_all()
    submissions = await with_media_urls(rows, AdminSubmission)
    filename = f"kystobservatorene-{datetime.now(timezone.utc).date().isoformat()}.csv"
    logger.info("Admin %s exported %d submissions", admin, len(submissions))
    return Response(
        content=render_submissions_csv(submissions),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/submissions/{submission_id}", response_model=OkResponse)
async def delete_submission(
    submission_id: str = Path(..., description="Submission id"),
    admin: str = Depends(require_admin),
):
    """Soft-delete an observation. It disappears from feeds, the map and everyone's badge progress."""
    await SubmissionService.soft_delete(submission_id)
    logger.info("Admin %s soft-deleted submission %s", admin, submission_id)
    return OkResponse()


@router.get("/users", response_model=SubmittersResponse)
async def list_submitters(admin: str = Depends(require_admin)):
    """Everyone who has contributed observations, most recently active first."""
    rows = await SubmissionService.list_submitters()
    return SubmittersResponse(data=rows)
