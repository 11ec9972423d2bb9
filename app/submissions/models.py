"""Observation submission models and schemas."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo hands back naive datetimes that are UTC; make them aware so JSON carries the offset."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MediaType(str, Enum):
    """Kind of media attached to an observation."""
    PHOTO = "photo"
    VIDEO = "video"


class Submission(BaseModel):
    """
    A stored observation, as read by the progress engine.

    Only the fields the badge/XP computation needs are modelled here;
    everything else on the document is ignored.
    """
    id: str
    user_id: Optional[str] = None
    media_type: MediaType
    lat_public: Optional[float] = Field(None, ge=-90, le=90)
    lng_public: Optional[float] = Field(None, ge=-180, le=180)
    created_at: datetime
    level: int = Field(1, ge=1)
    wind_dir: Optional[str] = None
    wave_dir: Optional[str] = None
    deleted_at: Optional[datetime] = None

    utc_created_at = field_validator("created_at")(as_utc)

    @property
    def is_geotagged(self) -> bool:
        return self.lat_public is not None and self.lng_public is not None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Submission":
        """Build from a raw Mongo document (``_id`` becomes ``id``)."""
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class SubmissionCreate(BaseModel):
    """Request schema for a new observation. Media is uploaded separately via /uploads/sign."""
    level: int
    lat: float
    lng: float
    media_type: str
    media_path_original: str = ""
    display_name: Optional[str] = None
    comment: Optional[str] = None
    valg: Optional[str] = None
    wind_dir: Optional[str] = None
    wave_dir: Optional[str] = None
    video_duration: Optional[float] = None
    video_analysis: Optional[Dict[str, Any]] = None
    location_method: Optional[str] = None
    accuracy: Optional[float] = None
    media_path_preview: Optional[str] = None
    media_content_type: Optional[str] = None
    media_size_bytes: Optional[int] = None


class SubmissionCreatedResponse(BaseModel):
    id: str
    bucket: str


class MapPoint(BaseModel):
    """Public view of an observation. Never includes the exact coordinates."""
    id: str
    level: int
    media_type: MediaType
    media_path_original: Optional[str] = None
    created_at: datetime
    lat_public: Optional[float] = None
    lng_public: Optional[float] = None
    display_name: Optional[str] = None
    comment: Optional[str] = None
    valg: Optional[str] = None
    wind_dir: Optional[str] = None
    wave_dir: Optional[str] = None
    video_duration: Optional[float] = None
    video_analysis: Optional[Dict[str, Any]] = None
    media_url: Optional[str] = None

    utc_created_at = field_validator("created_at")(as_utc)


class PublicSubmission(MapPoint):
    """Gallery/list view; adds the owner id."""
    user_id: Optional[str] = None


class AdminSubmission(PublicSubmission):
    """Review-console view of an observation."""
    is_public: bool = False
    deleted_at: Optional[datetime] = None

    utc_deleted_at = field_validator("deleted_at")(as_utc)


class Submitter(BaseModel):
    """A user as seen from the review console: derived from their submissions."""
    user_id: str
    display_name: Optional[str] = None
    submission_count: int = 0
    last_submission_at: Optional[datetime] = None

    utc_last_submission_at = field_validator("last_submission_at")(as_utc)


class SubmissionListResponse(BaseModel):
    data: List[PublicSubmission]


class MapResponse(BaseModel):
    data: List[MapPoint]


class UploadSignRequest(BaseModel):
    path: str = ""
    contentType: Optional[str] = None


class UploadSignResponse(BaseModel):
    path: str
    uploadUrl: Optional[str] = None
    contentType: Optional[str] = None
