"""Submission store - reads and writes observations in MongoDB."""

import logging
import math
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from app.core.config import get_settings
from app.core.database import Database
from app.core.exceptions import (
    InvalidSubmissionException,
    StoreUnavailableException,
    SubmissionNotFoundException,
)
from app.submissions.models import MediaType, SubmissionCreate

logger = logging.getLogger(__name__)

ALLOWED_LEVELS = (1, 2)


def round_coord(value: float, decimals: int = 4) -> float:
    """Round half toward +infinity (JavaScript's Math.round), so public coordinates match what clients compute."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


@contextmanager
def _store_errors(action: str):
    """Translate driver failures into StoreUnavailableException."""
    try:
        yield
    except PyMongoError as e:
        logger.error("Submission store failed to %s: %s", action, e)
        raise StoreUnavailableException() from e


class SubmissionService:
    """Handles observation persistence."""

    @staticmethod
    def _get_collection():
        return Database.get_collection("submissions")

    @staticmethod
    def _serialize(doc: Dict) -> Dict:
        """Mongo document -> plain dict with a string ``id``."""
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return data

    @classmethod
    async def list_for_user(cls, user_id: str) -> List[Dict]:
        """
        All non-deleted submissions owned by ``user_id``, in store order.
        Callers sort as needed.
        """
        with _store_errors("list submissions for user"):
            cursor = cls._get_collection().find({"user_id": user_id, "deleted_at": None})
            docs = await cursor.to_list(length=None)
        return [cls._serialize(d) for d in docs]

    @classmethod
    async def list_public(cls, since: Optional[datetime] = None, limit: int = 0) -> List[Dict]:
        """Public, non-deleted submissions, newest first."""
        query: Dict = {"is_public": True, "deleted_at": None}
        if since is not None:
            query["created_at"] = {"$gte": since}

        with _store_errors("list public submissions"):
            cursor = cls._get_collection().find(query).sort("created_at", -1)
            if limit:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=None)
        return [cls._serialize(d) for d in docs]

    @classmethod
    async def list_all(cls) -> List[Dict]:
        """Every non-deleted submission (public or not), newest first. Admin only."""
        with _store_errors("list all submissions"):
            cursor = cls._get_collection().find({"deleted_at": None}).sort("created_at", -1)
            docs = await cursor.to_list(length=None)
        return [cls._serialize(d) for d in docs]

    @classmethod
    async def list_submitters(cls) -> List[Dict]:
        """
        One row per user who has non-deleted submissions: latest display name,
        count and last submission time. Most recently active first.
        """
        pipeline = [
            {"$match": {"deleted_at": None, "user_id": {"$ne": None}}},
            {"$sort": {"created_at": 1}},
            {"$group": {
                "_id": "$user_id",
                "display_name": {"$last": "$display_name"},
                "submission_count": {"$sum": 1},
                "last_submission_at": {"$max": "$created_at"},
            }},
            {"$sort": {"last_submission_at": -1}},
        ]
        with _store_errors("list submitters"):
            docs = await cls._get_collection().aggregate(pipeline).to_list(length=None)
        return [
            {
                "user_id": d["_id"],
                "display_name": d.get("display_name"),
                "submission_count": d["submission_count"],
                "last_submission_at": d.get("last_submission_at"),
            }
            for d in docs
        ]

    @classmethod
    def validate_create(cls, payload: SubmissionCreate) -> None:
        if payload.level not in ALLOWED_LEVELS:
            raise InvalidSubmissionException("Invalid level")
        if not (math.isfinite(payload.lat) and math.isfinite(payload.lng)):
            raise InvalidSubmissionException("Invalid location")
        if not (-90 <= payload.lat <= 90 and -180 <= payload.lng <= 180):
            raise InvalidSubmissionException("Invalid location")
        if payload.media_type not in {m.value for m in MediaType}:
            raise InvalidSubmissionException("Invalid media type")
        if not payload.media_path_original.strip():
            raise InvalidSubmissionException("Missing media_path_original")

    @classmethod
    def build_document(cls, payload: SubmissionCreate, user_id: Optional[str], now: Optional[datetime] = None) -> Dict:
        """Document as stored. Anonymous observations are kept but never shown publicly."""
        decimals = get_settings().PUBLIC_COORD_DECIMALS
        return {
            "user_id": user_id,
            "display_name": payload.display_name or None,
            "level": payload.level,
            "comment": payload.comment or None,
            "valg": payload.valg or None,
            "wind_dir": payload.wind_dir or None,
            "wave_dir": payload.wave_dir or None,
            "video_duration": payload.video_duration or None,
            "video_analysis": payload.video_analysis or None,
            "lat": payload.lat,
            "lng": payload.lng,
            "lat_public": round_coord(payload.lat, decimals),
            "lng_public": round_coord(payload.lng, decimals),
            "location_method": payload.location_method or None,
            "accuracy": payload.accuracy or None,
            "media_type": payload.media_type,
            "media_path_original": payload.media_path_original,
            "media_path_preview": payload.media_path_preview or None,
            "media_content_type": payload.media_content_type or None,
            "media_size_bytes": payload.media_size_bytes or None,
            "is_public": bool(user_id),
            "created_at": now or datetime.now(timezone.utc),
            "deleted_at": None,
        }

    @classmethod
    async def create(cls, payload: SubmissionCreate, user_id: Optional[str]) -> str:
        """Validate and insert a new observation. Returns its id."""
        cls.validate_create(payload)
        doc = cls.build_document(payload, user_id)

        with _store_errors("insert submission"):
            result = await cls._get_collection().insert_one(doc)

        logger.info("Stored submission %s (user=%s)", result.inserted_id, user_id or "anonymous")
        return str(result.inserted_id)

    @classmethod
    async def soft_delete(cls, submission_id: str) -> None:
        """Mark a submission deleted; it drops out of every listing and aggregation."""
        try:
            oid = ObjectId(submission_id)
        except (InvalidId, TypeError):
            raise SubmissionNotFoundException(submission_id)

        with _store_errors("soft-delete submission"):
            result = await cls._get_collection().update_one(
                {"_id": oid, "deleted_at": None},
                {"$set": {"deleted_at": datetime.now(timezone.utc)}},
            )

        if result.matched_count == 0:
            raise SubmissionNotFoundException(submission_id)
        logger.info("Soft-deleted submission %s", submission_id)

    @classmethod
    async def ping(cls) -> bool:
        """True if the store answers a trivial query."""
        try:
            await cls._get_collection().find_one({}, projection={"_id": 1})
        except PyMongoError as e:
            logger.error("Submission store health check failed: %s", e)
            return False
        return True
