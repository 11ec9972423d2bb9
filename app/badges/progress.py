"""Progress aggregation over one user's observation history.

Pure functions: given the user's non-deleted submissions, derive the metrics
badges are measured against (totals, day streak, geographic clustering,
seasonal and condition counts). Nothing here touches the database.

Calendar days and months are taken in the configured local timezone
(``STREAK_TIMEZONE``) so an evening observation counts for that evening and
not for the next UTC day.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from app.core.config import get_settings
from app.submissions.models import Submission

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
LOCAL_HERO_RADIUS_KM = 10.0
UNIQUE_POINT_DECIMALS = 2

WINTER_MONTHS = frozenset({12, 1, 2})
SUMMER_MONTHS = frozenset({6, 7, 8})

Point = Tuple[float, float]
SubmissionLike = Union[Submission, Mapping[str, Any]]


@dataclass(frozen=True)
class ProgressMetrics:
    """Named metrics a badge can be measured against."""
    total: int = 0
    streak: int = 0
    local_hero: int = 0
    unique_points: int = 0
    winter_count: int = 0
    summer_count: int = 0
    unique_months: int = 0
    storm_count: int = 0
    calm_count: int = 0
    wind_tagged_count: int = 0
    wave_tagged_count: int = 0

    def value(self, metric: str) -> int:
        return getattr(self, metric)


METRIC_NAMES = frozenset(f.name for f in fields(ProgressMetrics))

# Count metrics: "earned" is the moment the Nth qualifying submission arrived.
# (submission, local created_at) -> qualifies?
COUNT_FILTERS: Dict[str, Callable[[Submission, datetime], bool]] = {
    "total": lambda s, local: True,
    "winter_count": lambda s, local: local.month in WINTER_MONTHS,
    "summer_count": lambda s, local: local.month in SUMMER_MONTHS,
    "storm_count": lambda s, local: s.level >= 2,
    "calm_count": lambda s, local: s.level == 1,
    "wind_tagged_count": lambda s, local: s.wind_dir is not None,
    "wave_tagged_count": lambda s, local: s.wave_dir is not None,
}

# Snapshot metrics have no natural "Nth item"; earned at the latest submission once met.
SNAPSHOT_METRICS = frozenset({"local_hero", "unique_points", "unique_months"})

# Re-derived on every read; earned "now" while the streak holds.
STREAK_METRICS = frozenset({"streak"})


@dataclass(frozen=True)
class SubmissionProgress:
    """Aggregator output: metric values plus the timelines needed to date each badge."""
    metrics: ProgressMetrics = field(default_factory=ProgressMetrics)
    # metric -> created_at of each qualifying submission, ascending
    timelines: Mapping[str, Tuple[datetime, ...]] = field(default_factory=dict)
    latest_at: Optional[datetime] = None
    now: Optional[datetime] = None


def _local_tz(tz: Optional[Union[str, ZoneInfo]] = None) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or get_settings().STREAK_TIMEZONE)


def _utc_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def coerce_submissions(rows: Iterable[SubmissionLike]) -> List[Submission]:
    """
    Validate raw rows into Submissions, sorted ascending by ``created_at``.

    A malformed row (bad timestamp, out-of-range coordinate) is logged and
    skipped; one bad record must not hide the rest of a user's progress.
    Soft-deleted rows are dropped as well.
    """
    submissions: List[Submission] = []
    for row in rows:
        if isinstance(row, Submission):
            submission = row
        else:
            try:
                submission = Submission.from_document(row)
            except ValidationError as e:
                row_id = row.get("id") or row.get("_id")
                logger.warning("Skipping malformed submission %s: %s", row_id, e.errors()[:1])
                continue
        if submission.deleted_at is not None:
            continue
        submissions.append(submission)

    submissions.sort(key=lambda s: s.created_at)
    return submissions


def haversine_km(a: Point, b: Point) -> float:
    """Great-circle distance in km between two (lat, lng) points."""
    lat1, lng1 = map(math.radians, a)
    lat2, lng2 = map(math.radians, b)
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def compute_streak(days: Iterable[date], today: date) -> int:
    """
    Consecutive-day run ending today or yesterday.

    Zero if the most recent day is older than yesterday; otherwise walk back
    from it until the first gap.
    """
    ordered = sorted(set(days), reverse=True)
    if not ordered:
        return 0
    if ordered[0] not in (today, today - timedelta(days=1)):
        return 0

    streak = 1
    for newer, older in zip(ordered, ordered[1:]):
        if (newer - older).days != 1:
            break
        streak += 1
    return streak


def compute_local_hero(points: Sequence[Point], radius_km: float = LOCAL_HERO_RADIUS_KM) -> int:
    """
    Largest number of points within ``radius_km`` of any single point (itself included).

    All-pairs; per-user histories are small.
    """
    best = 0
    for center in points:
        count = sum(1 for other in points if haversine_km(center, other) <= radius_km)
        if count > best:
            best = count
    return best


def _round_half_up(value: float, decimals: int) -> float:
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def compute_unique_points(points: Iterable[Point], decimals: int = UNIQUE_POINT_DECIMALS) -> int:
    """Distinct locations on a ~1.1 km grid."""
    return len({(_round_half_up(lat, decimals), _round_half_up(lng, decimals)) for lat, lng in points})


def earned_at_for_count(timestamps: Sequence[datetime], threshold: int) -> Optional[datetime]:
    """When the Nth item arrived (``timestamps`` ascending), or None if there are fewer than N."""
    if threshold <= 0 or len(timestamps) < threshold:
        return None
    return timestamps[threshold - 1]


def aggregate_progress(
    rows: Iterable[SubmissionLike],
    *,
    now: Optional[datetime] = None,
    tz: Optional[Union[str, ZoneInfo]] = None,
) -> SubmissionProgress:
    """Compute every progress metric for one user's submissions."""
    local_tz = _local_tz(tz)
    now_utc = _utc_now(now)
    submissions = coerce_submissions(rows)

    if not submissions:
        return SubmissionProgress(timelines={name: () for name in COUNT_FILTERS}, now=now_utc)

    local_times = [s.created_at.astimezone(local_tz) for s in submissions]

    timelines: Dict[str, Tuple[datetime, ...]] = {}
    for metric, qualifies in COUNT_FILTERS.items():
        timelines[metric] = tuple(
            s.created_at for s, local in zip(submissions, local_times) if qualifies(s, local)
        )

    points = [(s.lat_public, s.lng_public) for s in submissions if s.is_geotagged]
    today = now_utc.astimezone(local_tz).date()

    metrics = ProgressMetrics(
        total=len(submissions),
        streak=compute_streak((local.date() for local in local_times), today),
        local_hero=compute_local_hero(points),
        unique_points=compute_unique_points(points),
        winter_count=len(timelines["winter_count"]),
        summer_count=len(timelines["summer_count"]),
        unique_months=len({local.month for local in local_times}),
        storm_count=len(timelines["storm_count"]),
        calm_count=len(timelines["calm_count"]),
        wind_tagged_count=len(timelines["wind_tagged_count"]),
        wave_tagged_count=len(timelines["wave_tagged_count"]),
    )

    return SubmissionProgress(
        metrics=metrics,
        timelines=timelines,
        latest_at=submissions[-1].created_at,
        now=now_utc,
    )
