"""Badge evaluation: catalog + aggregated progress -> per-badge progress and status."""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from app.badges.catalog import BADGE_CATALOG, CATEGORY_LABELS, tier_xp
from app.badges.models import (
    BadgeDefinition,
    BadgeGroup,
    BadgeProgress,
    BadgeStatus,
    BadgesListResponse,
    StoredBadgeProgress,
)
from app.badges.progress import (
    COUNT_FILTERS,
    METRIC_NAMES,
    SNAPSHOT_METRICS,
    STREAK_METRICS,
    SubmissionProgress,
    earned_at_for_count,
)
from app.core.database import Database
from app.core.exceptions import CatalogMisconfigurationError, StoreUnavailableException

logger = logging.getLogger(__name__)


def derive_status(progress: int, earned_at: Optional[datetime]) -> BadgeStatus:
    """earned > active > locked."""
    if earned_at is not None:
        return BadgeStatus.EARNED
    if progress > 0:
        return BadgeStatus.ACTIVE
    return BadgeStatus.LOCKED


def _progress_for(definition: BadgeDefinition, progress: int, earned_at: Optional[datetime],
                  status: Optional[BadgeStatus] = None) -> BadgeProgress:
    return BadgeProgress(
        key=definition.key,
        title=definition.title,
        description=definition.description,
        tier=definition.tier,
        category=definition.category,
        threshold=definition.threshold,
        xp=tier_xp(definition.tier),
        available=definition.available,
        progress=progress,
        earned_at=earned_at,
        status=status or derive_status(progress, earned_at),
    )


def evaluate_badge(definition: BadgeDefinition, summary: SubmissionProgress) -> BadgeProgress:
    """Progress, earn time and status of one badge."""
    threshold = definition.threshold

    # Unwired metrics and zero thresholds stay locked.
    if definition.metric is None or threshold <= 0:
        return _progress_for(definition, 0, None)

    metric = definition.metric
    if metric not in METRIC_NAMES:
        raise CatalogMisconfigurationError(
            f"Badge '{definition.key}' references unknown metric '{metric}'"
        )

    value = summary.metrics.value(metric)
    progress = max(0, min(value, threshold))
    met = value >= threshold

    earned_at: Optional[datetime] = None
    if metric in COUNT_FILTERS:
        earned_at = earned_at_for_count(summary.timelines.get(metric, ()), threshold)
    elif metric in SNAPSHOT_METRICS:
        earned_at = summary.latest_at if met else None
    elif metric in STREAK_METRICS:
        # Not a stored moment: this moves with every read while the streak holds.
        earned_at = (summary.now or datetime.now(timezone.utc)) if met else None

    return _progress_for(definition, progress, earned_at)


def evaluate_badges(
    summary: SubmissionProgress,
    catalog: Sequence[BadgeDefinition] = BADGE_CATALOG,
) -> List[BadgeProgress]:
    """Evaluate every badge, in catalog order."""
    return [evaluate_badge(definition, summary) for definition in catalog]


def merge(definition: BadgeDefinition, stored: Optional[StoredBadgeProgress]) -> BadgeProgress:
    """
    Combine a catalog entry with progress reported by the store.

    Stored progress, earned_at and status win; display fields (title,
    description, tier, category, threshold) always come from the catalog.
    Missing stored progress means a locked badge.
    """
    if stored is None:
        return _progress_for(definition, 0, None)

    progress = max(0, min(stored.progress, definition.threshold))
    return _progress_for(definition, progress, stored.earned_at, stored.status)


def group_by_category(badges: Iterable[BadgeProgress]) -> List[BadgeGroup]:
    """Display groups in the fixed category order; empty categories are omitted."""
    by_category: Dict = {category: [] for category in CATEGORY_LABELS}
    for badge in badges:
        by_category.setdefault(badge.category, []).append(badge)

    return [
        BadgeGroup(
            category=category,
            label=CATEGORY_LABELS.get(category, category.value),
            earned_count=sum(1 for b in items if b.status == BadgeStatus.EARNED),
            badges=items,
        )
        for category, items in by_category.items()
        if items
    ]


def pick_next_badge(badges: Sequence[BadgeProgress]) -> Optional[BadgeProgress]:
    """The badge to nudge the user toward: first in progress, else first reachable locked one."""
    for badge in badges:
        if badge.status == BadgeStatus.ACTIVE:
            return badge
    for badge in badges:
        if badge.status == BadgeStatus.LOCKED and badge.threshold > 0 and badge.available:
            return badge
    return None


def build_badges_response(badges: List[BadgeProgress]) -> BadgesListResponse:
    return BadgesListResponse(
        badges=badges,
        groups=group_by_category(badges),
        earned_count=sum(1 for b in badges if b.status == BadgeStatus.EARNED),
        total_count=len(badges),
        next_badge=pick_next_badge(badges),
    )


class BadgeRepository:
    """Optional persistence of first-earned moments (user_badges collection)."""

    @staticmethod
    def _get_collection():
        return Database.get_collection("user_badges")

    @classmethod
    async def get_progress(cls, user_id: str) -> Dict[str, StoredBadgeProgress]:
        """key -> stored progress for one user."""
        try:
            cursor = cls._get_collection().find({"user_id": user_id})
            rows = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Could not load stored badges for %s: %s", user_id, e)
            raise StoreUnavailableException("Badge store unavailable") from e

        return {
            row["key"]: StoredBadgeProgress(
                progress=row.get("progress", 0),
                earned_at=row.get("earned_at"),
                status=row.get("status"),
            )
            for row in rows
            if row.get("key")
        }

    @classmethod
    async def save_earned(cls, user_id: str, badges: Iterable[BadgeProgress]) -> int:
        """
        Record the first-earned moment of newly earned badges.
        Existing rows are never overwritten. Returns how many rows were inserted.
        """
        ops = [
            UpdateOne(
                {"user_id": user_id, "key": badge.key},
                {"$setOnInsert": {
                    "user_id": user_id,
                    "key": badge.key,
                    "progress": badge.progress,
                    "earned_at": badge.earned_at,
                    "status": BadgeStatus.EARNED.value,
                    "created_at": datetime.now(timezone.utc),
                }},
                upsert=True,
            )
            for badge in badges
            if badge.status == BadgeStatus.EARNED
        ]
        if not ops:
            return 0

        try:
            result = await cls._get_collection().bulk_write(ops, ordered=False)
        except PyMongoError as e:
            # Computed progress is still correct; only the stable earn time is lost for now.
            logger.error("Could not persist earned badges for %s: %s", user_id, e)
            return 0
        return result.upserted_count


class BadgeService:
    """Evaluates badges for a user, optionally pinning earn times to the store."""

    @staticmethod
    def _persistable(definition: BadgeDefinition) -> bool:
        return definition.metric not in STREAK_METRICS

    @classmethod
    async def apply_stored_progress(
        cls,
        user_id: str,
        computed: List[BadgeProgress],
        catalog: Sequence[BadgeDefinition] = BADGE_CATALOG,
    ) -> List[BadgeProgress]:
        """
        Replace computed entries with stored first-earned rows where they exist,
        then persist anything newly earned. Streak badges are always recomputed.
        """
        stored = await BadgeRepository.get_progress(user_id)
        definitions = {d.key: d for d in catalog}

        result: List[BadgeProgress] = []
        newly_earned: List[BadgeProgress] = []
        for badge in computed:
            definition = definitions[badge.key]
            if not cls._persistable(definition):
                result.append(badge)
                continue
            if badge.key in stored:
                result.append(merge(definition, stored[badge.key]))
                continue
            if badge.status == BadgeStatus.EARNED:
                newly_earned.append(badge)
            result.append(badge)

        if newly_earned:
            inserted = await BadgeRepository.save_earned(user_id, newly_earned)
            logger.info("User %s earned %d new badge(s)", user_id, inserted)
        return result

    @classmethod
    async def get_badges(
        cls,
        user_id: str,
        summary: SubmissionProgress,
        persist: bool = False,
        catalog: Sequence[BadgeDefinition] = BADGE_CATALOG,
    ) -> List[BadgeProgress]:
        badges = evaluate_badges(summary, catalog)
        if persist:
            badges = await cls.apply_stored_progress(user_id, badges, catalog)
        return badges
