"""Profile service - per-user stats, badges and XP from one submission snapshot."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from app.badges.models import BadgeProgress, BadgeStatus
from app.badges.progress import SubmissionProgress, aggregate_progress, coerce_submissions
from app.badges.service import BadgeService
from app.core.config import get_settings
from app.gamification.models import XpSummary
from app.gamification.service import calculate_xp_summary
from app.profile.models import ProfileStats
from app.submissions.models import MediaType, Submission
from app.submissions.service import SubmissionService


@dataclass(frozen=True)
class UserProgressReport:
    submissions: List[Submission]
    summary: SubmissionProgress
    badges: List[BadgeProgress]

    @property
    def xp(self) -> XpSummary:
        return calculate_xp_summary(self.summary.metrics.total, self.badges)


def compute_profile_stats(
    submissions: Sequence[Submission],
    summary: SubmissionProgress,
    badges: Sequence[BadgeProgress],
) -> ProfileStats:
    locations = {
        (s.lat_public, s.lng_public) for s in submissions if s.is_geotagged
    }
    return ProfileStats(
        total=len(submissions),
        photos=sum(1 for s in submissions if s.media_type == MediaType.PHOTO),
        videos=sum(1 for s in submissions if s.media_type == MediaType.VIDEO),
        locations=len(locations),
        badges=sum(1 for b in badges if b.status == BadgeStatus.EARNED),
        streak=summary.metrics.streak,
    )


class ProfileService:
    """Loads one user's snapshot and derives everything the profile shows."""

    @classmethod
    async def load(cls, user_id: str, now: Optional[datetime] = None) -> UserProgressReport:
        """
        Fetch the user's submissions once and evaluate them.

        A store failure propagates as StoreUnavailableException; nothing is
        evaluated against a missing list.
        """
        settings = get_settings()
        rows = await SubmissionService.list_for_user(user_id)

        submissions = coerce_submissions(rows)
        summary = aggregate_progress(submissions, now=now, tz=settings.STREAK_TIMEZONE)
        badges = await BadgeService.get_badges(
            user_id, summary, persist=settings.BADGE_PERSISTENCE_ENABLED
        )
        return UserProgressReport(submissions=submissions, summary=summary, badges=badges)
