"""Profile API routes. Badges and XP are a logged-in feature only."""

from fastapi import APIRouter, Depends

from app.badges.models import BadgesListResponse
from app.badges.service import build_badges_response
from app.core.dependencies import get_current_user
from app.gamification.models import XpSummary
from app.profile.models import ProfileStats
from app.profile.service import ProfileService, compute_profile_stats


router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("/stats", response_model=ProfileStats)
async def get_profile_stats(current_user: dict = Depends(get_current_user)):
    """Submission counts, distinct locations, earned badges and current day streak."""
    report = await ProfileService.load(current_user["id"])
    return compute_profile_stats(report.submissions, report.summary, report.badges)


@router.get("/badges", response_model=BadgesListResponse)
async def get_profile_badges(current_user: dict = Depends(get_current_user)):
    """
    Every badge with the user's progress, plus category groups.
    A store failure returns 503 rather than an all-locked list.
    """
    report = await ProfileService.load(current_user["id"])
    return build_badges_response(report.badges)


@router.get("/xp", response_model=XpSummary)
async def get_profile_xp(current_user: dict = Depends(get_current_user)):
    """XP breakdown and level progress."""
    report = await ProfileService.load(current_user["id"])
    return report.xp
