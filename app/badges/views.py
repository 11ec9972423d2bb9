"""Badge catalog API routes."""

from fastapi import APIRouter

from app.badges.catalog import BADGE_CATALOG, tier_xp
from app.badges.models import BadgeDefinitionResponse, BadgeDefinitionsResponse


router = APIRouter(prefix="/badges", tags=["Badges"])


@router.get("/definitions", response_model=BadgeDefinitionsResponse)
async def get_badge_definitions():
    """All badge definitions (public endpoint for reference)."""
    return BadgeDefinitionsResponse(
        badges=[
            BadgeDefinitionResponse(
                key=b.key,
                title=b.title,
                description=b.description,
                tier=b.tier,
                category=b.category,
                threshold=b.threshold,
                xp=tier_xp(b.tier),
                available=b.available,
            )
            for b in BADGE_CATALOG
        ],
        total=len(BADGE_CATALOG),
    )
