"""Gamification API endpoints."""

from typing import List
from fastapi import APIRouter
from app.gamification.service import GamificationService
from app.gamification.models import LevelDefinition

router = APIRouter(prefix="/levels", tags=["Gamification"])


@router.get("", response_model=List[LevelDefinition])
async def get_all_levels():
    """
    Get all available user levels.
    This is a public endpoint (no auth required) since levels are static data.
    """
    return list(GamificationService.get_all_levels())
