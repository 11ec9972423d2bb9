"""Gamification models - Level definitions and responses."""

from typing import Optional
from pydantic import BaseModel, ConfigDict


class LevelDefinition(BaseModel):
    """One rank in the fixed level table."""
    model_config = ConfigDict(frozen=True)

    level: int
    title: str
    min_xp: int
    color: str
    bg: str


class XpSummary(BaseModel):
    """A user's XP breakdown and level position. Never stored."""
    submission_xp: int
    badge_xp: int
    total_xp: int
    current_level: LevelDefinition
    next_level: Optional[LevelDefinition] = None
    progress_pct: float  # 0-100
    xp_into_level: int
    xp_needed: int  # span of the current level, 0 at max level
    xp_to_next_level: Optional[int] = None  # None if at max level
