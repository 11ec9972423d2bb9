"""Badge models and definitions."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum

from app.submissions.models import as_utc


class BadgeCategory(str, Enum):
    """Categories of badges."""
    SUBMISSION_COUNT = "submission_count"
    GEOGRAPHY = "geography"
    STREAKS = "streaks"
    CONDITIONS = "conditions"


class BadgeTier(str, Enum):
    """Badge reward tiers."""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class BadgeStatus(str, Enum):
    LOCKED = "locked"
    ACTIVE = "active"
    EARNED = "earned"


class BadgeDefinition(BaseModel):
    """A catalog entry. Fixed at deploy time."""
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    description: str
    tier: BadgeTier
    category: BadgeCategory
    threshold: int = Field(..., ge=0)
    metric: Optional[str] = None  # None: no metric source wired
    available: bool = True


class StoredBadgeProgress(BaseModel):
    """Persisted progress for one badge (user_badges collection)."""
    progress: int = 0
    earned_at: Optional[datetime] = None
    status: Optional[BadgeStatus] = None

    utc_earned_at = field_validator("earned_at")(as_utc)


class BadgeProgress(BaseModel):
    """A user's evaluated progress on one badge."""
    key: str
    title: str
    description: str
    tier: BadgeTier
    category: BadgeCategory
    threshold: int
    xp: int
    available: bool = True
    progress: int = 0
    earned_at: Optional[datetime] = None
    status: BadgeStatus = BadgeStatus.LOCKED

    utc_earned_at = field_validator("earned_at")(as_utc)


class BadgeGroup(BaseModel):
    """Badges of one category, in catalog order."""
    category: BadgeCategory
    label: str
    earned_count: int
    badges: List[BadgeProgress]


class BadgesListResponse(BaseModel):
    """Response containing every badge with the user's progress."""
    badges: List[BadgeProgress]
    groups: List[BadgeGroup]
    earned_count: int
    total_count: int
    next_badge: Optional[BadgeProgress] = None


class BadgeDefinitionResponse(BaseModel):
    key: str
    title: str
    description: str
    tier: BadgeTier
    category: BadgeCategory
    threshold: int
    xp: int
    available: bool


class BadgeDefinitionsResponse(BaseModel):
    badges: List[BadgeDefinitionResponse]
    total: int
