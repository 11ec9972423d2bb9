"""Profile response schemas."""

from pydantic import BaseModel


class ProfileStats(BaseModel):
    """Headline numbers for the profile page."""
    total: int = 0
    photos: int = 0
    videos: int = 0
    locations: int = 0
    badges: int = 0
    streak: int = 0
