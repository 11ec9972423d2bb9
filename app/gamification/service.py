"""Gamification service - XP and level calculations."""

from typing import Iterable, Optional, Sequence, Tuple

from app.badges.catalog import tier_xp
from app.badges.models import BadgeProgress, BadgeStatus
from app.gamification.models import LevelDefinition, XpSummary

XP_PER_SUBMISSION = 10


def _level(level, title, min_xp, color, bg) -> LevelDefinition:
    return LevelDefinition(level=level, title=title, min_xp=min_xp, color=color, bg=bg)


LEVELS: Tuple[LevelDefinition, ...] = (
    _level(1, "Nybegynner", 0, "#64748b", "#f1f5f9"),
    _level(2, "Strandvakt", 150, "#16a34a", "#dcfce7"),
    _level(3, "Kystfarer", 400, "#0891b2", "#cffafe"),
    _level(4, "Havkjentmann", 800, "#2563eb", "#dbeafe"),
    _level(5, "Kystmester", 1400, "#7c3aed", "#ede9fe"),
    _level(6, "Havekspert", 2200, "#9333ea", "#f3e8ff"),
    _level(7, "Kystnavigator", 3500, "#c026d3", "#fae8ff"),
    _level(8, "Havforsker", 5500, "#e11d48", "#ffe4e6"),
    _level(9, "Kystlegende", 8500, "#ea580c", "#ffedd5"),
    _level(10, "Havvokter", 13000, "#d97706", "#fef3c7"),
)


def get_level_info(
    xp: int, levels: Sequence[LevelDefinition] = LEVELS
) -> Tuple[LevelDefinition, Optional[LevelDefinition], float]:
    """
    (current level, next level or None, progress percent toward next).

    Levels must be ordered by ascending ``min_xp`` with the first at 0.
    """
    current_idx = 0
    for idx, lvl in enumerate(levels):
        if xp >= lvl.min_xp:
            current_idx = idx
        else:
            break

    current = levels[current_idx]
    next_level = levels[current_idx + 1] if current_idx + 1 < len(levels) else None

    if next_level is None:
        return current, None, 100.0

    span = next_level.min_xp - current.min_xp
    progress_pct = min(100.0, ((xp - current.min_xp) / span) * 100)
    return current, next_level, round(progress_pct, 1)


def calculate_xp_summary(
    total_submissions: int,
    badges: Iterable[BadgeProgress],
    levels: Sequence[LevelDefinition] = LEVELS,
) -> XpSummary:
    """XP from submissions plus earned badges, mapped onto the level table."""
    submission_xp = total_submissions * XP_PER_SUBMISSION
    badge_xp = sum(tier_xp(b.tier) for b in badges if b.status == BadgeStatus.EARNED)
    total_xp = submission_xp + badge_xp

    current, next_level, progress_pct = get_level_info(total_xp, levels)

    return XpSummary(
        submission_xp=submission_xp,
        badge_xp=badge_xp,
        total_xp=total_xp,
        current_level=current,
        next_level=next_level,
        progress_pct=progress_pct,
        xp_into_level=total_xp - current.min_xp,
        xp_needed=(next_level.min_xp - current.min_xp) if next_level else 0,
        xp_to_next_level=(next_level.min_xp - total_xp) if next_level else None,
    )


class GamificationService:
    """Handles gamification lookups - levels, XP."""

    @classmethod
    def get_all_levels(cls) -> Tuple[LevelDefinition, ...]:
        return LEVELS

    @classmethod
    def calculate_user_level(cls, total_submissions: int, badges: Iterable[BadgeProgress]) -> XpSummary:
        return calculate_xp_summary(total_submissions, badges, LEVELS)
