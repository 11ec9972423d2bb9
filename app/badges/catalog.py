"""
Badge catalog.

The catalog is an immutable table loaded once at import time. Each badge names
the aggregator metric that feeds it; the mapping is explicit, never inferred
from the key. ``validate_catalog`` runs on import so a badge pointing at an
unknown metric stops the process instead of quietly showing zero progress.
"""

from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

from app.badges.models import BadgeCategory, BadgeDefinition, BadgeTier
from app.badges.progress import METRIC_NAMES
from app.core.exceptions import CatalogMisconfigurationError

TIER_XP: Mapping[BadgeTier, int] = MappingProxyType({
    BadgeTier.BRONZE: 100,
    BadgeTier.SILVER: 250,
    BadgeTier.GOLD: 500,
    BadgeTier.PLATINUM: 1000,
})

CATEGORY_LABELS: Mapping[BadgeCategory, str] = MappingProxyType({
    BadgeCategory.SUBMISSION_COUNT: "Antall innsendinger",
    BadgeCategory.GEOGRAPHY: "Geografisk spredning",
    BadgeCategory.STREAKS: "Aktivitets-streaks",
    BadgeCategory.CONDITIONS: "Spesielle forhold",
})


def _badge(key, title, description, tier, category, threshold, metric, available=True) -> BadgeDefinition:
    return BadgeDefinition(
        key=key,
        title=title,
        description=description,
        tier=tier,
        category=category,
        threshold=threshold,
        metric=metric,
        available=available,
    )


_COUNT = BadgeCategory.SUBMISSION_COUNT
_GEO = BadgeCategory.GEOGRAPHY
_STREAK = BadgeCategory.STREAKS
_COND = BadgeCategory.CONDITIONS

BADGE_CATALOG: Tuple[BadgeDefinition, ...] = (
    # === SUBMISSION COUNT (7) ===
    _badge("first_wave", "Første bølge", "Send inn din første observasjon.", BadgeTier.BRONZE, _COUNT, 1, "total"),
    _badge("active_observer", "Aktiv observatør", "Send inn 5 observasjoner.", BadgeTier.BRONZE, _COUNT, 5, "total"),
    _badge("dedicated_observer", "Dedikert observatør", "Send inn 10 observasjoner.", BadgeTier.SILVER, _COUNT, 10, "total"),
    _badge("experienced_observer", "Erfaren observatør", "Send inn 25 observasjoner.", BadgeTier.GOLD, _COUNT, 25, "total"),
    _badge("master_observer", "Mester observatør", "Send inn 50 observasjoner.", BadgeTier.GOLD, _COUNT, 50, "total"),
    _badge("elite_observer", "Elite observatør", "Send inn 100 observasjoner.", BadgeTier.PLATINUM, _COUNT, 100, "total"),
    _badge("legendary_observer", "Legendarisk observatør", "Send inn 250 observasjoner.", BadgeTier.PLATINUM, _COUNT, 250, "total"),

    # === GEOGRAPHY (4) ===
    _badge("local_hero", "Lokal helt", "10 innsendinger innen 10 km radius.", BadgeTier.BRONZE, _GEO, 10, "local_hero"),
    # Submissions carry no county field, so the two region badges have nothing to count yet.
    _badge("regional_explorer", "Regional utforsker", "Innsendinger fra 3 ulike fylker.", BadgeTier.SILVER, _GEO, 3, None, available=False),
    _badge("national_observer", "Nasjonal observatør", "Innsendinger fra 5 eller flere fylker.", BadgeTier.GOLD, _GEO, 5, None, available=False),
    _badge("coast_master", "Kystlinjemester", "100 unike GPS-punkter.", BadgeTier.PLATINUM, _GEO, 100, "unique_points"),

    # === STREAKS & SEASONS (5) ===
    _badge("week_streak", "Ukestreak", "Send inn hver dag i 7 dager.", BadgeTier.BRONZE, _STREAK, 7, "streak"),
    _badge("month_streak", "Månedstreak", "Send inn hver dag i 30 dager.", BadgeTier.GOLD, _STREAK, 30, "streak"),
    _badge("winter_observer", "Vinterobservatør", "10 innsendinger i desember–februar.", BadgeTier.SILVER, _STREAK, 10, "winter_count"),
    _badge("summer_observer", "Sommerobservatør", "10 innsendinger i juni–august.", BadgeTier.SILVER, _STREAK, 10, "summer_count"),
    _badge("year_round", "Hele året", "Innsendinger i alle 12 måneder.", BadgeTier.PLATINUM, _STREAK, 12, "unique_months"),

    # === CONDITIONS (4) ===
    _badge("storm_hunter", "Stormjeger", "5 innsendinger med større bølger.", BadgeTier.GOLD, _COND, 5, "storm_count"),
    _badge("calm_guardian", "Rolig sjøvokter", "10 innsendinger med rolig havflate.", BadgeTier.BRONZE, _COND, 10, "calm_count"),
    _badge("wind_meter", "Vindmåler", "20 innsendinger med vindretning.", BadgeTier.SILVER, _COND, 20, "wind_tagged_count"),
    _badge("wave_expert", "Bølgeekspert", "20 innsendinger med bølgeretning.", BadgeTier.SILVER, _COND, 20, "wave_tagged_count"),
)


def validate_catalog(catalog: Iterable[BadgeDefinition]) -> None:
    """Raise CatalogMisconfigurationError on duplicate keys or unknown metrics."""
    seen = set()
    for badge in catalog:
        if badge.key in seen:
            raise CatalogMisconfigurationError(f"Duplicate badge key '{badge.key}'")
        seen.add(badge.key)

        if badge.metric is None:
            if badge.available:
                raise CatalogMisconfigurationError(
                    f"Badge '{badge.key}' has no metric but is marked available"
                )
            continue
        if badge.metric not in METRIC_NAMES:
            raise CatalogMisconfigurationError(
                f"Badge '{badge.key}' references unknown metric '{badge.metric}'"
            )


def tier_xp(tier: BadgeTier) -> int:
    return TIER_XP[BadgeTier(tier)]


validate_catalog(BADGE_CATALOG)
