from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

# 2024-01-03 12:00 UTC, 13:00 in Oslo
NOW = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)

_ids = count(1)


def make_row(created_at, lat=60.39, lng=5.32, level=1, media_type="photo",
             wind_dir=None, wave_dir=None, user_id="user-1", **extra):
    """Raw submission document, shaped like what the store returns."""
    row = {
        "id": f"sub-{next(_ids)}",
        "user_id": user_id,
        "media_type": media_type,
        "lat_public": lat,
        "lng_public": lng,
        "created_at": created_at,
        "level": level,
        "wind_dir": wind_dir,
        "wave_dir": wave_dir,
        "deleted_at": None,
    }
    row.update(extra)
    return row


def daily_rows(start, days, **kwargs):
    return [make_row(start + timedelta(days=i), **kwargs) for i in range(days)]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def row_factory():
    return make_row
