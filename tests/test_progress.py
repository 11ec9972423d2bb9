"""Tests for progress aggregation over a user's submission history."""

import logging
from datetime import date, datetime, timedelta, timezone

from app.badges.progress import (
    aggregate_progress,
    coerce_submissions,
    compute_local_hero,
    compute_streak,
    compute_unique_points,
    earned_at_for_count,
    haversine_km,
)
from conftest import NOW, daily_rows, make_row


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestEmptyHistory:

    def test_empty_list_gives_zero_metrics(self):
        summary = aggregate_progress([], now=NOW)
        m = summary.metrics
        assert m.total == 0
        assert m.streak == 0
        assert m.local_hero == 0
        assert m.unique_points == 0
        assert m.unique_months == 0
        assert summary.latest_at is None
        assert summary.timelines["total"] == ()


class TestStreak:

    def test_three_consecutive_days_ending_today(self):
        rows = daily_rows(_utc(2024, 1, 1, 12), 3)
        assert aggregate_progress(rows, now=NOW).metrics.streak == 3

    def test_gap_resets_streak(self):
        now = _utc(2024, 1, 5, 12)
        rows = [make_row(_utc(2024, 1, 1, 12)), make_row(_utc(2024, 1, 5, 9))]
        assert aggregate_progress(rows, now=now).metrics.streak == 1

    def test_streak_ending_yesterday_still_counts(self):
        today = date(2024, 1, 10)
        days = [date(2024, 1, 7), date(2024, 1, 8), date(2024, 1, 9)]
        assert compute_streak(days, today) == 3

    def test_streak_older_than_yesterday_is_zero(self):
        today = date(2024, 1, 10)
        assert compute_streak([date(2024, 1, 7), date(2024, 1, 8)], today) == 0

    def test_multiple_submissions_same_day_count_once(self):
        rows = [make_row(_utc(2024, 1, 3, h)) for h in (8, 9, 10)]
        assert aggregate_progress(rows, now=NOW).metrics.streak == 1

    def test_days_use_local_timezone(self):
        # 23:30 UTC on Jan 2 is already Jan 3 in Oslo
        rows = [make_row(_utc(2024, 1, 1, 12)), make_row(_utc(2024, 1, 2, 23, 30))]
        summary = aggregate_progress(rows, now=NOW, tz="Europe/Oslo")
        assert summary.metrics.streak == 1
        summary_utc = aggregate_progress(rows, now=NOW, tz="UTC")
        assert summary_utc.metrics.streak == 2


class TestGeography:

    def test_haversine_oslo_bergen(self):
        distance = haversine_km((59.9139, 10.7522), (60.3913, 5.3221))
        assert 300 < distance < 310

    def test_haversine_same_point_is_zero(self):
        assert haversine_km((60.0, 5.0), (60.0, 5.0)) == 0

    def test_ten_points_within_two_km(self):
        points = [(60.39 + i * 0.001, 5.32 + i * 0.001) for i in range(10)]
        assert compute_local_hero(points) == 10

    def test_local_hero_takes_best_cluster(self):
        bergen = [(60.39, 5.32)] * 4
        oslo = [(59.91, 10.75)] * 6
        assert compute_local_hero(bergen + oslo) == 6

    def test_local_hero_ignores_untagged_submissions(self):
        rows = [make_row(NOW, lat=None, lng=None) for _ in range(5)]
        rows.append(make_row(NOW))
        assert aggregate_progress(rows, now=NOW).metrics.local_hero == 1

    def test_unique_points_on_two_decimal_grid(self):
        points = [(60.001, 5.001), (60.004, 5.004), (60.006, 5.006)]
        assert compute_unique_points(points) == 2


class TestCounts:

    def test_seasonal_and_month_counts(self):
        rows = [
            make_row(_utc(2023, 12, 15, 12)),
            make_row(_utc(2023, 1, 15, 12)),
            make_row(_utc(2024, 1, 2, 12)),
            make_row(_utc(2023, 7, 1, 12)),
            make_row(_utc(2023, 4, 1, 12)),
        ]
        m = aggregate_progress(rows, now=NOW).metrics
        assert m.winter_count == 3
        assert m.summer_count == 1
        # Jan twice (different years) counts once
        assert m.unique_months == 4

    def test_condition_counts(self):
        rows = [
            make_row(NOW, level=1, wind_dir="N"),
            make_row(NOW, level=2, wave_dir="SW"),
            make_row(NOW, level=3, wind_dir="E", wave_dir="E"),
        ]
        m = aggregate_progress(rows, now=NOW).metrics
        assert m.calm_count == 1
        assert m.storm_count == 2
        assert m.wind_tagged_count == 2
        assert m.wave_tagged_count == 2

    def test_timelines_are_ascending(self):
        rows = [make_row(_utc(2024, 1, d, 12)) for d in (3, 1, 2)]
        summary = aggregate_progress(rows, now=NOW)
        assert list(summary.timelines["total"]) == sorted(summary.timelines["total"])
        assert summary.latest_at == _utc(2024, 1, 3, 12)


class TestEarnedAtForCount:

    def test_returns_nth_timestamp(self):
        stamps = [_utc(2024, 1, d) for d in range(1, 6)]
        assert earned_at_for_count(stamps, 1) == stamps[0]
        assert earned_at_for_count(stamps, 5) == stamps[4]

    def test_none_when_short(self):
        assert earned_at_for_count([_utc(2024, 1, 1)], 2) is None

    def test_zero_threshold_is_none(self):
        assert earned_at_for_count([_utc(2024, 1, 1)], 0) is None


class TestMalformedRows:

    def test_malformed_rows_are_skipped(self, caplog):
        rows = [
            make_row(NOW),
            make_row("not-a-date"),
            make_row(NOW, lat=123.0),
        ]
        with caplog.at_level(logging.WARNING, logger="app.badges.progress"):
            summary = aggregate_progress(rows, now=NOW)
        assert summary.metrics.total == 1
        assert "Skipping malformed submission" in caplog.text

    def test_soft_deleted_rows_are_dropped(self):
        rows = [make_row(NOW), make_row(NOW, deleted_at=NOW)]
        assert len(coerce_submissions(rows)) == 1

    def test_mongo_style_id_is_accepted(self):
        row = make_row(NOW)
        row["_id"] = row.pop("id")
        assert coerce_submissions([row])[0].id == row["_id"]

    def test_naive_timestamps_are_utc(self):
        rows = [make_row(datetime(2024, 1, 3, 12))]
        assert coerce_submissions(rows)[0].created_at == NOW


def test_aggregation_is_idempotent():
    rows = daily_rows(NOW - timedelta(days=20), 21, wind_dir="N")
    assert aggregate_progress(rows, now=NOW) == aggregate_progress(rows, now=NOW)
