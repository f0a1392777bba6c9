"""Tests for date parsing, ISO week helpers and the activity frame."""

from __future__ import annotations

from datetime import date, datetime

import pandas as pd
import pytest

from projection_engine.math.calendar import (
    activity_frame,
    calendar_weeks,
    daily_tss_series,
    daterange,
    effective_tss,
    parse_date,
    week_start,
    weekly_tss_totals,
)
from projection_engine.models.context import ActivityRecord


class TestParseDate:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (date(2026, 3, 1), date(2026, 3, 1)),
            (datetime(2026, 3, 1, 18, 30), date(2026, 3, 1)),
            ("2026-03-01", date(2026, 3, 1)),
            ("2026-03-01T07:15:00Z", date(2026, 3, 1)),
            (" 2026-03-01 ", date(2026, 3, 1)),
            ("yesterday", None),
            ("2026-02-30", None),
            (None, None),
            (20260301, None),
        ],
    )
    def test_parse(self, value, expected) -> None:
        assert parse_date(value) == expected


class TestWeeks:
    def test_week_start_is_monday(self) -> None:
        assert week_start(date(2026, 3, 1)) == date(2026, 2, 23)
        assert week_start(date(2026, 3, 2)) == date(2026, 3, 2)

    def test_daterange_inclusive(self) -> None:
        days = list(daterange(date(2026, 3, 1), date(2026, 3, 3)))
        assert days == [date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 3)]

    def test_calendar_weeks_clipped(self) -> None:
        # Wednesday to the following Tuesday
        weeks = calendar_weeks(date(2026, 3, 4), date(2026, 3, 17))
        assert weeks == [
            (date(2026, 3, 4), date(2026, 3, 8)),
            (date(2026, 3, 9), date(2026, 3, 15)),
            (date(2026, 3, 16), date(2026, 3, 17)),
        ]

    def test_single_day_timeline(self) -> None:
        assert calendar_weeks(date(2026, 3, 4), date(2026, 3, 4)) == [(date(2026, 3, 4), date(2026, 3, 4))]


class TestEffectiveTss:
    def test_uses_stress_score(self) -> None:
        assert effective_tss(ActivityRecord(date="2026-03-01", training_stress_score=72.0)) == 72.0

    def test_falls_back_to_duration(self) -> None:
        record = ActivityRecord(date="2026-03-01", duration_seconds=5400.0)
        assert effective_tss(record) == pytest.approx(67.5)

    def test_nan_score_falls_back(self) -> None:
        record = ActivityRecord(date="2026-03-01", duration_seconds=3600.0, training_stress_score=float("nan"))
        assert effective_tss(record) == pytest.approx(45.0)

    def test_empty_activity(self) -> None:
        assert effective_tss(ActivityRecord(date="2026-03-01")) == 0.0


class TestActivityFrame:
    def test_drops_malformed_and_sorts(self) -> None:
        records = [
            ActivityRecord(date="2026-03-02", training_stress_score=40.0),
            ActivityRecord(date="not a date", training_stress_score=99.0),
            ActivityRecord(date="2026-03-01", training_stress_score=30.0),
        ]
        frame, malformed = activity_frame(records)
        assert malformed == 1
        assert frame["tss"].tolist() == [30.0, 40.0]
        assert frame["index"].tolist() == [2, 0]

    def test_daily_series_zero_fills(self) -> None:
        records = [
            ActivityRecord(date="2026-03-01", training_stress_score=30.0),
            ActivityRecord(date="2026-03-01", training_stress_score=20.0),
            ActivityRecord(date="2026-03-03", training_stress_score=40.0),
        ]
        frame, _ = activity_frame(records)
        series = daily_tss_series(frame, date(2026, 2, 28), date(2026, 3, 3))
        assert series.tolist() == [0.0, 50.0, 0.0, 40.0]

    def test_daily_series_empty(self) -> None:
        frame, _ = activity_frame([])
        series = daily_tss_series(frame, date(2026, 3, 1), date(2026, 3, 7))
        assert len(series) == 7
        assert series.sum() == 0.0

    def test_weekly_totals_by_monday(self) -> None:
        records = [
            ActivityRecord(date="2026-03-01", training_stress_score=30.0),  # Sunday
            ActivityRecord(date="2026-03-02", training_stress_score=40.0),  # Monday
            ActivityRecord(date="2026-03-08", training_stress_score=10.0),  # Sunday
        ]
        frame, _ = activity_frame(records)
        totals = weekly_tss_totals(frame)
        assert totals.index.tolist() == [pd.Timestamp("2026-02-23"), pd.Timestamp("2026-03-02")]
        assert totals.tolist() == [30.0, 50.0]
