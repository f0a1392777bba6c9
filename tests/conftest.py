"""Shared test fixtures: athletes, training histories, goal calendars and requests."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable

import pytest

from projection_engine.context import derive_training_context
from projection_engine.models.context import ActivityRecord, ProfileSnapshot, TrainingContext
from projection_engine.models.goals import (
    Goal,
    HrThresholdTarget,
    MinimalPlan,
    RacePerformanceTarget,
)

AS_OF = date(2026, 3, 1)  # Sunday
PLAN_START = date(2026, 3, 2)  # Monday


def _daily_history(days: int, tss: float = 50.0, end: date = AS_OF) -> list[ActivityRecord]:
    return [
        ActivityRecord(
            date=end - timedelta(days=offset),
            duration_seconds=3600.0,
            training_stress_score=tss,
        )
        for offset in range(days - 1, -1, -1)
    ]


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def plan_start() -> date:
    return PLAN_START


@pytest.fixture
def steady_history() -> list[ActivityRecord]:
    """120 days of 50 TSS/day: CTL near 50, baseline 350 TSS/week."""
    return _daily_history(120)


@pytest.fixture
def male_profile() -> ProfileSnapshot:
    """35-year-old male at AS_OF."""
    return ProfileSnapshot(dob="1990-06-15", gender="male")


@pytest.fixture
def steady_context(steady_history, male_profile) -> TrainingContext:
    return derive_training_context(male_profile, steady_history, [], AS_OF)


@pytest.fixture
def empty_context() -> TrainingContext:
    return derive_training_context(None, [], [], AS_OF)


@pytest.fixture
def ten_k_plan() -> MinimalPlan:
    """Single 10 km goal in 55:00, 16 weeks out."""
    return MinimalPlan.from_goals(
        PLAN_START,
        Goal(
            id="10k",
            name="Summer 10K",
            target_date=date(2026, 6, 21),
            targets=(RacePerformanceTarget(distance_m=10_000, target_time_s=3300),),
        ),
    )


@pytest.fixture
def half_marathon_plan() -> MinimalPlan:
    """Half marathon in 1:45:00, 12 weeks out."""
    return MinimalPlan.from_goals(
        PLAN_START,
        Goal(
            id="hm",
            name="Spring Half",
            target_date=date(2026, 5, 24),
            targets=(RacePerformanceTarget(distance_m=21_097.5, target_time_s=6300),),
        ),
    )


@pytest.fixture
def close_goals_plan() -> MinimalPlan:
    """Two goals nine days apart."""
    return MinimalPlan.from_goals(
        PLAN_START,
        Goal(
            id="a",
            name="Tune-up 10K",
            target_date=date(2026, 5, 10),
            targets=(RacePerformanceTarget(distance_m=10_000, target_time_s=3000),),
        ),
        Goal(
            id="b",
            name="Threshold Test",
            target_date=date(2026, 5, 19),
            priority=2,
            targets=(HrThresholdTarget(target_lthr_bpm=172),),
        ),
    )


@pytest.fixture
def history_factory() -> Callable[..., list[ActivityRecord]]:
    """Factory fixture for daily run histories.

    Usage:
        records = history_factory(days=30, tss=60.0)
        records = history_factory(days=10, end=date(2025, 12, 1))
    """
    return _daily_history


@pytest.fixture
def plan_request() -> dict:
    """Minimal plan request as a client would send it."""
    return {
        "plan_start_date": "2026-03-02",
        "goals": [
            {
                "id": "10k",
                "name": "Summer 10K",
                "target_date": "2026-06-21",
                "targets": [{"target_type": "race_performance", "distance_m": 10000, "target_time_s": 3300}],
            }
        ],
    }


@pytest.fixture
def config_request() -> dict:
    return {
        "optimization_profile": "balanced",
        "constraints": {
            "weekly_load_cap_tss": 600,
            "max_sessions_per_week": 3,
            "hard_rest_days": ["friday"],
            "max_single_session_duration_minutes": 120,
        },
    }
