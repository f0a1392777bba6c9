"""Parse JSON request dicts into engine input models."""

from __future__ import annotations

from projection_engine.exceptions import PlanValidationError
from projection_engine.math.calendar import parse_date
from projection_engine.models.context import ActivityRecord, EffortBest, ProfileSnapshot
from projection_engine.models.creation_config import (
    AvailabilityConfig,
    AvailabilityDay,
    CreationConfig,
    TrainingConstraints,
)
from projection_engine.models.goals import (
    Goal,
    HrThresholdTarget,
    MinimalPlan,
    PaceThresholdTarget,
    PowerThresholdTarget,
    RacePerformanceTarget,
    Target,
)


def _required_date(raw: dict, key: str):
    value = parse_date(raw.get(key))
    if value is None:
        raise PlanValidationError(f"{key} must be an ISO date, got {raw.get(key)!r}")
    return value


def parse_target(raw: dict) -> Target:
    kind = raw.get("target_type") or raw.get("kind")
    if kind == "race_performance":
        return RacePerformanceTarget(
            distance_m=float(raw["distance_m"]),
            target_time_s=float(raw["target_time_s"]),
            activity_category=raw.get("activity_category", "run"),
        )
    if kind == "hr_threshold":
        return HrThresholdTarget(target_lthr_bpm=float(raw["target_lthr_bpm"]))
    if kind == "pace_threshold":
        return PaceThresholdTarget(
            target_speed_mps=float(raw["target_speed_mps"]),
            test_duration_s=float(raw.get("test_duration_s", 1200)),
        )
    if kind == "power_threshold":
        return PowerThresholdTarget(
            target_watts=float(raw["target_watts"]),
            test_duration_s=float(raw.get("test_duration_s", 1200)),
        )
    raise PlanValidationError(f"unknown target type {kind!r}")


def parse_goal(raw: dict, position: int = 0) -> Goal:
    try:
        targets = tuple(parse_target(t) for t in raw.get("targets", ()))
    except (KeyError, TypeError, ValueError) as exc:
        raise PlanValidationError(f"malformed target in goal {raw.get('name')!r}: {exc}") from exc
    return Goal(
        id=str(raw.get("id") or f"goal-{position + 1}"),
        name=str(raw.get("name", "")),
        target_date=_required_date(raw, "target_date"),
        priority=int(raw.get("priority", 1)),
        targets=targets,
    )


def parse_minimal_plan(raw: dict) -> MinimalPlan:
    """Parse ``{plan_start_date, goals: [...]}`` into a sorted ``MinimalPlan``."""
    goals = [parse_goal(g, i) for i, g in enumerate(raw.get("goals", ()))]
    return MinimalPlan.from_goals(_required_date(raw, "plan_start_date"), *goals)


def parse_creation_config(raw: dict | None) -> CreationConfig:
    raw = raw or {}
    constraints = None
    if raw.get("constraints") is not None:
        c = raw["constraints"]
        constraints = TrainingConstraints(
            weekly_load_floor_tss=c.get("weekly_load_floor_tss"),
            weekly_load_cap_tss=c.get("weekly_load_cap_tss"),
            hard_rest_days=tuple(c.get("hard_rest_days", ())),
            min_sessions_per_week=c.get("min_sessions_per_week"),
            max_sessions_per_week=c.get("max_sessions_per_week"),
            max_single_session_duration_minutes=c.get("max_single_session_duration_minutes"),
        )
    availability = None
    if raw.get("availability") is not None:
        availability = AvailabilityConfig(
            days=tuple(
                AvailabilityDay(day=d["day"], max_minutes=float(d.get("max_minutes", 0)))
                for d in raw["availability"].get("days", ())
            )
        )
    return CreationConfig(
        optimization_profile=raw.get("optimization_profile"),
        post_goal_recovery_days=raw.get("post_goal_recovery_days"),
        max_weekly_tss_ramp_pct=raw.get("max_weekly_tss_ramp_pct"),
        max_ctl_ramp_per_week=raw.get("max_ctl_ramp_per_week"),
        constraints=constraints,
        availability=availability,
    )


def parse_activity_record(raw: dict) -> ActivityRecord:
    """Parse one history row. Malformed dates are kept and dropped later."""
    return ActivityRecord(
        date=raw.get("date"),
        activity_category=raw.get("activity_category", "run"),
        duration_seconds=float(raw.get("duration_seconds") or 0.0),
        training_stress_score=raw.get("training_stress_score"),
        power_zone_seconds=tuple(raw.get("power_zone_seconds") or ()),
        hr_zone_seconds=tuple(raw.get("hr_zone_seconds") or raw.get("zone_seconds") or ()),
    )


def parse_effort_best(raw: dict) -> EffortBest:
    return EffortBest(
        date=raw.get("date"),
        effort_type=raw.get("effort_type", "unknown"),
        duration_seconds=float(raw.get("duration_seconds") or 0.0),
        value=float(raw.get("value") or 0.0),
    )


def parse_profile(raw: dict | None) -> ProfileSnapshot:
    raw = raw or {}
    return ProfileSnapshot(dob=raw.get("dob"), gender=raw.get("gender"))
