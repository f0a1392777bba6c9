"""Single-activity scheduling checks against a stored training plan.

A plan document carries its window and normalized creation config; each
rule below answers whether one more activity on a given date stays within
them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from projection_engine.math.calendar import parse_date, week_start
from projection_engine.models.enums import WEEKDAYS, ConstraintStatus
from plan_service.collaborators import ActivityPlan, ActivityPlanReader, ScheduledActivity

WITHIN_PLAN_WINDOW = "within_plan_window"
HARD_REST_DAY = "hard_rest_day"
MAX_SESSIONS_PER_WEEK = "max_sessions_per_week"
WEEKLY_LOAD_CAP = "weekly_load_cap"
MAX_SINGLE_SESSION_DURATION = "max_single_session_duration"


@dataclass(frozen=True)
class RuleResult:
    status: ConstraintStatus
    message: str


@dataclass(frozen=True)
class ConstraintValidation:
    """Whether an activity can be scheduled, with the verdict of every rule."""

    can_schedule: bool
    constraints: dict[str, RuleResult] = field(default_factory=dict)


def _satisfied(message: str) -> RuleResult:
    return RuleResult(ConstraintStatus.SATISFIED, message)


def _violated(message: str) -> RuleResult:
    return RuleResult(ConstraintStatus.VIOLATED, message)


def _plan_constraints(document: dict) -> dict:
    config = document.get("normalized_creation_config") or {}
    return config.get("constraints") or {}


def check_plan_window(document: dict, scheduled_date: date) -> RuleResult:
    start = parse_date(document.get("plan_start_date"))
    end = parse_date(document.get("plan_end_date"))
    if start is None or end is None:
        return RuleResult(ConstraintStatus.UNKNOWN, "Plan window is not recorded.")
    if start <= scheduled_date <= end:
        return _satisfied(f"{scheduled_date.isoformat()} is within {start.isoformat()}..{end.isoformat()}.")
    return _violated(f"{scheduled_date.isoformat()} is outside {start.isoformat()}..{end.isoformat()}.")


def check_hard_rest_day(constraints: dict, scheduled_date: date) -> RuleResult:
    weekday = WEEKDAYS[scheduled_date.weekday()]
    if weekday in [d.lower() for d in constraints.get("hard_rest_days") or ()]:
        return _violated(f"{weekday.capitalize()} is a hard rest day.")
    return _satisfied(f"{weekday.capitalize()} is not a rest day.")


def check_max_sessions(constraints: dict, same_week: list[ScheduledActivity]) -> RuleResult:
    limit = constraints.get("max_sessions_per_week")
    if limit is None:
        return _satisfied("No weekly session limit configured.")
    count = len(same_week) + 1
    if count > limit:
        return _violated(f"{count} sessions that week would exceed the limit of {limit}.")
    return _satisfied(f"{count} of {limit} weekly sessions used.")


def check_weekly_load(constraints: dict, week_tss: float, activity: ActivityPlan) -> RuleResult:
    cap = constraints.get("weekly_load_cap_tss")
    if cap is None:
        return _satisfied("No weekly load cap configured.")
    total = week_tss + activity.estimated_tss
    if total > cap:
        return _violated(f"Weekly load would reach {total:.0f} TSS, above the cap of {cap:.0f}.")
    return _satisfied(f"Weekly load would be {total:.0f} of {cap:.0f} TSS.")


def check_session_duration(constraints: dict, activity: ActivityPlan) -> RuleResult:
    limit = constraints.get("max_single_session_duration_minutes")
    if limit is None:
        return _satisfied("No session duration limit configured.")
    if activity.estimated_duration_minutes > limit:
        return _violated(
            f"Session lasts {activity.estimated_duration_minutes:.0f} min, above the limit of {limit:.0f} min."
        )
    return _satisfied(f"Session lasts {activity.estimated_duration_minutes:.0f} of {limit:.0f} min.")


def validate_activity(
    document: dict,
    scheduled: list[ScheduledActivity],
    scheduled_date: date,
    activity: ActivityPlan,
    activity_reader: ActivityPlanReader,
) -> ConstraintValidation:
    """Run every scheduling rule for one activity on one date.

    Load already scheduled in the same calendar week is looked up through
    *activity_reader*; unknown activity plans contribute no load.
    """
    constraints = _plan_constraints(document)
    monday = week_start(scheduled_date)
    same_week = [s for s in scheduled if week_start(s.scheduled_date) == monday]
    week_tss = 0.0
    for item in same_week:
        plan = activity_reader.get_activity_plan(item.activity_plan_id)
        if plan is not None:
            week_tss += plan.estimated_tss

    results = {
        WITHIN_PLAN_WINDOW: check_plan_window(document, scheduled_date),
        HARD_REST_DAY: check_hard_rest_day(constraints, scheduled_date),
        MAX_SESSIONS_PER_WEEK: check_max_sessions(constraints, same_week),
        WEEKLY_LOAD_CAP: check_weekly_load(constraints, week_tss, activity),
        MAX_SINGLE_SESSION_DURATION: check_session_duration(constraints, activity),
    }
    can_schedule = all(r.status != ConstraintStatus.VIOLATED for r in results.values())
    return ConstraintValidation(can_schedule=can_schedule, constraints=results)
