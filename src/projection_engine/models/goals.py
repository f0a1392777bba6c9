"""Goals, targets and the minimal plan a projection is built from.

A goal carries one or more physiological targets. Targets are a tagged
variant: each dataclass reports its ``kind`` and the demand model dispatches
on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Union

from projection_engine.exceptions import PlanValidationError
from projection_engine.models.enums import TargetKind


@dataclass(frozen=True)
class RacePerformanceTarget:
    """Finish a distance in a target time."""

    distance_m: float
    target_time_s: float
    activity_category: str = "run"

    @property
    def kind(self) -> TargetKind:
        return TargetKind.RACE_PERFORMANCE

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0

    @property
    def speed_kph(self) -> float:
        if self.target_time_s <= 0:
            return 0.0
        return self.distance_km / (self.target_time_s / 3600.0)


@dataclass(frozen=True)
class HrThresholdTarget:
    """Reach a lactate-threshold heart rate."""

    target_lthr_bpm: float

    @property
    def kind(self) -> TargetKind:
        return TargetKind.HR_THRESHOLD


@dataclass(frozen=True)
class PaceThresholdTarget:
    """Hold a threshold speed for a test duration."""

    target_speed_mps: float
    test_duration_s: float = 1200.0

    @property
    def kind(self) -> TargetKind:
        return TargetKind.PACE_THRESHOLD


@dataclass(frozen=True)
class PowerThresholdTarget:
    """Hold a threshold power for a test duration."""

    target_watts: float
    test_duration_s: float = 1200.0

    @property
    def kind(self) -> TargetKind:
        return TargetKind.POWER_THRESHOLD


Target = Union[
    RacePerformanceTarget,
    HrThresholdTarget,
    PaceThresholdTarget,
    PowerThresholdTarget,
]


@dataclass(frozen=True)
class Goal:
    """A dated goal. Priority 1 is the most important, 10 the least."""

    id: str
    name: str
    target_date: date
    priority: int = 1
    targets: tuple[Target, ...] = field(default_factory=tuple)

    @property
    def weight(self) -> float:
        """Objective weight of this goal; higher priority weighs more."""
        return float(11 - self.priority)


@dataclass(frozen=True)
class MinimalPlan:
    """Plan start date plus goals, stored sorted by target date.

    Use ``from_goals()`` to build from unsorted inputs.
    """

    plan_start_date: date
    goals: tuple[Goal, ...] = field(default_factory=tuple)

    # -- Factory ----------------------------------------------------------

    @classmethod
    def from_goals(cls, plan_start_date: date, *goals: Goal) -> MinimalPlan:
        """Create a MinimalPlan with goals sorted by date, priority then id."""
        ordered = tuple(sorted(goals, key=lambda g: (g.target_date, g.priority, g.id)))
        return cls(plan_start_date=plan_start_date, goals=ordered)

    # -- Query helpers ----------------------------------------------------

    @property
    def end_date(self) -> date:
        """Latest goal target date (the end of the projection timeline)."""
        return max(g.target_date for g in self.goals)

    def next_goal(self, as_of: date) -> Goal | None:
        """Return the first goal on or after *as_of*, or None."""
        for goal in self.goals:
            if goal.target_date >= as_of:
                return goal
        return None


def _validate_target(goal: Goal, target: Target) -> None:
    if isinstance(target, RacePerformanceTarget):
        if target.distance_m <= 0 or target.target_time_s <= 0:
            raise PlanValidationError(
                f"goal '{goal.name}' race target needs a positive distance and time"
            )
    elif isinstance(target, HrThresholdTarget):
        if target.target_lthr_bpm <= 0:
            raise PlanValidationError(f"goal '{goal.name}' needs a positive target_lthr_bpm")
    elif isinstance(target, PaceThresholdTarget):
        if target.target_speed_mps <= 0:
            raise PlanValidationError(f"goal '{goal.name}' needs a positive target_speed_mps")
    elif isinstance(target, PowerThresholdTarget):
        if target.target_watts <= 0:
            raise PlanValidationError(f"goal '{goal.name}' needs positive target_watts")


def validate_minimal_plan(plan: MinimalPlan) -> None:
    """Reject malformed or contradictory plans before any computation.

    Raises:
        PlanValidationError: With code ``invalid_minimal_plan``.
    """
    if not plan.goals:
        raise PlanValidationError("plan must contain at least one goal")

    seen_ids: set[str] = set()
    for goal in plan.goals:
        if not goal.name or not goal.name.strip():
            raise PlanValidationError("goal name must not be blank")
        if goal.id in seen_ids:
            raise PlanValidationError(f"duplicate goal id '{goal.id}'")
        seen_ids.add(goal.id)
        if not 1 <= goal.priority <= 10:
            raise PlanValidationError(
                f"goal '{goal.name}' priority must be between 1 and 10"
            )
        for target in goal.targets:
            _validate_target(goal, target)

    if plan.plan_start_date > plan.end_date:
        raise PlanValidationError(
            "plan_start_date must not be after the latest goal target_date"
        )
