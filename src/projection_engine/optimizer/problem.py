"""Optimization problem: week grid, reference trajectory and hard constraints.

The reference trajectory is the weekly load that would move fitness along an
ideal CTL path from the starting state to each goal's demand, shaped by the
week pattern (build, deload, taper, event, recovery). Tiers search around it
and are pruned by the hard constraints in ``evaluate_week``.

References:
    - Pfitzinger & Douglas (2009): three-build / one-deload cadence
    - Mujika & Padilla (2003): taper load reduction
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

from projection_engine.math.calendar import calendar_weeks
from projection_engine.math.training_load import (
    constant_load_after_days,
    weekly_tss_to_reach_ctl,
)
from projection_engine.models.calibration import (
    PROFILE_OBJECTIVE_WEIGHTS,
    CalibrationConfig,
    ObjectiveWeights,
    OptimizerSettings,
)
from projection_engine.models.creation_config import NormalizedCreationConfig
from projection_engine.models.enums import (
    DELOAD_EVERY_N_WEEKS,
    DELOAD_MULTIPLIER,
    EVENT_MULTIPLIER,
    RECOVERY_REDUCTION,
    TAPER_MULTIPLIER,
    WeekPattern,
)
from projection_engine.models.goals import Goal, MinimalPlan
from projection_engine.models.projection import GoalDemand, StartingState

_EPSILON = 1e-6

# Hard constraint names, in the order they are checked
NON_NEGATIVITY = "non_negativity"
TSS_RAMP_CAP = "tss_ramp_cap"
WEEKLY_LOAD_CAP = "weekly_load_cap"
RECOVERY_WINDOW = "recovery_window"
CTL_RAMP_CAP = "ctl_ramp_cap"
GOAL_DEMAND_UPPER = "goal_demand_upper"


@dataclass(frozen=True)
class WeekSlot:
    """One calendar week of the projection timeline."""

    index: int
    week_start: date
    week_end: date
    pattern: WeekPattern
    multiplier: float
    goal_id: str
    goal_weight: float
    reference_tss: float
    target_ctl: float
    demand_high_ctl: float
    recovery_goal_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def days(self) -> int:
        return (self.week_end - self.week_start).days + 1


@dataclass(frozen=True)
class ProjectionProblem:
    """Everything a tier needs to propose weekly trajectories."""

    start_date: date
    end_date: date
    weeks: tuple[WeekSlot, ...]
    start: StartingState
    demands: tuple[GoalDemand, ...]
    config: NormalizedCreationConfig
    fitness_tc: float
    fatigue_tc: float
    learned_ramp_rate: float
    weights: ObjectiveWeights
    settings: OptimizerSettings
    weekly_floor: float | None = None
    weekly_cap: float | None = None

    @property
    def tss_ramp_factor(self) -> float:
        return 1.0 + self.config.max_weekly_tss_ramp_pct / 100.0

    def ctl_after(self, ctl: float, weekly_tss: float, days: int) -> float:
        return constant_load_after_days(ctl, weekly_tss / 7.0, days, self.fitness_tc)

    def demand_for(self, goal_id: str) -> GoalDemand:
        for demand in self.demands:
            if demand.goal_id == goal_id:
                return demand
        raise KeyError(goal_id)


@dataclass(frozen=True)
class WeekEvaluation:
    """Result of applying one weekly load to a state."""

    ctl_end: float
    violations: tuple[str, ...]

    @property
    def feasible(self) -> bool:
        return not self.violations


def evaluate_week(
    problem: ProjectionProblem,
    slot: WeekSlot,
    previous_tss: float,
    ctl_start: float,
    weekly_tss: float,
) -> WeekEvaluation:
    """Apply *weekly_tss* to one week and list every hard constraint it breaks."""
    violations = []
    if weekly_tss < -_EPSILON:
        violations.append(NON_NEGATIVITY)
    if weekly_tss > previous_tss * problem.tss_ramp_factor + _EPSILON:
        violations.append(TSS_RAMP_CAP)
    if problem.weekly_cap is not None and weekly_tss > problem.weekly_cap + _EPSILON:
        violations.append(WEEKLY_LOAD_CAP)
    if slot.pattern == WeekPattern.RECOVERY and weekly_tss > previous_tss + _EPSILON:
        violations.append(RECOVERY_WINDOW)

    ctl_end = problem.ctl_after(ctl_start, weekly_tss, slot.days)
    gain = ctl_end - ctl_start
    if gain > problem.config.max_ctl_ramp_per_week + _EPSILON:
        violations.append(CTL_RAMP_CAP)
    if gain > 0 and ctl_end > slot.demand_high_ctl + _EPSILON:
        violations.append(GOAL_DEMAND_UPPER)
    return WeekEvaluation(ctl_end=ctl_end, violations=tuple(violations))


# -- Week grid ---------------------------------------------------------------


def _governing_goal(goals: tuple[Goal, ...], week_start: date) -> Goal:
    for goal in goals:
        if goal.target_date >= week_start:
            return goal
    return goals[-1]


def _recovery_overlap(
    goals: tuple[Goal, ...], recovery_days: int, start: date, end: date
) -> tuple[tuple[str, ...], int]:
    ids, covered = [], set()
    if recovery_days <= 0:
        return (), 0
    for goal in goals:
        first = goal.target_date + timedelta(days=1)
        last = goal.target_date + timedelta(days=recovery_days)
        lo, hi = max(first, start), min(last, end)
        if lo <= hi:
            ids.append(goal.id)
            covered.update(lo + timedelta(days=i) for i in range((hi - lo).days + 1))
    return tuple(ids), len(covered)


def _ideal_ctl(
    goals: tuple[Goal, ...],
    demands: dict[str, GoalDemand],
    start_date: date,
    start_ctl: float,
    day: date,
) -> float:
    """Linear CTL path between the start and consecutive goal demands."""
    anchor_date, anchor_ctl = start_date, start_ctl
    for goal in goals:
        target = demands[goal.id].target_ctl
        if day <= goal.target_date:
            span = (goal.target_date - anchor_date).days
            if span <= 0:
                return target
            progress = (day - anchor_date).days / span
            return anchor_ctl + (target - anchor_ctl) * max(0.0, min(1.0, progress))
        anchor_date, anchor_ctl = goal.target_date, target
    return anchor_ctl


def build_problem(
    plan: MinimalPlan,
    config: NormalizedCreationConfig,
    demands: tuple[GoalDemand, ...],
    start: StartingState,
    fitness_tc: float,
    fatigue_tc: float,
    learned_ramp_rate: float,
    calibration: CalibrationConfig,
) -> ProjectionProblem:
    """Lay out the week grid and reference loads for a plan."""
    goals = plan.goals
    by_id = {d.goal_id: d for d in demands}
    goal_dates = {g.target_date for g in goals}
    spans = calendar_weeks(plan.plan_start_date, plan.end_date)

    slots = []
    builds_since_event = 0
    for index, (week_start, week_end) in enumerate(spans):
        goal = _governing_goal(goals, week_start)
        demand = by_id[goal.id]
        days = (week_end - week_start).days + 1
        recovery_ids, covered = _recovery_overlap(goals, config.post_goal_recovery_days, week_start, week_end)
        has_event = any(week_start <= d <= week_end for d in goal_dates)
        next_week_end = week_end + timedelta(days=7)
        precedes_event = any(week_end < d <= next_week_end for d in goal_dates)

        if has_event:
            pattern, multiplier = WeekPattern.EVENT, EVENT_MULTIPLIER
            builds_since_event = 0
        elif recovery_ids:
            pattern = WeekPattern.RECOVERY
            multiplier = 1.0 - RECOVERY_REDUCTION * (covered / days)
        elif precedes_event:
            pattern, multiplier = WeekPattern.TAPER, TAPER_MULTIPLIER
        else:
            builds_since_event += 1
            if builds_since_event % DELOAD_EVERY_N_WEEKS == 0:
                pattern, multiplier = WeekPattern.DELOAD, DELOAD_MULTIPLIER
            else:
                pattern, multiplier = WeekPattern.BUILD, 1.0

        ctl_from = _ideal_ctl(goals, by_id, plan.plan_start_date, start.ctl, week_start - timedelta(days=1))
        ctl_to = _ideal_ctl(goals, by_id, plan.plan_start_date, start.ctl, week_end)
        reference = weekly_tss_to_reach_ctl(ctl_from, ctl_to, fitness_tc, days) * multiplier

        slots.append(
            WeekSlot(
                index=index,
                week_start=week_start,
                week_end=week_end,
                pattern=pattern,
                multiplier=round(multiplier, 4),
                goal_id=goal.id,
                goal_weight=goal.weight / 10.0,
                reference_tss=round(reference, 3),
                target_ctl=ctl_to,
                demand_high_ctl=max(demand.band_high_ctl, start.ctl),
                recovery_goal_ids=recovery_ids,
            )
        )

    constraints = config.constraints
    return ProjectionProblem(
        start_date=plan.plan_start_date,
        end_date=plan.end_date,
        weeks=tuple(slots),
        start=start,
        demands=demands,
        config=config,
        fitness_tc=fitness_tc,
        fatigue_tc=fatigue_tc,
        learned_ramp_rate=learned_ramp_rate,
        weights=PROFILE_OBJECTIVE_WEIGHTS[config.profile_name],
        settings=calibration.optimizer,
        weekly_floor=constraints.weekly_load_floor_tss,
        weekly_cap=constraints.weekly_load_cap_tss,
    )
