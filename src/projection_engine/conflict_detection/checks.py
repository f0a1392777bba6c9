"""Conflict checks for a goal calendar and its creation configuration."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta

from projection_engine.math.demand import required_ramp
from projection_engine.models.conflicts import ConflictItem
from projection_engine.models.creation_config import NormalizedCreationConfig
from projection_engine.models.enums import MIN_PREP_DAYS_AFTER_RECOVERY
from projection_engine.models.goals import MinimalPlan
from projection_engine.models.projection import GoalDemand, StartingState


class ConflictCheck(ABC):
    """Base class for conflict checks."""

    name: str = ""

    @abstractmethod
    def detect(
        self,
        plan: MinimalPlan,
        config: NormalizedCreationConfig,
        demands: tuple[GoalDemand, ...],
        start: StartingState,
    ) -> list[ConflictItem]:
        """Return every conflict this check finds, in calendar order."""
        ...


class RampCapCheck(ConflictCheck):
    """Flags goals whose required ramp exceeds a configured cap.

    Only goals that need fitness growth are checked; maintaining or
    reducing load never conflicts with a ramp cap.
    """

    name = "ramp_caps"

    def detect(self, plan, config, demands, start):
        items = []
        for demand in demands:
            ramp = required_ramp(demand, start, plan.plan_start_date)
            if not ramp.requires_growth:
                continue
            if ramp.required_tss_ramp_pct > config.max_weekly_tss_ramp_pct + 1e-9:
                items.append(
                    ConflictItem(
                        code="required_tss_ramp_exceeds_cap",
                        is_blocking=True,
                        message=(
                            f"Goal '{demand.goal_id}' needs a weekly TSS ramp of "
                            f"{min(ramp.required_tss_ramp_pct, 999.0):.1f}% but the cap is "
                            f"{config.max_weekly_tss_ramp_pct:.1f}%."
                        ),
                        related_dates=(demand.target_date,),
                        related_goal_ids=(demand.goal_id,),
                    )
                )
            if ramp.required_ctl_ramp_per_week > config.max_ctl_ramp_per_week + 1e-9:
                items.append(
                    ConflictItem(
                        code="required_ctl_ramp_exceeds_cap",
                        is_blocking=True,
                        message=(
                            f"Goal '{demand.goal_id}' needs CTL to rise "
                            f"{ramp.required_ctl_ramp_per_week:.1f}/week but the cap is "
                            f"{config.max_ctl_ramp_per_week:.1f}/week."
                        ),
                        related_dates=(demand.target_date,),
                        related_goal_ids=(demand.goal_id,),
                    )
                )
        return items


class RecoveryWindowCheck(ConflictCheck):
    """Flags goals that fall inside, or too soon after, a prior goal's recovery.

    Without a recovery window there is nothing to overlap or compress.
    """

    name = "recovery_window"

    def detect(self, plan, config, demands, start):
        items = []
        recovery_days = config.post_goal_recovery_days
        if recovery_days <= 0:
            return items
        goals = plan.goals
        for goal, next_goal in zip(goals, goals[1:]):
            recovery_end = goal.target_date + timedelta(days=recovery_days)
            related = (goal.target_date, next_goal.target_date)
            ids = (goal.id, next_goal.id)
            if next_goal.target_date <= recovery_end:
                items.append(
                    ConflictItem(
                        code="post_goal_recovery_overlaps_next_goal",
                        is_blocking=True,
                        message=(
                            f"Goal '{next_goal.name}' on {next_goal.target_date.isoformat()} falls "
                            f"inside the {recovery_days}-day recovery after '{goal.name}'."
                        ),
                        related_dates=related,
                        related_goal_ids=ids,
                    )
                )
                continue
            prep_days = (next_goal.target_date - recovery_end).days
            if prep_days < MIN_PREP_DAYS_AFTER_RECOVERY:
                items.append(
                    ConflictItem(
                        code="post_goal_recovery_compresses_next_goal_prep",
                        is_blocking=False,
                        message=(
                            f"Only {prep_days} preparation days remain for '{next_goal.name}' "
                            f"after recovering from '{goal.name}'."
                        ),
                        related_dates=related,
                        related_goal_ids=ids,
                    )
                )
        return items


class ConstraintBoundsCheck(ConflictCheck):
    """Flags training constraints that contradict each other or the athlete's load."""

    name = "constraint_bounds"

    def detect(self, plan, config, demands, start):
        items = []
        constraints = config.constraints
        floor, cap = constraints.weekly_load_floor_tss, constraints.weekly_load_cap_tss
        if floor is not None and cap is not None and floor > cap:
            items.append(
                ConflictItem(
                    code="weekly_load_floor_exceeds_cap",
                    is_blocking=True,
                    message=f"Weekly load floor {floor:.0f} TSS is above the cap {cap:.0f} TSS.",
                )
            )

        min_sessions, max_sessions = constraints.min_sessions_per_week, constraints.max_sessions_per_week
        if min_sessions is not None and max_sessions is not None and min_sessions > max_sessions:
            items.append(
                ConflictItem(
                    code="min_sessions_exceeds_max",
                    is_blocking=True,
                    message=f"Minimum {min_sessions} sessions/week is above the maximum {max_sessions}.",
                )
            )
        if min_sessions is not None and config.availability is not None:
            available = config.availability.available_day_count
            rest = set(constraints.hard_rest_days)
            available -= sum(1 for d in config.availability.days if d.max_minutes > 0 and d.day.lower() in rest)
            if min_sessions > available:
                items.append(
                    ConflictItem(
                        code="min_sessions_exceeds_available_days",
                        is_blocking=True,
                        message=f"Minimum {min_sessions} sessions/week needs more than {available} available days.",
                    )
                )

        if cap is not None and start.weekly_tss > cap:
            items.append(
                ConflictItem(
                    code="baseline_load_exceeds_weekly_cap",
                    is_blocking=False,
                    message=(
                        f"Current weekly load {start.weekly_tss:.0f} TSS is above the cap "
                        f"{cap:.0f} TSS; the plan starts with a reduction."
                    ),
                )
            )
        return items


def default_checks() -> tuple[ConflictCheck, ...]:
    return (RampCapCheck(), RecoveryWindowCheck(), ConstraintBoundsCheck())
