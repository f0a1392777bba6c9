"""Expand a selected weekly trajectory into the daily projection chart."""

from __future__ import annotations

from datetime import timedelta

from projection_engine.math.calendar import daterange
from projection_engine.math.training_load import step_load
from projection_engine.models.enums import TIE_BREAK_CHAIN, OptimizerPath, WeekPattern
from projection_engine.models.goals import MinimalPlan
from projection_engine.models.projection import (
    ConstraintSummary,
    CtlRampMetadata,
    GoalMarker,
    Microcycle,
    MicrocycleMetadata,
    NoHistoryAnchor,
    ProjectionChart,
    ProjectionDiagnostics,
    ProjectionPoint,
    RecoveryMetadata,
    RecoverySegment,
    TssRampMetadata,
)
from projection_engine.optimizer.optimizer import OptimizationResult
from projection_engine.optimizer.problem import ProjectionProblem, evaluate_week

_EPSILON = 1e-6
WEEKLY_LOAD_FLOOR = "weekly_load_floor"


def _recovery_segments(plan: MinimalPlan, recovery_days: int) -> tuple[RecoverySegment, ...]:
    segments = []
    if recovery_days <= 0:
        return ()
    for goal in plan.goals:
        start = goal.target_date + timedelta(days=1)
        if start > plan.end_date:
            continue
        end = min(goal.target_date + timedelta(days=recovery_days), plan.end_date)
        segments.append(RecoverySegment(goal_id=goal.id, start_date=start, end_date=end))
    return tuple(segments)


def build_projection_chart(
    plan: MinimalPlan,
    problem: ProjectionProblem,
    result: OptimizationResult,
    no_history: NoHistoryAnchor | None = None,
) -> ProjectionChart:
    """Simulate the selected trajectory day by day and assemble the chart.

    Every date in ``[plan_start_date, latest goal date]`` gets exactly one
    point, so every goal date appears as a point as well as a marker.
    """
    loads = result.trajectory.loads
    ctl, atl = problem.start.ctl, problem.start.atl
    previous = problem.start.weekly_tss
    ramp_factor = problem.tss_ramp_factor
    max_ctl_ramp = problem.config.max_ctl_ramp_per_week

    points = []
    microcycles = []
    active: set[str] = set()
    tss_clamped_weeks = ctl_clamped_weeks = recovery_weeks = 0

    for slot, applied in zip(problem.weeks, loads):
        ctl_start = ctl
        requested = slot.reference_tss
        requested_violations = evaluate_week(problem, slot, previous, ctl_start, requested).violations
        active.update(requested_violations)
        if problem.weekly_floor is not None and applied < problem.weekly_floor - _EPSILON:
            active.add(WEEKLY_LOAD_FLOOR)

        daily_load = applied / 7.0
        for day in daterange(slot.week_start, slot.week_end):
            ctl = step_load(ctl, daily_load, problem.fitness_tc)
            atl = step_load(atl, daily_load, problem.fatigue_tc)
            points.append(
                ProjectionPoint(
                    date=day,
                    predicted_load_tss=round(daily_load, 1),
                    predicted_fitness_ctl=round(ctl, 1),
                    predicted_fatigue_atl=round(atl, 1),
                )
            )

        requested_ctl_ramp = problem.ctl_after(ctl_start, requested, slot.days) - ctl_start
        tss_clamped = requested > previous * ramp_factor + _EPSILON
        ctl_clamped = requested_ctl_ramp > max_ctl_ramp + _EPSILON
        tss_clamped_weeks += int(tss_clamped)
        ctl_clamped_weeks += int(ctl_clamped)
        in_recovery = slot.pattern == WeekPattern.RECOVERY
        recovery_weeks += int(in_recovery)

        microcycles.append(
            Microcycle(
                week_index=slot.index,
                week_start=slot.week_start,
                week_end=slot.week_end,
                planned_weekly_tss=round(applied, 1),
                pattern=slot.pattern,
                projected_end_ctl=round(ctl, 1),
                metadata=MicrocycleMetadata(
                    tss_ramp=TssRampMetadata(
                        previous_week_tss=round(previous, 1),
                        requested_weekly_tss=round(requested, 1),
                        applied_weekly_tss=round(applied, 1),
                        max_weekly_tss_ramp_pct=problem.config.max_weekly_tss_ramp_pct,
                        clamped=tss_clamped,
                    ),
                    ctl_ramp=CtlRampMetadata(
                        requested_ctl_ramp=round(requested_ctl_ramp, 2),
                        applied_ctl_ramp=round(ctl - ctl_start, 2),
                        max_ctl_ramp_per_week=max_ctl_ramp,
                        clamped=ctl_clamped,
                    ),
                    recovery=RecoveryMetadata(
                        active=in_recovery,
                        goal_ids=slot.recovery_goal_ids,
                        reduction_factor=slot.multiplier if in_recovery else 1.0,
                    ),
                ),
            )
        )
        previous = applied

    demands = {d.goal_id: d for d in problem.demands}
    markers = tuple(
        GoalMarker(
            goal_id=g.id,
            name=g.name,
            target_date=g.target_date,
            priority=g.priority,
            target_ctl=demands[g.id].target_ctl,
        )
        for g in plan.goals
    )

    outcomes = {o.path: o for o in result.outcomes}
    diagnostics = ProjectionDiagnostics(
        selected_path=result.selected_path,
        candidate_counts={p: outcomes[p].candidate_count for p in OptimizerPath},
        prune_counts={p: outcomes[p].prune_count for p in OptimizerPath},
        active_constraints=tuple(sorted(active)),
        tie_break_chain=TIE_BREAK_CHAIN,
        fallback_reason=result.fallback_reason,
        tier_outcomes=result.outcomes,
    )

    summary = ConstraintSummary(
        starting_state=problem.start,
        tss_ramp_clamped_weeks=tss_clamped_weeks,
        ctl_ramp_clamped_weeks=ctl_clamped_weeks,
        recovery_weeks=recovery_weeks,
        peak_weekly_tss=round(max(loads, default=0.0), 1),
        peak_ctl=max((p.predicted_fitness_ctl for p in points), default=problem.start.ctl),
    )

    return ProjectionChart(
        start_date=plan.plan_start_date,
        end_date=plan.end_date,
        points=tuple(points),
        goal_markers=markers,
        microcycles=tuple(microcycles),
        recovery_segments=_recovery_segments(plan, problem.config.post_goal_recovery_days),
        constraint_summary=summary,
        diagnostics=diagnostics,
        goal_demands=problem.demands,
        no_history=no_history,
    )
