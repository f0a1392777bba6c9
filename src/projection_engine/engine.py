"""ProjectionEngine: the orchestrator that turns goals into a projected plan."""

from __future__ import annotations

import logging
import math

from projection_engine.conflict_detection.detector import ConflictDetector
from projection_engine.exceptions import PlanValidationError
from projection_engine.feasibility import FeasibilityEvaluator
from projection_engine.guard import build_preview_snapshot
from projection_engine.math.demand import goal_demand, infer_no_history_anchor
from projection_engine.models.calibration import DEFAULT_CALIBRATION, CalibrationConfig
from projection_engine.models.context import TrainingContext
from projection_engine.models.creation_config import (
    CreationConfig,
    NormalizedCreationConfig,
    normalize_creation_config,
)
from projection_engine.models.enums import MIN_SEED_WEEKLY_TSS, HistoryAvailability
from projection_engine.models.goals import MinimalPlan, validate_minimal_plan
from projection_engine.models.projection import NoHistoryAnchor, ProjectionChart, StartingState
from projection_engine.models.snapshot import PlannedWeek, PlanPreview, PlanProjection, PreviewSnapshot
from projection_engine.optimizer.chart import build_projection_chart
from projection_engine.optimizer.optimizer import ProjectionOptimizer
from projection_engine.optimizer.problem import build_problem

logger = logging.getLogger(__name__)


def resolve_starting_state(
    context: TrainingContext,
    anchor: NoHistoryAnchor | None,
    starting_ctl_override: float | None = None,
) -> StartingState:
    """Where the projection begins.

    An explicit override always wins. Without history the inferred
    no-history floor is used; otherwise the derived CTL/ATL, with the seed
    weekly load taken as the largest of the recent baseline and the CTL
    equivalent.
    """
    if starting_ctl_override is not None:
        return StartingState(
            ctl=float(starting_ctl_override),
            atl=float(starting_ctl_override),
            weekly_tss=max(starting_ctl_override * 7.0, MIN_SEED_WEEKLY_TSS),
            source="override",
        )
    if anchor is not None:
        weekly = anchor.start_weekly_tss
        if not anchor.floor_clamped_by_availability:
            weekly = max(weekly, MIN_SEED_WEEKLY_TSS)
        return StartingState(
            ctl=anchor.start_ctl,
            atl=anchor.start_ctl,
            weekly_tss=round(weekly, 1),
            source="no_history_floor",
        )
    weekly = max(context.baseline_weekly_tss, context.current_ctl * 7.0, MIN_SEED_WEEKLY_TSS)
    return StartingState(
        ctl=context.current_ctl,
        atl=context.current_atl,
        weekly_tss=round(weekly, 1),
        source="history",
    )


def build_plan_preview(plan: MinimalPlan, chart: ProjectionChart) -> PlanPreview:
    weeks = tuple(
        PlannedWeek(
            week_start=m.week_start,
            week_end=m.week_end,
            planned_weekly_tss=m.planned_weekly_tss,
            pattern=m.pattern,
        )
        for m in chart.microcycles
    )
    total = sum(m.planned_weekly_tss * m.days / 7.0 for m in chart.microcycles)
    return PlanPreview(
        plan_start_date=plan.plan_start_date,
        plan_end_date=plan.end_date,
        goal_count=len(plan.goals),
        week_count=len(weeks),
        peak_weekly_tss=chart.constraint_summary.peak_weekly_tss,
        total_planned_tss=round(total, 1),
        weeks=weeks,
    )


class ProjectionEngine:
    """Validates, projects, evaluates and checks a minimal plan.

    Usage:
        engine = ProjectionEngine()
        projection = engine.project(plan, creation_config, context)
        snapshot = engine.snapshot(projection)
    """

    def __init__(
        self,
        calibration: CalibrationConfig = DEFAULT_CALIBRATION,
        optimizer: ProjectionOptimizer | None = None,
        evaluator: FeasibilityEvaluator | None = None,
        detector: ConflictDetector | None = None,
    ) -> None:
        self.calibration = calibration
        self.optimizer = optimizer or ProjectionOptimizer()
        self.evaluator = evaluator or FeasibilityEvaluator(calibration)
        self.detector = detector or ConflictDetector()

    def project(
        self,
        plan: MinimalPlan,
        creation_config: CreationConfig | NormalizedCreationConfig | None,
        context: TrainingContext,
        starting_ctl_override: float | None = None,
    ) -> PlanProjection:
        """Run the full projection pipeline for one request.

        Args:
            plan: Goal calendar with its start date.
            creation_config: Partial user settings, or an already normalized
                configuration.
            context: Training context derived for the request's ``as_of``.
            starting_ctl_override: Explicit starting fitness; replaces both
                history and the no-history floor.

        Returns:
            A ``PlanProjection`` bundling the chart, feasibility verdict,
            conflict report and plan preview.

        Raises:
            PlanValidationError: When the plan or configuration is invalid.
        """
        validate_minimal_plan(plan)
        if isinstance(creation_config, NormalizedCreationConfig):
            config = creation_config
        else:
            config = normalize_creation_config(creation_config)
        if starting_ctl_override is not None and (
            not math.isfinite(starting_ctl_override) or starting_ctl_override < 0
        ):
            raise PlanValidationError(
                "starting_ctl_override must be a non-negative number",
                code="invalid_starting_ctl_override",
            )

        anchor = None
        if context.history_availability_state == HistoryAvailability.NONE:
            anchor = infer_no_history_anchor(plan.goals, context, config.availability)
        start = resolve_starting_state(context, anchor, starting_ctl_override)

        ceiling = context.time_constants.max_ctl_ceiling
        demands = tuple(goal_demand(g, plan.plan_start_date, ceiling) for g in plan.goals)

        problem = build_problem(
            plan,
            config,
            demands,
            start,
            fitness_tc=context.time_constants.fitness,
            fatigue_tc=context.time_constants.fatigue,
            learned_ramp_rate=context.learned_ramp.max_safe_rate,
            calibration=self.calibration,
        )
        result = self.optimizer.optimize(problem)
        chart = build_projection_chart(plan, problem, result, no_history=anchor)
        feasibility = self.evaluator.evaluate(problem, chart, context)
        conflicts = self.detector.detect(plan, config, demands, start)

        logger.info(
            "Projected %d goals over %d weeks: path=%s feasibility=%s conflicts=%d",
            len(plan.goals),
            len(chart.microcycles),
            result.selected_path.name.lower(),
            feasibility.state.name.lower(),
            len(conflicts.items),
        )
        return PlanProjection(
            plan=plan,
            normalized_creation_config=config,
            context=context,
            projection_chart=chart,
            projection_feasibility=feasibility,
            conflicts=conflicts,
            plan_preview=build_plan_preview(plan, chart),
            starting_ctl_override=starting_ctl_override,
        )

    def snapshot(self, projection: PlanProjection) -> PreviewSnapshot:
        """Fingerprint the inputs a projection was computed from."""
        return build_preview_snapshot(
            projection.plan,
            projection.normalized_creation_config,
            projection.context,
            self.calibration,
            projection.starting_ctl_override,
        )
