"""End-to-end tests for the projection engine."""

from __future__ import annotations

import math
from datetime import date, timedelta

import pytest

from projection_engine import ProjectionEngine
from projection_engine.engine import resolve_starting_state
from projection_engine.exceptions import PlanValidationError
from projection_engine.math.demand import infer_no_history_anchor
from projection_engine.models.creation_config import (
    AvailabilityConfig,
    AvailabilityDay,
    CreationConfig,
    normalize_creation_config,
)
from projection_engine.models.enums import OptimizerPath, WeekPattern
from projection_engine.models.goals import Goal, MinimalPlan, RacePerformanceTarget


@pytest.fixture
def engine() -> ProjectionEngine:
    return ProjectionEngine()


class TestStartingState:
    def test_history(self, steady_context) -> None:
        start = resolve_starting_state(steady_context, None)
        assert start.source == "history"
        assert start.ctl == steady_context.current_ctl
        assert start.weekly_tss == 350.0

    def test_override_wins(self, steady_context, empty_context, ten_k_plan) -> None:
        anchor = infer_no_history_anchor(ten_k_plan.goals, empty_context)
        for context, floor in ((steady_context, None), (empty_context, anchor)):
            start = resolve_starting_state(context, floor, 30.0)
            assert (start.ctl, start.atl, start.weekly_tss, start.source) == (30.0, 30.0, 210.0, "override")

    def test_override_seed_floor(self, steady_context) -> None:
        assert resolve_starting_state(steady_context, None, 0.0).weekly_tss == 70.0

    def test_no_history_floor(self, empty_context, ten_k_plan) -> None:
        anchor = infer_no_history_anchor(ten_k_plan.goals, empty_context)
        start = resolve_starting_state(empty_context, anchor)
        assert start.source == "no_history_floor"
        assert start.ctl == anchor.start_ctl
        assert start.weekly_tss == anchor.start_weekly_tss

    def test_clamped_floor_keeps_small_seed(self, empty_context, ten_k_plan) -> None:
        availability = AvailabilityConfig(days=(AvailabilityDay("saturday", 30),))
        anchor = infer_no_history_anchor(ten_k_plan.goals, empty_context, availability)
        start = resolve_starting_state(empty_context, anchor)
        assert start.weekly_tss < 70.0


class TestProjectionChart:
    def test_one_point_per_day(self, engine, steady_context, ten_k_plan) -> None:
        chart = engine.project(ten_k_plan, None, steady_context).projection_chart
        days = (ten_k_plan.end_date - ten_k_plan.plan_start_date).days + 1
        assert len(chart.points) == days
        assert len({p.date for p in chart.points}) == days
        assert chart.points[0].date == ten_k_plan.plan_start_date
        assert chart.points[-1].date == ten_k_plan.end_date

    def test_goal_dates_are_points_and_markers(self, engine, steady_context, close_goals_plan) -> None:
        chart = engine.project(close_goals_plan, None, steady_context).projection_chart
        for goal in close_goals_plan.goals:
            assert chart.point_on(goal.target_date) is not None
        assert [m.goal_id for m in chart.goal_markers] == ["a", "b"]
        assert [d.goal_id for d in chart.goal_demands] == ["a", "b"]

    def test_points_are_finite_and_non_negative(self, engine, empty_context, half_marathon_plan) -> None:
        chart = engine.project(half_marathon_plan, None, empty_context).projection_chart
        for point in chart.points:
            for value in (point.predicted_load_tss, point.predicted_fitness_ctl, point.predicted_fatigue_atl):
                assert math.isfinite(value)
                assert value >= 0.0

    def test_microcycles_respect_caps(self, engine, steady_context, ten_k_plan) -> None:
        chart = engine.project(ten_k_plan, None, steady_context).projection_chart
        previous = chart.constraint_summary.starting_state.weekly_tss
        for cycle in chart.microcycles:
            assert cycle.planned_weekly_tss <= previous * 1.07 + 0.2
            assert cycle.metadata.ctl_ramp.applied_ctl_ramp <= 3.0 + 0.1
            previous = cycle.planned_weekly_tss
        assert chart.microcycles[-1].pattern == WeekPattern.EVENT

    def test_diagnostics_cover_all_tiers(self, engine, steady_context, ten_k_plan) -> None:
        diagnostics = engine.project(ten_k_plan, None, steady_context).projection_chart.diagnostics
        assert set(diagnostics.candidate_counts) == set(OptimizerPath)
        assert set(diagnostics.prune_counts) == set(OptimizerPath)
        assert len(diagnostics.tier_outcomes) == 4
        assert diagnostics.tie_break_chain[0] == "objective_score"

    def test_recovery_segments(self, engine, steady_context, close_goals_plan) -> None:
        config = CreationConfig(post_goal_recovery_days=5)
        chart = engine.project(close_goals_plan, config, steady_context).projection_chart
        assert len(chart.recovery_segments) == 1
        segment = chart.recovery_segments[0]
        assert (segment.goal_id, segment.start_date, segment.end_date) == ("a", date(2026, 5, 11), date(2026, 5, 15))
        assert chart.constraint_summary.recovery_weeks == 1

    def test_deterministic(self, engine, steady_context, ten_k_plan) -> None:
        first = engine.project(ten_k_plan, None, steady_context)
        second = engine.project(ten_k_plan, None, steady_context)
        assert first.projection_chart == second.projection_chart
        assert engine.snapshot(first) == engine.snapshot(second)


class TestNoHistory:
    def test_anchor_only_without_history(self, engine, steady_context, empty_context, ten_k_plan) -> None:
        assert engine.project(ten_k_plan, None, steady_context).projection_chart.no_history is None
        chart = engine.project(ten_k_plan, None, empty_context).projection_chart
        assert chart.no_history is not None
        assert chart.constraint_summary.starting_state.source == "no_history_floor"

    def test_anchor_reported_with_override(self, engine, empty_context, ten_k_plan) -> None:
        chart = engine.project(ten_k_plan, None, empty_context, starting_ctl_override=45.0).projection_chart
        assert chart.no_history is not None
        assert chart.constraint_summary.starting_state.source == "override"
        assert chart.constraint_summary.starting_state.ctl == 45.0


class TestValidation:
    def test_invalid_plan_rejected(self, engine, steady_context) -> None:
        with pytest.raises(PlanValidationError) as exc:
            engine.project(MinimalPlan(plan_start_date=date(2026, 3, 2)), None, steady_context)
        assert exc.value.code == "invalid_minimal_plan"

    @pytest.mark.parametrize("override", [-1.0, math.nan, math.inf])
    def test_invalid_override(self, engine, steady_context, ten_k_plan, override) -> None:
        with pytest.raises(PlanValidationError) as exc:
            engine.project(ten_k_plan, None, steady_context, starting_ctl_override=override)
        assert exc.value.code == "invalid_starting_ctl_override"

    def test_unknown_profile(self, engine, steady_context, ten_k_plan) -> None:
        with pytest.raises(PlanValidationError) as exc:
            engine.project(ten_k_plan, CreationConfig(optimization_profile="reckless"), steady_context)
        assert exc.value.code == "invalid_optimization_profile"

    def test_accepts_normalized_config(self, engine, steady_context, ten_k_plan) -> None:
        normalized = normalize_creation_config(CreationConfig(optimization_profile="sustainable"))
        projection = engine.project(ten_k_plan, normalized, steady_context)
        assert projection.normalized_creation_config is normalized


class TestPlanPreview:
    def test_preview_matches_chart(self, engine, steady_context, ten_k_plan) -> None:
        projection = engine.project(ten_k_plan, None, steady_context)
        preview = projection.plan_preview
        chart = projection.projection_chart
        assert preview.plan_start_date == ten_k_plan.plan_start_date
        assert preview.plan_end_date == ten_k_plan.end_date
        assert preview.goal_count == 1
        assert preview.week_count == len(chart.microcycles) == 16
        assert preview.peak_weekly_tss == max(w.planned_weekly_tss for w in preview.weeks)
        expected_total = sum(m.planned_weekly_tss for m in chart.microcycles)
        assert preview.total_planned_tss == pytest.approx(expected_total, abs=0.1)

    def test_partial_weeks_prorated(self, engine, steady_context) -> None:
        # Wednesday start, Tuesday goal
        plan = MinimalPlan.from_goals(
            date(2026, 3, 4),
            Goal(
                id="5k",
                name="Parkrun",
                target_date=date(2026, 3, 4) + timedelta(days=13),
                targets=(RacePerformanceTarget(distance_m=5000, target_time_s=1380),),
            ),
        )
        projection = engine.project(plan, None, steady_context)
        cycles = projection.projection_chart.microcycles
        assert [c.days for c in cycles] == [5, 7, 2]
        expected = sum(c.planned_weekly_tss * c.days / 7 for c in cycles)
        assert projection.plan_preview.total_planned_tss == pytest.approx(expected, abs=0.1)
