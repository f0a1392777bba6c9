"""Feasibility evaluation: demand gap, readiness and a safety verdict.

A plan is ``unsafe`` when the ramp needed to meet any goal exceeds a
configured cap, ``aggressive`` when the ramp reaches the feasibility margin
(95% by default) of a cap, and ``safe`` otherwise.
"""

from __future__ import annotations

from projection_engine.math.demand import RequiredRamp, evidence_confidence, required_ramp
from projection_engine.models.calibration import DEFAULT_CALIBRATION, CalibrationConfig
from projection_engine.models.context import TrainingContext
from projection_engine.models.enums import (
    READINESS_HIGH,
    READINESS_MEDIUM,
    READINESS_WEIGHTS,
    FeasibilityState,
)
from projection_engine.models.feasibility import (
    DemandGap,
    GoalAssessment,
    ProjectionFeasibility,
    ProjectionUncertainty,
    ReadinessComponents,
    ReadinessScore,
)
from projection_engine.models.projection import ProjectionChart
from projection_engine.optimizer.problem import ProjectionProblem

TSS_EXCEEDS = "required_tss_ramp_exceeds_configured_cap"
CTL_EXCEEDS = "required_ctl_ramp_exceeds_configured_cap"
TSS_NEAR = "required_tss_ramp_near_configured_cap"
CTL_NEAR = "required_ctl_ramp_near_configured_cap"


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _classify(required: float, cap: float, margin: float) -> FeasibilityState:
    if required > cap + 1e-9:
        return FeasibilityState.UNSAFE
    if required > 0 and required >= margin * cap:
        return FeasibilityState.AGGRESSIVE
    return FeasibilityState.SAFE


class FeasibilityEvaluator:
    """Scores a projected trajectory against goal demand and caps."""

    def __init__(self, calibration: CalibrationConfig = DEFAULT_CALIBRATION) -> None:
        self.margin = calibration.feasibility_margin

    def assess_goal(self, ramp: RequiredRamp, problem: ProjectionProblem, target_date) -> GoalAssessment:
        """Verdict for one goal from its required TSS and CTL ramps."""
        reasons = []
        state = FeasibilityState.SAFE
        if ramp.requires_growth:
            config = problem.config
            tss_state = _classify(ramp.required_tss_ramp_pct, config.max_weekly_tss_ramp_pct, self.margin)
            ctl_state = _classify(ramp.required_ctl_ramp_per_week, config.max_ctl_ramp_per_week, self.margin)
            for sub_state, exceeds, near in ((tss_state, TSS_EXCEEDS, TSS_NEAR), (ctl_state, CTL_EXCEEDS, CTL_NEAR)):
                if sub_state == FeasibilityState.UNSAFE:
                    reasons.append(exceeds)
                elif sub_state == FeasibilityState.AGGRESSIVE:
                    reasons.append(near)
            state = max(tss_state, ctl_state)
        return GoalAssessment(
            goal_id=ramp.goal_id,
            target_date=target_date,
            weeks_available=ramp.weeks_available,
            required_weekly_tss=ramp.required_weekly_tss,
            required_tss_ramp_pct=round(min(ramp.required_tss_ramp_pct, 1e6), 2),
            required_ctl_ramp_per_week=round(ramp.required_ctl_ramp_per_week, 2),
            requires_growth=ramp.requires_growth,
            state=state,
            reasons=tuple(reasons),
        )

    def evaluate(
        self,
        problem: ProjectionProblem,
        chart: ProjectionChart,
        context: TrainingContext,
    ) -> ProjectionFeasibility:
        """Evaluate the chart for *problem*.

        Returns:
            ``ProjectionFeasibility`` with the state, reason codes, demand
            gap, readiness score and load uncertainty band.
        """
        assessments = []
        for demand in problem.demands:
            ramp = required_ramp(demand, problem.start, problem.start_date)
            assessments.append(self.assess_goal(ramp, problem, demand.target_date))

        state = max((a.state for a in assessments), default=FeasibilityState.SAFE)
        reasons: list[str] = []
        for assessment in assessments:
            for reason in assessment.reasons:
                if reason not in reasons:
                    reasons.append(reason)

        # Demand gap: the goal whose projected CTL falls furthest short
        gaps = []
        for demand in problem.demands:
            point = chart.point_on(demand.target_date)
            achieved = point.predicted_fitness_ctl if point else problem.start.ctl
            unmet = max(0.0, demand.target_ctl - achieved)
            gaps.append((unmet / max(demand.target_ctl, 1.0), demand, achieved))
        unmet_ratio, worst, achieved_ctl = max(gaps, key=lambda g: (g[0], g[1].target_date))
        required_weekly = worst.target_weekly_tss
        achievable_weekly = round(achieved_ctl * 7.0, 1)
        demand_gap = DemandGap(
            required_weekly_tss=required_weekly,
            achievable_weekly_tss=achievable_weekly,
            unmet_weekly_tss=round(max(0.0, required_weekly - achievable_weekly), 1),
            unmet_ratio=round(unmet_ratio, 3),
            required_ctl=worst.target_ctl,
            achievable_ctl=achieved_ctl,
        )

        summary = chart.constraint_summary
        n_weeks = max(1, len(chart.microcycles))
        clamp_pressure = (summary.tss_ramp_clamped_weeks + summary.ctl_ramp_clamped_weeks) / (2 * n_weeks)
        final_point = chart.point_on(worst.target_date) or chart.points[-1]
        form_score = _clamp01((final_point.predicted_form_tsb + 30.0) / 40.0)

        load_state = _clamp01((1.0 - unmet_ratio) * 0.75 + form_score * 0.25 - clamp_pressure * 0.35)
        quality = context.training_quality
        intensity_balance = _clamp01(
            quality.polarization_score * 0.6
            + _clamp01(1.0 - abs(quality.intensity_load_factor - 1.1) / 0.4) * 0.4
        )
        specificity = sum(_clamp01(1.0 - g[0]) for g in gaps) / len(gaps)
        if chart.no_history is not None:
            confidence = chart.no_history.evidence_confidence.score
        else:
            confidence = evidence_confidence(context).score
        execution_confidence = _clamp01(confidence * (1.0 - 0.5 * clamp_pressure))

        components = ReadinessComponents(
            load_state=round(load_state, 3),
            intensity_balance=round(intensity_balance, 3),
            specificity=round(specificity, 3),
            execution_confidence=round(execution_confidence, 3),
        )
        score = 100.0 * sum(getattr(components, name) * weight for name, weight in READINESS_WEIGHTS.items())
        if score >= READINESS_HIGH:
            band = "high"
        elif score >= READINESS_MEDIUM:
            band = "medium"
        else:
            band = "low"

        loads = [m.planned_weekly_tss for m in chart.microcycles]
        likely = sum(loads) / len(loads) if loads else 0.0
        uncertainty_pct = min(0.28, max(0.08, 0.06 + (1.0 - execution_confidence) * 0.18 + clamp_pressure * 0.05))
        uncertainty = ProjectionUncertainty(
            tss_low=round(likely * (1.0 - uncertainty_pct), 1),
            tss_likely=round(likely, 1),
            tss_high=round(likely * (1.0 + uncertainty_pct), 1),
            confidence=round(execution_confidence, 3),
        )

        return ProjectionFeasibility(
            state=state,
            reasons=tuple(reasons),
            demand_gap=demand_gap,
            readiness=ReadinessScore(score=round(score, 1), band=band, components=components),
            projection_uncertainty=uncertainty,
            goal_assessments=tuple(assessments),
        )
