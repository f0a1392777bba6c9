"""Goal demand and the no-history fitness floor.

Demand is expressed as the CTL a goal requires on its target date. Race
targets use a log-distance model with a speed boost; threshold targets map
to fixed CTL anchors. When an athlete has no history, the starting fitness
is inferred from profile and effort signals instead of measured.

References:
    - Daniels (2014): race demand grows sub-linearly with distance
    - Coggan & Allen (2010): CTL ranges for threshold-focused training
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

from projection_engine.models.context import TrainingContext
from projection_engine.models.creation_config import AvailabilityConfig
from projection_engine.models.enums import (
    DEMAND_BAND,
    DEMAND_DISTANCE_BASE,
    DEMAND_DISTANCE_SCALE,
    DEMAND_HR_THRESHOLD_CTL,
    DEMAND_MAX_CTL,
    DEMAND_MIN_CTL,
    DEMAND_NO_TARGET_BASE,
    DEMAND_PACE_MAX_BOOST,
    DEMAND_PACE_PIVOT_KPH,
    DEMAND_PACE_SLOPE,
    DEMAND_PACE_THRESHOLD_CTL,
    DEMAND_POWER_THRESHOLD_CTL,
    DEMAND_TIER_BIAS,
    EVIDENCE_BASE,
    EVIDENCE_STALE_BASE,
    HIGH_TIER_DISTANCE_KM,
    MEDIUM_TIER_DISTANCE_KM,
    NO_HISTORY_FLOOR,
    STRONG_INTENSITY_FACTOR,
    WEAK_INTENSITY_FACTOR,
    FitnessLevel,
    GoalTier,
    HistoryAvailability,
    SignalMarker,
)
from projection_engine.models.goals import (
    Goal,
    HrThresholdTarget,
    PaceThresholdTarget,
    PowerThresholdTarget,
    RacePerformanceTarget,
    Target,
)
from projection_engine.models.projection import (
    EvidenceConfidence,
    GoalDemand,
    NoHistoryAnchor,
    StartingState,
)

# Minimum evidence score per availability state (stale keyed separately)
_EVIDENCE_MINIMUM = {
    HistoryAvailability.NONE: 0.35,
    HistoryAvailability.SPARSE: 0.3,
    HistoryAvailability.SUFFICIENT: 0.5,
}
_EVIDENCE_STALE_MINIMUM = 0.25


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def target_tier(target: Target) -> GoalTier:
    if isinstance(target, RacePerformanceTarget):
        if target.distance_km >= HIGH_TIER_DISTANCE_KM:
            return GoalTier.HIGH
        if target.distance_km >= MEDIUM_TIER_DISTANCE_KM:
            return GoalTier.MEDIUM
        return GoalTier.LOW
    return GoalTier.MEDIUM


def goal_tier(goal: Goal) -> GoalTier:
    """Highest tier across a goal's targets; goals without targets are medium."""
    if not goal.targets:
        return GoalTier.MEDIUM
    return max(target_tier(t) for t in goal.targets)


def target_demand_ctl(target: Target) -> float:
    """CTL a single target requires before tier bias and horizon pressure.

    Race: ``28 + 13 * ln(1 + km)`` plus ``clamp((kph - 9.5) * 3.2, 0, 24)``.
    """
    if isinstance(target, RacePerformanceTarget):
        base = DEMAND_DISTANCE_BASE + DEMAND_DISTANCE_SCALE * math.log1p(target.distance_km)
        boost = _clamp((target.speed_kph - DEMAND_PACE_PIVOT_KPH) * DEMAND_PACE_SLOPE, 0.0, DEMAND_PACE_MAX_BOOST)
        return base + boost
    if isinstance(target, HrThresholdTarget):
        return DEMAND_HR_THRESHOLD_CTL
    if isinstance(target, PaceThresholdTarget):
        return DEMAND_PACE_THRESHOLD_CTL
    if isinstance(target, PowerThresholdTarget):
        return DEMAND_POWER_THRESHOLD_CTL
    return DEMAND_NO_TARGET_BASE


def horizon_pressure(weeks_available: float) -> float:
    """Pressure from a short preparation horizon; negative for long builds."""
    return _clamp((20.0 - weeks_available) / 20.0, -0.35, 0.7)


def goal_demand(goal: Goal, plan_start_date: date, max_ctl_ceiling: float) -> GoalDemand:
    """Target CTL for a goal on its target date.

    Args:
        goal: The goal with zero or more targets.
        plan_start_date: Start of the preparation horizon.
        max_ctl_ceiling: Personalized fitness ceiling; demand never exceeds it.

    Returns:
        ``GoalDemand`` with the target CTL and its 0.85x-1.15x band.
    """
    tier = goal_tier(goal)
    bias = int(tier) * DEMAND_TIER_BIAS
    reasons = [f"goal_tier_{tier.name.lower()}"]

    if goal.targets:
        values = [target_demand_ctl(t) + bias for t in goal.targets]
        demand = 0.7 * max(values) + 0.3 * (sum(values) / len(values))
    else:
        demand = DEMAND_NO_TARGET_BASE + bias
        reasons.append("goal_targets_missing_using_tier_baseline")

    weeks = max(0.0, (goal.target_date - plan_start_date).days / 7.0)
    pressure = horizon_pressure(weeks)
    demand *= 1.0 + pressure * 0.12
    if pressure > 0:
        reasons.append("short_horizon_pressure")

    demand = _clamp(demand, DEMAND_MIN_CTL, DEMAND_MAX_CTL)
    if demand > max_ctl_ceiling:
        demand = max_ctl_ceiling
        reasons.append("demand_capped_by_personal_ceiling")

    low_mult, _, high_mult = DEMAND_BAND
    return GoalDemand(
        goal_id=goal.id,
        target_date=goal.target_date,
        tier=tier,
        target_ctl=round(demand, 1),
        band_low_ctl=round(demand * low_mult, 1),
        band_high_ctl=round(demand * high_mult, 1),
        reasons=tuple(reasons),
    )


def evidence_confidence(context: TrainingContext) -> EvidenceConfidence:
    """How much the projection's starting point is backed by evidence.

    ``score = 0.7 * base(state) + 0.3 * signal_quality``, nudged by the effort
    and profile markers and floored per availability state.
    """
    state = context.history_availability_state
    stale = "history_stale" in context.rationale_codes
    base = EVIDENCE_STALE_BASE if stale else EVIDENCE_BASE[state]
    minimum = _EVIDENCE_STALE_MINIMUM if stale else _EVIDENCE_MINIMUM[state]
    reasons = [f"history_{'stale' if stale else state.name.lower()}"]

    score = 0.7 * base + 0.3 * context.signal_quality
    if context.effort_marker == SignalMarker.HIGH:
        score += 0.08
        reasons.append("effort_marker_high")
    elif context.effort_marker == SignalMarker.LOW:
        score -= 0.08
        reasons.append("effort_marker_low")
    if context.profile_marker == SignalMarker.HIGH:
        score += 0.06
        reasons.append("profile_complete")
    elif context.profile_marker == SignalMarker.LOW:
        score -= 0.06
        reasons.append("profile_missing")

    score = _clamp(max(score, minimum), 0.0, 1.0)
    if score >= 0.65:
        label = "high"
    elif score >= 0.4:
        label = "moderate"
    else:
        label = "low"
    return EvidenceConfidence(score=round(score, 3), state=label, reasons=tuple(reasons))


def infer_fitness_level(context: TrainingContext) -> tuple[FitnessLevel, tuple[str, ...]]:
    """Strong fitness needs at least two strong signals."""
    reasons = []
    if context.effort_marker == SignalMarker.HIGH:
        reasons.append("recent_efforts_high")
    if context.profile_marker == SignalMarker.HIGH:
        reasons.append("profile_complete")
    if context.signal_quality >= 0.5:
        reasons.append("signal_quality_high")
    if len(reasons) >= 2:
        return FitnessLevel.STRONG, tuple(reasons)
    return FitnessLevel.WEAK, tuple(reasons) + ("insufficient_strong_signals",)


def availability_weekly_tss(availability: AvailabilityConfig | None, intensity_factor: float) -> float | None:
    """Weekly TSS the available minutes can hold at an intensity factor.

    ``TSS = hours * 100 * IF^2``; None when no availability is configured.
    """
    if availability is None or availability.weekly_minutes <= 0:
        return None
    return availability.weekly_minutes / 60.0 * 100.0 * intensity_factor**2


def infer_no_history_anchor(
    goals: tuple[Goal, ...],
    context: TrainingContext,
    availability: AvailabilityConfig | None = None,
) -> NoHistoryAnchor:
    """Infer the starting fitness floor for an athlete with no history.

    The floor comes from the fitness level and the most demanding goal tier,
    then is clamped to what the weekly availability can sustain.
    """
    level, level_reasons = infer_fitness_level(context)
    tier = max((goal_tier(g) for g in goals), default=GoalTier.MEDIUM)
    raw_ctl = NO_HISTORY_FLOOR[(level, tier)]
    intensity = STRONG_INTENSITY_FACTOR if level == FitnessLevel.STRONG else WEAK_INTENSITY_FACTOR
    reasons = list(level_reasons) + [f"fitness_level_{level.name.lower()}", f"goal_tier_{tier.name.lower()}"]

    weekly = raw_ctl * 7.0
    start_ctl = raw_ctl
    clamped = False
    feasible = availability_weekly_tss(availability, intensity)
    if feasible is not None and feasible < weekly:
        weekly = feasible
        start_ctl = feasible / 7.0
        clamped = True
        reasons.append("floor_clamped_by_availability")

    evidence = evidence_confidence(context)
    floor_confidence = evidence.score * (0.85 if clamped else 1.0)
    if level == FitnessLevel.STRONG:
        floor_confidence = min(1.0, floor_confidence + 0.05)

    return NoHistoryAnchor(
        fitness_level=level,
        goal_tier=tier,
        fitness_inference_reasons=tuple(reasons),
        projection_floor_confidence=round(floor_confidence, 3),
        evidence_confidence=evidence,
        raw_start_ctl=raw_ctl,
        start_ctl=round(start_ctl, 1),
        start_weekly_tss=round(weekly, 1),
        intensity_factor=intensity,
        floor_clamped_by_availability=clamped,
    )


@dataclass(frozen=True)
class RequiredRamp:
    """Ramp needed from the starting state to reach one goal's demand."""

    goal_id: str
    weeks_available: float
    required_weekly_tss: float
    required_tss_ramp_pct: float
    required_ctl_ramp_per_week: float
    requires_growth: bool


def required_ramp(demand: GoalDemand, start: StartingState, plan_start_date: date) -> RequiredRamp:
    """Compound weekly TSS ramp and linear CTL ramp needed to meet a goal.

    ``pct = ((target_weekly / seed_weekly) ** (1 / weeks) - 1) * 100`` when
    the target exceeds the seed load; zero otherwise. A goal on the plan's
    first day gets a one-day horizon.
    """
    weeks = max(1.0 / 7.0, (demand.target_date - plan_start_date).days / 7.0)
    target_weekly = demand.target_weekly_tss
    growth = demand.target_ctl > start.ctl + 0.05

    tss_pct = 0.0
    if target_weekly > start.weekly_tss:
        if start.weekly_tss <= 0:
            tss_pct = math.inf
        else:
            tss_pct = ((target_weekly / start.weekly_tss) ** (1.0 / weeks) - 1.0) * 100.0
    ctl_ramp = max(0.0, (demand.target_ctl - start.ctl) / weeks)

    return RequiredRamp(
        goal_id=demand.goal_id,
        weeks_available=round(weeks, 2),
        required_weekly_tss=target_weekly,
        required_tss_ramp_pct=tss_pct,
        required_ctl_ramp_per_week=ctl_ramp,
        requires_growth=growth,
    )
