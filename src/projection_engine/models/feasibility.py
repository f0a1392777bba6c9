"""Feasibility verdict and its supporting metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from projection_engine.models.enums import FeasibilityState


@dataclass(frozen=True)
class DemandGap:
    required_weekly_tss: float
    achievable_weekly_tss: float
    unmet_weekly_tss: float
    unmet_ratio: float
    required_ctl: float
    achievable_ctl: float


@dataclass(frozen=True)
class ReadinessComponents:
    load_state: float
    intensity_balance: float
    specificity: float
    execution_confidence: float


@dataclass(frozen=True)
class ReadinessScore:
    score: float
    band: str
    components: ReadinessComponents


@dataclass(frozen=True)
class ProjectionUncertainty:
    tss_low: float
    tss_likely: float
    tss_high: float
    confidence: float


@dataclass(frozen=True)
class GoalAssessment:
    """Ramp the plan needs to meet one goal, against the configured caps."""

    goal_id: str
    target_date: date
    weeks_available: float
    required_weekly_tss: float
    required_tss_ramp_pct: float
    required_ctl_ramp_per_week: float
    requires_growth: bool
    state: FeasibilityState
    reasons: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProjectionFeasibility:
    state: FeasibilityState
    reasons: tuple[str, ...]
    demand_gap: DemandGap
    readiness: ReadinessScore
    projection_uncertainty: ProjectionUncertainty
    goal_assessments: tuple[GoalAssessment, ...] = field(default_factory=tuple)
