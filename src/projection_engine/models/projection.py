"""Projection outputs: daily points, microcycles, markers and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from projection_engine.models.enums import (
    FitnessLevel,
    GoalTier,
    OptimizerPath,
    WeekPattern,
)


@dataclass(frozen=True)
class ProjectionPoint:
    """Predicted load state at the end of one day."""

    date: date
    predicted_load_tss: float
    predicted_fitness_ctl: float
    predicted_fatigue_atl: float

    @property
    def predicted_form_tsb(self) -> float:
        return round(self.predicted_fitness_ctl - self.predicted_fatigue_atl, 1)


@dataclass(frozen=True)
class TssRampMetadata:
    previous_week_tss: float
    requested_weekly_tss: float
    applied_weekly_tss: float
    max_weekly_tss_ramp_pct: float
    clamped: bool


@dataclass(frozen=True)
class CtlRampMetadata:
    requested_ctl_ramp: float
    applied_ctl_ramp: float
    max_ctl_ramp_per_week: float
    clamped: bool


@dataclass(frozen=True)
class RecoveryMetadata:
    active: bool = False
    goal_ids: tuple[str, ...] = field(default_factory=tuple)
    reduction_factor: float = 1.0


@dataclass(frozen=True)
class MicrocycleMetadata:
    tss_ramp: TssRampMetadata
    ctl_ramp: CtlRampMetadata
    recovery: RecoveryMetadata = RecoveryMetadata()


@dataclass(frozen=True)
class Microcycle:
    """One planned calendar week, clipped to the projection timeline.

    ``planned_weekly_tss`` is a seven-day rate; partial weeks at either end
    of the timeline apply it pro rata per day.
    """

    week_index: int
    week_start: date
    week_end: date
    planned_weekly_tss: float
    pattern: WeekPattern
    projected_end_ctl: float
    metadata: MicrocycleMetadata

    @property
    def days(self) -> int:
        return (self.week_end - self.week_start).days + 1


@dataclass(frozen=True)
class GoalMarker:
    goal_id: str
    name: str
    target_date: date
    priority: int
    target_ctl: float


@dataclass(frozen=True)
class RecoverySegment:
    """Post-goal recovery window, inclusive on both ends."""

    goal_id: str
    start_date: date
    end_date: date


@dataclass(frozen=True)
class GoalDemand:
    """Target fitness a goal requires, with its demand band."""

    goal_id: str
    target_date: date
    tier: GoalTier
    target_ctl: float
    band_low_ctl: float
    band_high_ctl: float
    reasons: tuple[str, ...] = field(default_factory=tuple)

    @property
    def target_weekly_tss(self) -> float:
        return round(self.target_ctl * 7.0, 1)


@dataclass(frozen=True)
class EvidenceConfidence:
    score: float
    state: str
    reasons: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NoHistoryAnchor:
    """Inferred starting fitness when no training history exists."""

    fitness_level: FitnessLevel
    goal_tier: GoalTier
    fitness_inference_reasons: tuple[str, ...]
    projection_floor_confidence: float
    evidence_confidence: EvidenceConfidence
    raw_start_ctl: float
    start_ctl: float
    start_weekly_tss: float
    intensity_factor: float
    floor_clamped_by_availability: bool


@dataclass(frozen=True)
class TierOutcome:
    """Record of one optimizer tier's attempt."""

    path: OptimizerPath
    attempted: bool
    candidate_count: int = 0
    prune_count: int = 0
    reason: str | None = None


@dataclass(frozen=True)
class ProjectionDiagnostics:
    """Introspection of the tiered search; always carries all four tiers."""

    selected_path: OptimizerPath
    candidate_counts: dict[OptimizerPath, int]
    prune_counts: dict[OptimizerPath, int]
    active_constraints: tuple[str, ...]
    tie_break_chain: tuple[str, ...]
    fallback_reason: str | None
    tier_outcomes: tuple[TierOutcome, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StartingState:
    ctl: float
    atl: float
    weekly_tss: float
    source: str


@dataclass(frozen=True)
class ConstraintSummary:
    starting_state: StartingState
    tss_ramp_clamped_weeks: int
    ctl_ramp_clamped_weeks: int
    recovery_weeks: int
    peak_weekly_tss: float
    peak_ctl: float


@dataclass(frozen=True)
class ProjectionChart:
    """Complete projection for one request."""

    start_date: date
    end_date: date
    points: tuple[ProjectionPoint, ...]
    goal_markers: tuple[GoalMarker, ...]
    microcycles: tuple[Microcycle, ...]
    recovery_segments: tuple[RecoverySegment, ...]
    constraint_summary: ConstraintSummary
    diagnostics: ProjectionDiagnostics
    goal_demands: tuple[GoalDemand, ...] = field(default_factory=tuple)
    no_history: NoHistoryAnchor | None = None

    def point_on(self, day: date) -> ProjectionPoint | None:
        for point in self.points:
            if point.date == day:
                return point
        return None
