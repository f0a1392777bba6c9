"""Training context: the request-scoped load state and personalization.

Raw collaborator rows (activities, effort bests, profile) are modelled
here too; they may carry malformed dates, which derivation drops and counts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from projection_engine.models.enums import (
    Gender,
    HistoryAvailability,
    QualitySource,
    RampConfidence,
    SignalMarker,
)


@dataclass(frozen=True)
class ActivityRecord:
    """One activity from the history reader.

    ``date`` may be a ``date`` or an ISO string; unparseable values are
    dropped during derivation. Zone tuples hold seconds per zone, zone 1 first.
    """

    date: date | str | None
    activity_category: str = "run"
    duration_seconds: float = 0.0
    training_stress_score: float | None = None
    power_zone_seconds: tuple[float, ...] = field(default_factory=tuple)
    hr_zone_seconds: tuple[float, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EffortBest:
    """A best effort (e.g. 5 km time, 20 min power) recorded on a date."""

    date: date | str | None
    effort_type: str
    duration_seconds: float
    value: float


@dataclass(frozen=True)
class ProfileSnapshot:
    dob: date | str | None = None
    gender: str | None = None


@dataclass(frozen=True)
class TimeConstants:
    """Personalized EWMA time constants and the fitness ceiling."""

    fitness: float
    fatigue: float
    max_ctl_ceiling: float
    rationale_codes: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LearnedRamp:
    """Individual weekly TSS increase tolerance learned from history."""

    max_safe_rate: float
    confidence: RampConfidence
    positive_delta_count: int = 0
    weeks_observed: int = 0
    malformed_record_count: int = 0


@dataclass(frozen=True)
class TrainingQuality:
    """TSS-weighted intensity distribution over the trailing 28 days."""

    low_pct: float
    moderate_pct: float
    high_pct: float
    intensity_load_factor: float
    polarization_score: float
    source: QualitySource
    activity_count: int = 0


@dataclass(frozen=True)
class TrainingContext:
    """Everything the optimizer needs to know about the athlete.

    Built once per request by ``derive_training_context`` and never mutated.
    """

    as_of: date
    current_ctl: float
    current_atl: float
    time_constants: TimeConstants
    learned_ramp: LearnedRamp
    training_quality: TrainingQuality
    history_availability_state: HistoryAvailability
    user_age: int | None = None
    user_gender: Gender = Gender.UNSPECIFIED
    rationale_codes: tuple[str, ...] = field(default_factory=tuple)
    baseline_weekly_tss: float = 0.0
    weekly_tss_history: tuple[float, ...] = field(default_factory=tuple)
    recent_activity_count: int = 0
    consistency_marker: SignalMarker = SignalMarker.LOW
    effort_marker: SignalMarker = SignalMarker.LOW
    profile_marker: SignalMarker = SignalMarker.LOW
    signal_quality: float = 0.0
    malformed_record_count: int = 0
    history_fingerprint: str = ""
    profile_fingerprint: str = ""

    @property
    def current_tsb(self) -> float:
        return round(self.current_ctl - self.current_atl, 1)

    @property
    def has_history(self) -> bool:
        return self.history_availability_state != HistoryAvailability.NONE


@dataclass(frozen=True)
class ContextSummary:
    """Auditable summary of a training context for creation suggestions."""

    history_availability_state: HistoryAvailability
    recent_activity_count: int
    consistency_marker: SignalMarker
    effort_marker: SignalMarker
    profile_marker: SignalMarker
    signal_quality: float
    baseline_weekly_tss: float
    weekly_tss_range: tuple[float, float]
    sessions_per_week_range: tuple[int, int]
    current_ctl: float
    current_atl: float
    learned_ramp: LearnedRamp
    rationale_codes: tuple[str, ...] = field(default_factory=tuple)
