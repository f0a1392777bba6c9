"""Versioned calibration configuration passed by value through the engine.

Every tunable the calibrator, optimizer and evaluator read lives here so a
request is fully described by its inputs plus one ``CalibrationConfig``.
Changing any default should bump ``version``; the version participates in
the preview snapshot token.
"""

from __future__ import annotations

from dataclasses import dataclass

from projection_engine.models.enums import (
    DEFAULT_FEASIBILITY_MARGIN,
    MAX_HISTORY_WINDOW_DAYS,
)


@dataclass(frozen=True)
class OptimizerSettings:
    """Search sizes and deterministic evaluation budgets per tier."""

    full_horizon_weeks: int = 3
    full_levels: tuple[float, ...] = (0.7, 0.8, 0.9, 1.0, 1.1, 1.2, 1.3)
    full_max_evaluations: int = 40_000
    degraded_horizon_weeks: int = 2
    degraded_levels: tuple[float, ...] = (0.5, 0.65, 0.8, 0.9, 1.0)
    degraded_max_evaluations: int = 10_000


@dataclass(frozen=True)
class ObjectiveWeights:
    """Weights of the MPC objective terms for one optimization profile."""

    demand: float = 1.0
    preparedness: float = 1.0
    smoothness: float = 0.5
    risk: float = 0.5
    floor: float = 0.5


# outcome_first leans on preparedness, sustainable on ramp risk
PROFILE_OBJECTIVE_WEIGHTS = {
    "outcome_first": ObjectiveWeights(demand=1.2, preparedness=1.5, smoothness=0.3, risk=0.2),
    "balanced": ObjectiveWeights(),
    "sustainable": ObjectiveWeights(demand=0.8, preparedness=0.7, smoothness=0.8, risk=1.2),
}


@dataclass(frozen=True)
class CalibrationConfig:
    """Engine calibration, immutable and request-scoped.

    Attributes:
        version: Calibration revision; part of the preview snapshot token.
        age_adjustment_enabled: Apply age buckets to the time constants.
        gender_adjustment_enabled: Apply the fatigue multiplier for gender.
        intensity_adjustment_enabled: Extend the fatigue constant for
            high intensity load factors.
        history_window_days: Trailing days of history read per request,
            capped at 365.
        feasibility_margin: Fraction of a cap at which a plan becomes
            ``aggressive``.
        optimizer: Tier search sizes and budgets.
    """

    version: int = 1
    age_adjustment_enabled: bool = True
    gender_adjustment_enabled: bool = True
    intensity_adjustment_enabled: bool = True
    history_window_days: int = MAX_HISTORY_WINDOW_DAYS
    feasibility_margin: float = DEFAULT_FEASIBILITY_MARGIN
    optimizer: OptimizerSettings = OptimizerSettings()

    @property
    def effective_history_window_days(self) -> int:
        return max(1, min(self.history_window_days, MAX_HISTORY_WINDOW_DAYS))


DEFAULT_CALIBRATION = CalibrationConfig()
