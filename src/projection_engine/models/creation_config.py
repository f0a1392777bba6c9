"""Creation configuration: the partial user input and its normalized form.

Normalization is pure: omitted fields come from the optimization profile's
named defaults and user values are clamped into their allowed ranges.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from projection_engine.exceptions import PlanValidationError
from projection_engine.models.enums import (
    DEFAULT_PROFILE,
    MAX_CTL_RAMP_PER_WEEK,
    MAX_RECOVERY_DAYS,
    MAX_TSS_RAMP_PCT,
    PROFILE_DEFAULTS,
    WEEKDAYS,
    OptimizationProfile,
)


@dataclass(frozen=True)
class TrainingConstraints:
    """Optional weekly load and session constraints."""

    weekly_load_floor_tss: float | None = None
    weekly_load_cap_tss: float | None = None
    hard_rest_days: tuple[str, ...] = field(default_factory=tuple)
    min_sessions_per_week: int | None = None
    max_sessions_per_week: int | None = None
    max_single_session_duration_minutes: float | None = None


@dataclass(frozen=True)
class AvailabilityDay:
    """Minutes available for training on one weekday."""

    day: str
    max_minutes: float


@dataclass(frozen=True)
class AvailabilityConfig:
    days: tuple[AvailabilityDay, ...] = field(default_factory=tuple)

    @property
    def weekly_minutes(self) -> float:
        return sum(d.max_minutes for d in self.days)

    @property
    def available_day_count(self) -> int:
        return sum(1 for d in self.days if d.max_minutes > 0)


@dataclass(frozen=True)
class CreationConfig:
    """User-suppliable creation settings; every field may be omitted."""

    optimization_profile: str | None = None
    post_goal_recovery_days: float | None = None
    max_weekly_tss_ramp_pct: float | None = None
    max_ctl_ramp_per_week: float | None = None
    constraints: TrainingConstraints | None = None
    availability: AvailabilityConfig | None = None


@dataclass(frozen=True)
class NormalizedCreationConfig:
    """Creation settings with every field resolved."""

    optimization_profile: OptimizationProfile
    post_goal_recovery_days: int
    max_weekly_tss_ramp_pct: float
    max_ctl_ramp_per_week: float
    constraints: TrainingConstraints = TrainingConstraints()
    availability: AvailabilityConfig | None = None

    @property
    def profile_name(self) -> str:
        return self.optimization_profile.name.lower()


def parse_profile(name: str | None) -> OptimizationProfile:
    """Resolve a profile name; None selects the default profile."""
    if name is None:
        return DEFAULT_PROFILE
    try:
        return OptimizationProfile[name.strip().upper()]
    except KeyError:
        raise PlanValidationError(
            f"unknown optimization_profile '{name}'",
            code="invalid_optimization_profile",
        ) from None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _resolve(value: float | None, default: float) -> float:
    if value is None or not math.isfinite(value):
        return default
    return value


def _normalize_constraints(constraints: TrainingConstraints | None) -> TrainingConstraints:
    if constraints is None:
        return TrainingConstraints()
    rest_days = []
    for day in constraints.hard_rest_days:
        key = day.strip().lower()
        if key not in WEEKDAYS:
            raise PlanValidationError(
                f"unknown weekday '{day}' in hard_rest_days",
                code="invalid_creation_config",
            )
        if key not in rest_days:
            rest_days.append(key)
    return TrainingConstraints(
        weekly_load_floor_tss=constraints.weekly_load_floor_tss,
        weekly_load_cap_tss=constraints.weekly_load_cap_tss,
        hard_rest_days=tuple(sorted(rest_days, key=WEEKDAYS.index)),
        min_sessions_per_week=constraints.min_sessions_per_week,
        max_sessions_per_week=constraints.max_sessions_per_week,
        max_single_session_duration_minutes=constraints.max_single_session_duration_minutes,
    )


def normalize_creation_config(config: CreationConfig | None) -> NormalizedCreationConfig:
    """Fill omitted fields from profile defaults and clamp user values.

    Args:
        config: Partial creation input, or None for all defaults.

    Returns:
        A fully-resolved ``NormalizedCreationConfig``.

    Raises:
        PlanValidationError: For unknown profile names or weekdays.
    """
    config = config or CreationConfig()
    profile = parse_profile(config.optimization_profile)
    recovery_default, ramp_default, ctl_default = PROFILE_DEFAULTS[profile]

    recovery = _clamp(_resolve(config.post_goal_recovery_days, recovery_default), 0, MAX_RECOVERY_DAYS)
    tss_ramp = _clamp(_resolve(config.max_weekly_tss_ramp_pct, ramp_default), 0.0, MAX_TSS_RAMP_PCT)
    ctl_ramp = _clamp(_resolve(config.max_ctl_ramp_per_week, ctl_default), 0.0, MAX_CTL_RAMP_PER_WEEK)

    return NormalizedCreationConfig(
        optimization_profile=profile,
        post_goal_recovery_days=int(round(recovery)),
        max_weekly_tss_ramp_pct=float(tss_ramp),
        max_ctl_ramp_per_week=float(ctl_ramp),
        constraints=_normalize_constraints(config.constraints),
        availability=config.availability,
    )
