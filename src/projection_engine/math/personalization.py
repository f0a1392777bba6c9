"""Personalization: time constants, learned ramp tolerance, training quality.

Composition of the fatigue time constant is fixed:
    base = age_adjusted(age)
    gender_adjusted = round(base * gender_multiplier(gender))
    final = base-extended by the intensity load factor
Each step can be disabled independently through ``CalibrationConfig``.

References:
    - Busso (2003): variable dose-response model, slower recovery with age
    - Seiler (2010): polarized intensity distribution in endurance athletes
    - Gabbett (2016): individual load progression tolerance
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

import numpy as np
import pandas as pd

from projection_engine.math.calendar import activity_frame, effective_tss, parse_date, weekly_tss_totals
from projection_engine.models.calibration import DEFAULT_CALIBRATION, CalibrationConfig
from projection_engine.models.context import (
    ActivityRecord,
    LearnedRamp,
    TimeConstants,
    TrainingQuality,
)
from projection_engine.models.enums import (
    AGE_BUCKETS,
    BASELINE_FATIGUE_TC,
    BASELINE_FITNESS_TC,
    BASELINE_MAX_CTL,
    FEMALE_FATIGUE_MULTIPLIER,
    INTENSITY_BAND_WEIGHTS,
    INTENSITY_EXTENSION_HIGH,
    INTENSITY_EXTENSION_LOW,
    MALE_FATIGUE_MULTIPLIER,
    MAX_PLAUSIBLE_AGE,
    NEUTRAL_DISTRIBUTION,
    RAMP_DEFAULT_RATE,
    RAMP_HIGH_CONFIDENCE_DELTAS,
    RAMP_LEARNING_WINDOW_DAYS,
    RAMP_MAX_RATE,
    RAMP_MEDIUM_CONFIDENCE_DELTAS,
    RAMP_MIN_RATE,
    RAMP_MIN_WEEKS,
    RAMP_PERCENTILE,
    TRAINING_QUALITY_WINDOW_DAYS,
    Gender,
    QualitySource,
    RampConfidence,
)


# -- Profile parsing ---------------------------------------------------------


def calculate_age(dob: date | str | None, as_of: date) -> int | None:
    """Age in whole years at *as_of*; None when the date of birth is unusable."""
    born = parse_date(dob)
    if born is None or born > as_of:
        return None
    age = as_of.year - born.year - ((as_of.month, as_of.day) < (born.month, born.day))
    if age > MAX_PLAUSIBLE_AGE:
        return None
    return age


def parse_gender(value: str | None) -> Gender:
    """Map free-form profile gender to ``Gender``; unknown values are unspecified."""
    if not value:
        return Gender.UNSPECIFIED
    key = value.strip().lower()
    if key in ("female", "f", "woman"):
        return Gender.FEMALE
    if key in ("male", "m", "man"):
        return Gender.MALE
    return Gender.UNSPECIFIED


# -- Time constants ----------------------------------------------------------


def age_adjusted_constants(age: int | None) -> tuple[int, int, float]:
    """Return ``(fatigue_tc, fitness_tc, max_ctl_ceiling)`` for an age.

    Undefined or negative ages return the unadjusted baseline.
    """
    if age is None or age < 0:
        return BASELINE_FATIGUE_TC, BASELINE_FITNESS_TC, BASELINE_MAX_CTL
    for upper, fatigue, fitness, ceiling in AGE_BUCKETS:
        if age < upper:
            return fatigue, fitness, ceiling
    return BASELINE_FATIGUE_TC, BASELINE_FITNESS_TC, BASELINE_MAX_CTL


def gender_fatigue_multiplier(gender: Gender) -> float:
    """Multiplier on the fatigue time constant.

    Slower recovery is a longer fatigue decay, so the female multiplier is
    greater than one. Unspecified gender is a no-op.
    """
    if gender == Gender.FEMALE:
        return FEMALE_FATIGUE_MULTIPLIER
    if gender == Gender.MALE:
        return MALE_FATIGUE_MULTIPLIER
    return 1.0


def intensity_fatigue_extension(intensity_load_factor: float) -> int:
    """Days added to the fatigue constant for intensity-heavy training."""
    if intensity_load_factor >= INTENSITY_EXTENSION_HIGH:
        return 2
    if intensity_load_factor >= INTENSITY_EXTENSION_LOW:
        return 1
    return 0


def personalize_time_constants(
    age: int | None,
    gender: Gender,
    quality: TrainingQuality | None,
    calibration: CalibrationConfig = DEFAULT_CALIBRATION,
) -> TimeConstants:
    """Compose age, gender and intensity adjustments in fixed order.

    Only the fatigue constant is affected by gender and intensity; the
    fitness constant and CTL ceiling come from the age bucket alone.
    """
    reasons = []
    if calibration.age_adjustment_enabled:
        fatigue, fitness, ceiling = age_adjusted_constants(age)
        reasons.append("age_adjusted" if age is not None else "age_unknown_baseline")
    else:
        fatigue, fitness, ceiling = age_adjusted_constants(None)

    if calibration.gender_adjustment_enabled and gender != Gender.UNSPECIFIED:
        fatigue = int(round(fatigue * gender_fatigue_multiplier(gender)))
        reasons.append(f"gender_adjusted_{gender.name.lower()}")

    if calibration.intensity_adjustment_enabled and quality is not None:
        extension = intensity_fatigue_extension(quality.intensity_load_factor)
        if extension:
            fatigue += extension
            reasons.append(f"intensity_extended_plus_{extension}")

    return TimeConstants(
        fitness=float(fitness),
        fatigue=float(fatigue),
        max_ctl_ceiling=ceiling,
        rationale_codes=tuple(reasons),
    )


# -- Ramp learning -----------------------------------------------------------


def _ramp_confidence(delta_count: int) -> RampConfidence:
    if delta_count > RAMP_HIGH_CONFIDENCE_DELTAS:
        return RampConfidence.HIGH
    if delta_count >= RAMP_MEDIUM_CONFIDENCE_DELTAS:
        return RampConfidence.MEDIUM
    return RampConfidence.LOW


def learn_ramp_rate(records: Iterable[ActivityRecord], as_of: date) -> LearnedRamp:
    """Learn a safe weekly TSS increase from the trailing year of history.

    Positive deltas between consecutive observed ISO weeks are collected and
    their 75th percentile clamped to [30, 70]. Fewer than ten observed weeks
    yields the conservative default of 40 with low confidence.

    Args:
        records: Activity history; malformed dates are dropped and counted.
        as_of: Last day of the learning window.

    Returns:
        ``LearnedRamp`` with the rate, confidence and bookkeeping counts.
    """
    frame, malformed = activity_frame(records)
    if not frame.empty:
        window_start = pd.Timestamp(as_of - timedelta(days=RAMP_LEARNING_WINDOW_DAYS - 1))
        frame = frame[(frame["date"] >= window_start) & (frame["date"] <= pd.Timestamp(as_of))]

    weekly = weekly_tss_totals(frame)
    weeks_observed = int(len(weekly))
    if weeks_observed < RAMP_MIN_WEEKS:
        return LearnedRamp(
            max_safe_rate=RAMP_DEFAULT_RATE,
            confidence=RampConfidence.LOW,
            positive_delta_count=0,
            weeks_observed=weeks_observed,
            malformed_record_count=malformed,
        )

    starts = list(weekly.index)
    totals = weekly.to_numpy(dtype=np.float64)
    deltas = []
    for i in range(1, len(starts)):
        if (starts[i] - starts[i - 1]).days != 7:
            continue
        delta = totals[i] - totals[i - 1]
        if delta > 0:
            deltas.append(delta)

    if deltas:
        rate = float(np.percentile(np.array(deltas, dtype=np.float64), RAMP_PERCENTILE))
    else:
        rate = RAMP_DEFAULT_RATE
    rate = max(RAMP_MIN_RATE, min(RAMP_MAX_RATE, rate))

    return LearnedRamp(
        max_safe_rate=round(rate, 1),
        confidence=_ramp_confidence(len(deltas)),
        positive_delta_count=len(deltas),
        weeks_observed=weeks_observed,
        malformed_record_count=malformed,
    )


# -- Training quality --------------------------------------------------------


def zone_bands(zone_seconds: tuple[float, ...], power_model: bool) -> tuple[float, float, float] | None:
    """Split zone seconds into low/moderate/high percentages.

    Zones 1-2 are low. In the 7-zone power model zones 3-4 are moderate;
    in the 5-zone heart-rate model only zone 3 is.
    """
    seconds = [max(0.0, float(s)) for s in zone_seconds]
    total = sum(seconds)
    if total <= 0:
        return None
    moderate_end = 4 if power_model and len(seconds) >= 6 else 3
    low = sum(seconds[:2])
    moderate = sum(seconds[2:moderate_end])
    high = sum(seconds[moderate_end:])
    return low / total * 100.0, moderate / total * 100.0, high / total * 100.0


def activity_intensity_bands(
    record: ActivityRecord,
) -> tuple[tuple[float, float, float], QualitySource] | None:
    """Bands for one activity: power zones first, then heart-rate zones."""
    bands = zone_bands(record.power_zone_seconds, power_model=True)
    if bands is not None:
        return bands, QualitySource.POWER
    bands = zone_bands(record.hr_zone_seconds, power_model=False)
    if bands is not None:
        return bands, QualitySource.HEART_RATE
    return None


def intensity_load_factor(low_pct: float, moderate_pct: float, high_pct: float) -> float:
    w_low, w_mod, w_high = INTENSITY_BAND_WEIGHTS
    return (low_pct * w_low + moderate_pct * w_mod + high_pct * w_high) / 100.0


def polarization_score(low_pct: float, moderate_pct: float, high_pct: float) -> float:
    """0 (all moderate) to 1 (fully polarized)."""
    return max(0.0, min(1.0, (low_pct + high_pct - moderate_pct) / 100.0))


def neutral_training_quality(activity_count: int = 0) -> TrainingQuality:
    low, moderate, high = NEUTRAL_DISTRIBUTION
    return TrainingQuality(
        low_pct=low,
        moderate_pct=moderate,
        high_pct=high,
        intensity_load_factor=1.0,
        polarization_score=round(polarization_score(low, moderate, high), 3),
        source=QualitySource.NEUTRAL_DEFAULT,
        activity_count=activity_count,
    )


def calculate_training_quality(records: Iterable[ActivityRecord], as_of: date) -> TrainingQuality:
    """TSS-weighted intensity distribution over the trailing 28 days.

    Activities without zone data contribute the neutral 70/20/10 split.
    When no activity in the window has zone data the neutral distribution
    is returned with an intensity load factor of exactly 1.0.
    """
    window_start = as_of - timedelta(days=TRAINING_QUALITY_WINDOW_DAYS - 1)
    weighted = np.zeros(3, dtype=np.float64)
    total_weight = 0.0
    sources: set[QualitySource] = set()
    count = 0

    for record in records:
        day = parse_date(record.date)
        if day is None or not window_start <= day <= as_of:
            continue
        count += 1
        weight = effective_tss(record)
        if weight <= 0:
            continue
        classified = activity_intensity_bands(record)
        if classified is None:
            bands = NEUTRAL_DISTRIBUTION
        else:
            bands, source = classified
            sources.add(source)
        weighted += np.array(bands, dtype=np.float64) * weight
        total_weight += weight

    if not sources or total_weight <= 0:
        return neutral_training_quality(count)

    low, moderate, high = (weighted / total_weight).tolist()
    if len(sources) > 1:
        source = QualitySource.MIXED
    else:
        source = next(iter(sources))

    return TrainingQuality(
        low_pct=round(low, 1),
        moderate_pct=round(moderate, 1),
        high_pct=round(high, 1),
        intensity_load_factor=round(intensity_load_factor(low, moderate, high), 3),
        polarization_score=round(polarization_score(low, moderate, high), 3),
        source=source,
        activity_count=count,
    )
