"""Context derivation: build the immutable TrainingContext for one request.

Missing or failed data sources never abort derivation: they are treated as
empty and recorded in ``rationale_codes``, and an empty history leads to
the no-history branch of the optimizer.
"""

from __future__ import annotations

import logging
import math
from datetime import date, timedelta
from typing import Iterable, Sequence

import pandas as pd

from projection_engine.guard import fingerprint_history, fingerprint_profile
from projection_engine.math.calendar import activity_frame, daily_tss_series, parse_date
from projection_engine.math.personalization import (
    calculate_age,
    calculate_training_quality,
    learn_ramp_rate,
    parse_gender,
    personalize_time_constants,
)
from projection_engine.math.training_load import calculate_atl, calculate_ctl
from projection_engine.models.calibration import DEFAULT_CALIBRATION, CalibrationConfig
from projection_engine.models.context import (
    ActivityRecord,
    ContextSummary,
    EffortBest,
    ProfileSnapshot,
    TrainingContext,
)
from projection_engine.models.enums import (
    BASELINE_WEEKS,
    CONSISTENCY_HIGH,
    CONSISTENCY_MODERATE,
    CONSISTENCY_WEEKS,
    EFFORT_HIGH_COUNT,
    EFFORT_MODERATE_COUNT,
    RECENT_WINDOW_DAYS,
    SPARSE_ACTIVITY_THRESHOLD,
    Gender,
    HistoryAvailability,
    SignalMarker,
)

logger = logging.getLogger(__name__)

# Effort bests older than this do not count toward the effort marker
_EFFORT_WINDOW_DAYS = 90

# Signal-quality base weight per availability state
_SIGNAL_BASE = {
    HistoryAvailability.SUFFICIENT: 0.45,
    HistoryAvailability.SPARSE: 0.25,
    HistoryAvailability.NONE: 0.05,
}
_MARKER_SCORE = {SignalMarker.LOW: 0.0, SignalMarker.MODERATE: 0.5, SignalMarker.HIGH: 1.0}

# Suggested ranges when there is no history to scale from
_DEFAULT_WEEKLY_TSS_RANGE = (120.0, 260.0)
_DEFAULT_SESSIONS_RANGE = (3, 4)


def _window_records(
    history: Iterable[ActivityRecord], start: date, end: date
) -> tuple[list[ActivityRecord], int]:
    kept, malformed = [], 0
    for record in history:
        day = parse_date(record.date)
        if day is None:
            malformed += 1
        elif start <= day <= end:
            kept.append(record)
    return kept, malformed


def _weekly_blocks(daily: pd.Series, weeks: int) -> list[float]:
    """Trailing seven-day TSS totals, oldest first."""
    values = daily.to_numpy()
    blocks = []
    for i in range(weeks, 0, -1):
        end = len(values) - (i - 1) * 7
        start = max(0, end - 7)
        blocks.append(float(values[start:end].sum()) if end > 0 else 0.0)
    return blocks


def _consistency_marker(blocks: Sequence[float]) -> tuple[SignalMarker, float]:
    ratio = sum(1 for b in blocks if b > 0) / max(1, len(blocks))
    if ratio >= CONSISTENCY_HIGH:
        return SignalMarker.HIGH, ratio
    if ratio >= CONSISTENCY_MODERATE:
        return SignalMarker.MODERATE, ratio
    return SignalMarker.LOW, ratio


def _effort_marker(efforts: Iterable[EffortBest], as_of: date) -> SignalMarker:
    start = as_of - timedelta(days=_EFFORT_WINDOW_DAYS - 1)
    count = 0
    for effort in efforts:
        day = parse_date(effort.date)
        if day is not None and start <= day <= as_of and effort.value > 0:
            count += 1
    if count >= EFFORT_HIGH_COUNT:
        return SignalMarker.HIGH
    if count >= EFFORT_MODERATE_COUNT:
        return SignalMarker.MODERATE
    return SignalMarker.LOW


def _profile_marker(age: int | None, gender: Gender) -> SignalMarker:
    present = int(age is not None) + int(gender != Gender.UNSPECIFIED)
    return (SignalMarker.LOW, SignalMarker.MODERATE, SignalMarker.HIGH)[present]


def derive_training_context(
    profile: ProfileSnapshot | None,
    history: Sequence[ActivityRecord],
    efforts: Sequence[EffortBest],
    as_of: date,
    calibration: CalibrationConfig = DEFAULT_CALIBRATION,
    unavailable_sources: Iterable[str] = (),
) -> TrainingContext:
    """Assemble the training context from profile, history and effort bests.

    Args:
        profile: Profile snapshot, or None when unavailable.
        history: Activity rows; rows outside the window are ignored and
            malformed dates are dropped and counted.
        efforts: Effort bests (may be empty).
        as_of: Last day of the history window.
        calibration: Calibration config; controls the window length and
            which personalization steps apply.
        unavailable_sources: Names of collaborator reads that failed.

    Returns:
        An immutable ``TrainingContext``.
    """
    rationale = [f"{source}_source_unavailable" for source in unavailable_sources]
    window_days = calibration.effective_history_window_days
    window_start = as_of - timedelta(days=window_days - 1)

    records, malformed = _window_records(history, window_start, as_of)
    if malformed:
        rationale.append("history_malformed_records_dropped")
        logger.debug("Dropped %d history rows with malformed dates", malformed)

    profile = profile or ProfileSnapshot()
    age = calculate_age(profile.dob, as_of)
    gender = parse_gender(profile.gender)
    if age is None:
        rationale.append("age_unknown")
    if gender == Gender.UNSPECIFIED:
        rationale.append("gender_unspecified")

    quality = calculate_training_quality(records, as_of)
    rationale.append(f"training_quality_{quality.source.name.lower()}")
    ramp = learn_ramp_rate(records, as_of)
    rationale.append(f"ramp_confidence_{ramp.confidence.name.lower()}")
    constants = personalize_time_constants(age, gender, quality, calibration)
    rationale.extend(constants.rationale_codes)

    frame, _ = activity_frame(records)
    daily = daily_tss_series(frame, window_start, as_of)
    ctl = calculate_ctl(daily.tolist(), seed=0.0, time_constant=constants.fitness)
    atl = calculate_atl(daily.tolist(), seed=0.0, time_constant=constants.fatigue)

    recent_start = as_of - timedelta(days=RECENT_WINDOW_DAYS - 1)
    recent_count = sum(1 for r in records if recent_start <= parse_date(r.date) <= as_of)
    if not records:
        state = HistoryAvailability.NONE
    elif recent_count < SPARSE_ACTIVITY_THRESHOLD:
        state = HistoryAvailability.SPARSE
    else:
        state = HistoryAvailability.SUFFICIENT
    rationale.append(f"history_{state.name.lower()}")
    if records and recent_count == 0:
        rationale.append("history_stale")

    blocks = _weekly_blocks(daily, CONSISTENCY_WEEKS)
    consistency, _ = _consistency_marker(blocks)
    effort = _effort_marker(efforts, as_of)
    profile_marker = _profile_marker(age, gender)
    rationale.extend(
        [
            f"consistency_{consistency.name.lower()}",
            f"effort_{effort.name.lower()}",
            f"profile_metrics_{profile_marker.name.lower()}",
        ]
    )

    signal_quality = (
        _SIGNAL_BASE[state]
        + 0.25 * _MARKER_SCORE[consistency]
        + 0.15 * _MARKER_SCORE[effort]
        + 0.15 * _MARKER_SCORE[profile_marker]
    )
    baseline = sum(blocks[-BASELINE_WEEKS:]) / BASELINE_WEEKS

    context = TrainingContext(
        as_of=as_of,
        current_ctl=ctl,
        current_atl=atl,
        time_constants=constants,
        learned_ramp=ramp,
        training_quality=quality,
        history_availability_state=state,
        user_age=age,
        user_gender=gender,
        rationale_codes=tuple(rationale),
        baseline_weekly_tss=round(baseline, 1),
        weekly_tss_history=tuple(round(b, 1) for b in blocks),
        recent_activity_count=recent_count,
        consistency_marker=consistency,
        effort_marker=effort,
        profile_marker=profile_marker,
        signal_quality=round(max(0.0, min(1.0, signal_quality)), 3),
        malformed_record_count=malformed,
        history_fingerprint=fingerprint_history(records, malformed),
        profile_fingerprint=fingerprint_profile(profile),
    )
    logger.debug(
        "Derived context: state=%s ctl=%.1f atl=%.1f rationale=%s",
        state.name,
        ctl,
        atl,
        context.rationale_codes,
    )
    return context


def summarize_context(context: TrainingContext) -> ContextSummary:
    """Condense a context into the markers and ranges shown to the user."""
    baseline = context.baseline_weekly_tss
    if context.has_history and baseline > 0:
        tss_range = (round(baseline * 0.75, 1), round(baseline * 1.2, 1))
        per_week = context.recent_activity_count / (RECENT_WINDOW_DAYS / 7.0)
        low = max(2, min(7, int(math.floor(per_week))))
        sessions = (low, max(low, min(7, int(math.ceil(per_week)) + 1)))
    else:
        tss_range = _DEFAULT_WEEKLY_TSS_RANGE
        sessions = _DEFAULT_SESSIONS_RANGE
    return ContextSummary(
        history_availability_state=context.history_availability_state,
        recent_activity_count=context.recent_activity_count,
        consistency_marker=context.consistency_marker,
        effort_marker=context.effort_marker,
        profile_marker=context.profile_marker,
        signal_quality=context.signal_quality,
        baseline_weekly_tss=baseline,
        weekly_tss_range=tss_range,
        sessions_per_week_range=sessions,
        current_ctl=context.current_ctl,
        current_atl=context.current_atl,
        learned_ramp=context.learned_ramp,
        rationale_codes=context.rationale_codes,
    )
