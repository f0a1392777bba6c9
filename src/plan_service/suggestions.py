"""Creation-config suggestions derived from the athlete's training context.

Suggestions are shaped like a creation-config request so they can be sent
back unchanged. Values the user already chose always win over derived ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from projection_engine.models.context import ContextSummary
from projection_engine.models.creation_config import parse_profile
from projection_engine.models.enums import (
    FALLBACK_TSS_PER_HOUR,
    PROFILE_DEFAULTS,
    WEEKDAYS,
    HistoryAvailability,
    OptimizationProfile,
    RampConfidence,
    SignalMarker,
)
from projection_engine.serialization.payload import enum_label

SOURCE_EXISTING = "existing"
SOURCE_HISTORY = "history"
SOURCE_PROFILE_DEFAULT = "profile_default"
SOURCE_DEFAULT = "default"

_CONSTRAINT_FIELDS = (
    "weekly_load_floor_tss",
    "weekly_load_cap_tss",
    "min_sessions_per_week",
    "max_sessions_per_week",
)

# Headroom above the usual weekly range for the suggested cap
_CAP_HEADROOM = 1.25
_MIN_SUGGESTED_RAMP_PCT = 3.0

# Weekdays filled first when suggesting availability
_TRAINING_DAY_ORDER = ("saturday", "tuesday", "thursday", "sunday", "monday", "friday", "wednesday")
_SESSION_MINUTES_MIN = 30.0
_SESSION_MINUTES_MAX = 180.0

# Recent-influence range: width narrows with more history, bias follows consistency
_INFLUENCE_WIDTH = {
    HistoryAvailability.SUFFICIENT: 0.15,
    HistoryAvailability.SPARSE: 0.3,
    HistoryAvailability.NONE: 0.5,
}
_INFLUENCE_BIAS = {
    SignalMarker.HIGH: 0.1,
    SignalMarker.MODERATE: 0.0,
    SignalMarker.LOW: -0.1,
}


@dataclass(frozen=True)
class CreationSuggestions:
    context_summary: ContextSummary
    suggestions: dict = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)


def suggest_profile(summary: ContextSummary) -> OptimizationProfile:
    """Balanced for athletes with a track record, sustainable otherwise."""
    state = summary.history_availability_state
    if state == HistoryAvailability.SUFFICIENT:
        return OptimizationProfile.BALANCED
    if state == HistoryAvailability.SPARSE and summary.consistency_marker >= SignalMarker.MODERATE:
        return OptimizationProfile.BALANCED
    return OptimizationProfile.SUSTAINABLE


def suggest_availability(summary: ContextSummary, hard_rest_days=()) -> dict:
    """Weekly availability covering the upper end of the session range.

    Training days are filled in a fixed preference order, skipping hard rest
    days. Each gets enough minutes to carry the midpoint of the usual weekly
    load at the fallback TSS rate.
    """
    _, max_sessions = summary.sessions_per_week_range
    rest = {d.lower() for d in hard_rest_days}
    open_days = [d for d in _TRAINING_DAY_ORDER if d not in rest]
    training_days = set(open_days[: max(1, min(len(WEEKDAYS), max_sessions))])

    minutes = 0.0
    if training_days:
        low_tss, high_tss = summary.weekly_tss_range
        per_session = (low_tss + high_tss) / 2.0 / len(training_days) / FALLBACK_TSS_PER_HOUR * 60.0
        minutes = float(min(max(5 * round(per_session / 5), _SESSION_MINUTES_MIN), _SESSION_MINUTES_MAX))
    return {"days": [{"day": d, "max_minutes": minutes if d in training_days else 0.0} for d in WEEKDAYS]}


def suggest_recent_influence(summary: ContextSummary) -> dict:
    """How strongly recent training should steer the plan, in ``[-1, 1]``.

    Disabled (score 0) without history.
    """
    if summary.history_availability_state == HistoryAvailability.NONE:
        return {"influence_score": 0.0, "action": "disabled", "range": [-0.5, 0.5]}
    width = _INFLUENCE_WIDTH[summary.history_availability_state]
    bias = _INFLUENCE_BIAS[summary.consistency_marker]
    low = round(max(-1.0, bias - width), 3)
    high = round(min(1.0, bias + width), 3)
    return {"influence_score": round(bias, 3), "action": "accepted", "range": [low, high]}


def _flatten_existing(existing: dict | None) -> dict:
    existing = dict(existing or {})
    nested = existing.pop("constraints", None) or {}
    for key, value in nested.items():
        existing.setdefault(key, value)
    return {k: v for k, v in existing.items() if v is not None}


def suggest_creation_config(summary: ContextSummary, existing_values: dict | None = None) -> CreationSuggestions:
    """Suggest every creation-config field, keeping any existing value.

    Args:
        summary: Context summary for the athlete.
        existing_values: Values already chosen, flat or with a nested
            ``constraints`` dict.

    Returns:
        ``CreationSuggestions`` with the suggested request and the source of
        each field (``existing``, ``history``, ``profile_default``,
        ``default``).
    """
    existing = _flatten_existing(existing_values)
    values: dict[str, object] = {}
    sources: dict[str, str] = {}
    has_history = summary.history_availability_state != HistoryAvailability.NONE

    if "optimization_profile" in existing:
        profile = parse_profile(str(existing["optimization_profile"]))
        sources["optimization_profile"] = SOURCE_EXISTING
    else:
        profile = suggest_profile(summary)
        sources["optimization_profile"] = SOURCE_HISTORY if has_history else SOURCE_DEFAULT
    values["optimization_profile"] = enum_label(profile)

    recovery_default, ramp_default, ctl_default = PROFILE_DEFAULTS[profile]
    values["post_goal_recovery_days"] = recovery_default
    sources["post_goal_recovery_days"] = SOURCE_PROFILE_DEFAULT
    values["max_ctl_ramp_per_week"] = ctl_default
    sources["max_ctl_ramp_per_week"] = SOURCE_PROFILE_DEFAULT

    learned = summary.learned_ramp
    if learned.confidence >= RampConfidence.MEDIUM and summary.baseline_weekly_tss > 0:
        learned_pct = learned.max_safe_rate / summary.baseline_weekly_tss * 100.0
        values["max_weekly_tss_ramp_pct"] = round(max(_MIN_SUGGESTED_RAMP_PCT, min(ramp_default, learned_pct)), 1)
        sources["max_weekly_tss_ramp_pct"] = SOURCE_HISTORY
    else:
        values["max_weekly_tss_ramp_pct"] = ramp_default
        sources["max_weekly_tss_ramp_pct"] = SOURCE_PROFILE_DEFAULT

    low_tss, high_tss = summary.weekly_tss_range
    min_sessions, max_sessions = summary.sessions_per_week_range
    constraint_source = SOURCE_HISTORY if has_history else SOURCE_DEFAULT
    constraints = {
        "weekly_load_floor_tss": round(low_tss),
        "weekly_load_cap_tss": round(high_tss * _CAP_HEADROOM),
        "min_sessions_per_week": min_sessions,
        "max_sessions_per_week": max_sessions,
    }
    for key in _CONSTRAINT_FIELDS:
        sources[key] = constraint_source

    values["availability"] = suggest_availability(summary, existing.get("hard_rest_days") or ())
    sources["availability"] = constraint_source
    values["recent_influence"] = suggest_recent_influence(summary)
    sources["recent_influence"] = constraint_source

    for key, value in existing.items():
        if key == "optimization_profile":
            continue
        if key in _CONSTRAINT_FIELDS or key in ("hard_rest_days", "max_single_session_duration_minutes"):
            constraints[key] = value
        else:
            values[key] = value
        sources[key] = SOURCE_EXISTING

    values["constraints"] = constraints
    return CreationSuggestions(context_summary=summary, suggestions=values, sources=sources)
