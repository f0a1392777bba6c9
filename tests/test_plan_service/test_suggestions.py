"""Tests for creation-config suggestions."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

import pytest

from plan_service.suggestions import (
    suggest_availability,
    suggest_creation_config,
    suggest_profile,
    suggest_recent_influence,
)
from projection_engine.context import derive_training_context, summarize_context
from projection_engine.models.context import ActivityRecord, LearnedRamp
from projection_engine.models.enums import (
    WEEKDAYS,
    HistoryAvailability,
    OptimizationProfile,
    RampConfidence,
    SignalMarker,
)

AS_OF = date(2026, 3, 1)


class TestSuggestProfile:
    def test_sufficient_history_is_balanced(self, steady_context) -> None:
        assert suggest_profile(summarize_context(steady_context)) == OptimizationProfile.BALANCED

    def test_no_history_is_sustainable(self, empty_context) -> None:
        assert suggest_profile(summarize_context(empty_context)) == OptimizationProfile.SUSTAINABLE

    def test_sparse_but_consistent_is_balanced(self, male_profile) -> None:
        weekly = [ActivityRecord(date=AS_OF - timedelta(days=7 * k), training_stress_score=80.0) for k in range(6)]
        summary = summarize_context(derive_training_context(male_profile, weekly, [], AS_OF))
        assert summary.history_availability_state == HistoryAvailability.SPARSE
        assert suggest_profile(summary) == OptimizationProfile.BALANCED

    def test_sparse_and_inconsistent_is_sustainable(self, male_profile, history_factory) -> None:
        summary = summarize_context(derive_training_context(male_profile, history_factory(days=3), [], AS_OF))
        assert summary.history_availability_state == HistoryAvailability.SPARSE
        assert suggest_profile(summary) == OptimizationProfile.SUSTAINABLE


class TestSuggestCreationConfig:
    def test_from_history(self, steady_context) -> None:
        result = suggest_creation_config(summarize_context(steady_context))
        values, sources = result.suggestions, result.sources
        assert values["optimization_profile"] == "balanced"
        assert sources["optimization_profile"] == "history"
        assert values["post_goal_recovery_days"] == 5
        assert values["max_ctl_ramp_per_week"] == 3.0
        # Steady weekly load teaches no ramp; the profile default applies
        assert values["max_weekly_tss_ramp_pct"] == 7.0
        assert sources["max_weekly_tss_ramp_pct"] == "profile_default"
        assert values["constraints"] == {
            "weekly_load_floor_tss": round(262.5),
            "weekly_load_cap_tss": 525,
            "min_sessions_per_week": 7,
            "max_sessions_per_week": 7,
        }
        assert sources["weekly_load_cap_tss"] == "history"

    def test_without_history(self, empty_context) -> None:
        result = suggest_creation_config(summarize_context(empty_context))
        values, sources = result.suggestions, result.sources
        assert values["optimization_profile"] == "sustainable"
        assert sources["optimization_profile"] == "default"
        assert values["post_goal_recovery_days"] == 7
        assert values["max_weekly_tss_ramp_pct"] == 5.0
        assert values["max_ctl_ramp_per_week"] == 2.0
        assert values["constraints"]["weekly_load_floor_tss"] == 120
        assert values["constraints"]["weekly_load_cap_tss"] == 325
        assert values["constraints"]["min_sessions_per_week"] == 3
        assert values["constraints"]["max_sessions_per_week"] == 4
        assert sources["min_sessions_per_week"] == "default"

    @pytest.mark.parametrize("rate,expected", [(21.0, 6.0), (3.5, 3.0), (70.0, 7.0)])
    def test_learned_ramp_used_with_confidence(self, steady_context, rate, expected) -> None:
        summary = replace(
            summarize_context(steady_context),
            learned_ramp=LearnedRamp(max_safe_rate=rate, confidence=RampConfidence.MEDIUM),
        )
        result = suggest_creation_config(summary)
        assert result.suggestions["max_weekly_tss_ramp_pct"] == expected
        assert result.sources["max_weekly_tss_ramp_pct"] == "history"

    def test_existing_values_win(self, steady_context) -> None:
        existing = {
            "optimization_profile": "outcome_first",
            "post_goal_recovery_days": 2,
            "constraints": {"weekly_load_cap_tss": 800, "hard_rest_days": ["monday"]},
        }
        result = suggest_creation_config(summarize_context(steady_context), existing)
        values, sources = result.suggestions, result.sources
        assert values["optimization_profile"] == "outcome_first"
        assert values["post_goal_recovery_days"] == 2
        assert values["max_ctl_ramp_per_week"] == 5.0
        assert values["constraints"]["weekly_load_cap_tss"] == 800
        assert values["constraints"]["hard_rest_days"] == ["monday"]
        assert values["constraints"]["weekly_load_floor_tss"] == round(262.5)
        assert sources["optimization_profile"] == "existing"
        assert sources["post_goal_recovery_days"] == "existing"
        assert sources["weekly_load_cap_tss"] == "existing"
        assert sources["max_ctl_ramp_per_week"] == "profile_default"

    def test_flat_existing_constraint(self, empty_context) -> None:
        existing = {"max_sessions_per_week": 5, "min_sessions_per_week": None}
        result = suggest_creation_config(summarize_context(empty_context), existing)
        assert result.suggestions["constraints"]["max_sessions_per_week"] == 5
        assert result.suggestions["constraints"]["min_sessions_per_week"] == 3
        assert result.sources["min_sessions_per_week"] == "default"


class TestAvailabilityAndInfluence:
    def test_availability_from_history(self, steady_context) -> None:
        result = suggest_creation_config(summarize_context(steady_context))
        days = result.suggestions["availability"]["days"]
        # 341.25 TSS over seven days at 45 TSS/h
        assert days == [{"day": d, "max_minutes": 65.0} for d in WEEKDAYS]
        assert result.sources["availability"] == "history"

    def test_availability_without_history(self, empty_context) -> None:
        result = suggest_creation_config(summarize_context(empty_context))
        minutes = {d["day"]: d["max_minutes"] for d in result.suggestions["availability"]["days"]}
        assert {d for d, m in minutes.items() if m > 0} == {"tuesday", "thursday", "saturday", "sunday"}
        assert minutes["saturday"] == 65.0
        assert result.sources["availability"] == "default"

    def test_availability_skips_hard_rest_days(self, empty_context) -> None:
        summary = summarize_context(empty_context)
        days = suggest_availability(summary, ["Saturday"])["days"]
        assert [d["day"] for d in days if d["max_minutes"] > 0] == ["monday", "tuesday", "thursday", "sunday"]

    def test_session_minutes_bounded(self, empty_context) -> None:
        summary = replace(summarize_context(empty_context), weekly_tss_range=(2000.0, 2400.0))
        assert {d["max_minutes"] for d in suggest_availability(summary)["days"]} == {0.0, 180.0}

    def test_existing_availability_wins(self, steady_context) -> None:
        existing = {"availability": {"days": [{"day": "monday", "max_minutes": 45}]}}
        result = suggest_creation_config(summarize_context(steady_context), existing)
        assert result.suggestions["availability"] == existing["availability"]
        assert result.sources["availability"] == "existing"

    def test_influence_from_consistent_history(self, steady_context) -> None:
        influence = suggest_recent_influence(summarize_context(steady_context))
        assert influence == {"influence_score": 0.1, "action": "accepted", "range": [-0.05, 0.25]}

    @pytest.mark.parametrize(
        "marker,score", [(SignalMarker.HIGH, 0.1), (SignalMarker.MODERATE, 0.0), (SignalMarker.LOW, -0.1)]
    )
    def test_influence_follows_consistency(self, steady_context, marker, score) -> None:
        summary = replace(summarize_context(steady_context), consistency_marker=marker)
        assert suggest_recent_influence(summary)["influence_score"] == score

    def test_influence_disabled_without_history(self, empty_context) -> None:
        result = suggest_creation_config(summarize_context(empty_context))
        assert result.suggestions["recent_influence"]["action"] == "disabled"
        assert result.suggestions["recent_influence"]["influence_score"] == 0.0
        assert result.sources["recent_influence"] == "default"

    def test_existing_influence_wins(self, steady_context) -> None:
        existing = {"recent_influence": {"influence_score": -0.3, "action": "edited"}}
        result = suggest_creation_config(summarize_context(steady_context), existing)
        assert result.suggestions["recent_influence"] == existing["recent_influence"]
        assert result.sources["recent_influence"] == "existing"


class TestServiceSuggestions:
    def test_service_uses_context(self, service) -> None:
        result = service.get_creation_suggestions(as_of=AS_OF)
        assert result.context_summary.history_availability_state == HistoryAvailability.SUFFICIENT
        assert result.suggestions["optimization_profile"] == "balanced"

    def test_suggestions_round_trip_into_preview(self, service, plan_request) -> None:
        suggestions = service.get_creation_suggestions(as_of=AS_OF).suggestions
        preview = service.preview_creation_config(plan_request, suggestions, as_of=AS_OF)
        assert preview.normalized_creation_config.constraints.weekly_load_cap_tss == 525
        assert preview.normalized_creation_config.availability.available_day_count == 7
        assert not preview.conflicts.is_blocking
