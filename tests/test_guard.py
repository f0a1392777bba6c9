"""Tests for preview snapshot tokens and input fingerprints."""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import date

import pytest

from projection_engine.context import derive_training_context
from projection_engine.exceptions import StalePreviewError
from projection_engine.guard import (
    build_preview_snapshot,
    canonical_json,
    fingerprint_history,
    fingerprint_profile,
    verify_preview_snapshot,
)
from projection_engine.models.calibration import DEFAULT_CALIBRATION, CalibrationConfig
from projection_engine.models.context import ActivityRecord, ProfileSnapshot
from projection_engine.models.creation_config import CreationConfig, normalize_creation_config

TOKEN_PATTERN = re.compile(r"^v1:[0-9a-f]{64}$")


@pytest.fixture
def balanced():
    return normalize_creation_config(CreationConfig(optimization_profile="balanced"))


class TestCanonicalJson:
    def test_sorted_compact_fixed_floats(self) -> None:
        assert canonical_json({"b": 1.5, "a": [1, None, True]}) == '{"a":[1,null,true],"b":"1.500000"}'

    def test_float_noise_below_precision(self) -> None:
        assert canonical_json({"x": 0.1 + 0.2}) == canonical_json({"x": 0.3})


class TestFingerprints:
    def test_history_order_independent(self, steady_history) -> None:
        assert fingerprint_history(steady_history) == fingerprint_history(list(reversed(steady_history)))

    def test_history_content_sensitive(self, steady_history) -> None:
        changed = steady_history[:-1] + [replace(steady_history[-1], training_stress_score=51.0)]
        assert fingerprint_history(changed) != fingerprint_history(steady_history)

    def test_malformed_count_included(self, steady_history) -> None:
        assert fingerprint_history(steady_history, 1) != fingerprint_history(steady_history, 0)

    def test_string_and_date_forms_agree(self) -> None:
        as_string = [ActivityRecord(date="2026-03-01", training_stress_score=40.0)]
        records = [ActivityRecord(date=date(2026, 3, 1), training_stress_score=40.0)]
        assert fingerprint_history(as_string) == fingerprint_history(records)

    def test_profile_normalized(self) -> None:
        assert fingerprint_profile(ProfileSnapshot(dob="1990-06-15", gender=" Male ")) == fingerprint_profile(
            ProfileSnapshot(dob="1990-06-15T00:00:00", gender="male")
        )
        assert fingerprint_profile(None) == fingerprint_profile(ProfileSnapshot())


class TestPreviewSnapshot:
    def test_token_format(self, ten_k_plan, balanced, steady_context) -> None:
        snapshot = build_preview_snapshot(ten_k_plan, balanced, steady_context, DEFAULT_CALIBRATION)
        assert snapshot.version == 1
        assert TOKEN_PATTERN.match(snapshot.token)

    def test_deterministic(self, ten_k_plan, balanced, steady_context) -> None:
        first = build_preview_snapshot(ten_k_plan, balanced, steady_context, DEFAULT_CALIBRATION)
        second = build_preview_snapshot(ten_k_plan, balanced, steady_context, DEFAULT_CALIBRATION)
        assert first == second

    def test_history_order_does_not_change_token(
        self, ten_k_plan, balanced, steady_history, male_profile, as_of
    ) -> None:
        forward = derive_training_context(male_profile, steady_history, [], as_of)
        backward = derive_training_context(male_profile, list(reversed(steady_history)), [], as_of)
        assert (
            build_preview_snapshot(ten_k_plan, balanced, forward, DEFAULT_CALIBRATION).token
            == build_preview_snapshot(ten_k_plan, balanced, backward, DEFAULT_CALIBRATION).token
        )

    @pytest.mark.parametrize(
        "change",
        ["config", "override", "calibration", "history", "plan"],
    )
    def test_input_changes_change_token(
        self, change, ten_k_plan, half_marathon_plan, balanced, steady_context, history_factory, male_profile, as_of
    ) -> None:
        plan, config, context, calibration, override = ten_k_plan, balanced, steady_context, DEFAULT_CALIBRATION, None
        base = build_preview_snapshot(plan, config, context, calibration, override).token
        if change == "config":
            config = normalize_creation_config(CreationConfig(optimization_profile="sustainable"))
        elif change == "override":
            override = 40.0
        elif change == "calibration":
            calibration = CalibrationConfig(version=2)
        elif change == "history":
            context = derive_training_context(male_profile, history_factory(days=119), [], as_of)
        else:
            plan = half_marathon_plan
        assert build_preview_snapshot(plan, config, context, calibration, override).token != base


class TestVerify:
    def test_matching_token(self, ten_k_plan, balanced, steady_context) -> None:
        snapshot = build_preview_snapshot(ten_k_plan, balanced, steady_context, DEFAULT_CALIBRATION)
        verify_preview_snapshot(snapshot.token, snapshot)
        verify_preview_snapshot(f"  {snapshot.token}\n", snapshot)

    @pytest.mark.parametrize("token", ["", "v1:" + "0" * 64, "v0:abc", "garbage"])
    def test_mismatch_raises(self, token, ten_k_plan, balanced, steady_context) -> None:
        snapshot = build_preview_snapshot(ten_k_plan, balanced, steady_context, DEFAULT_CALIBRATION)
        with pytest.raises(StalePreviewError) as exc:
            verify_preview_snapshot(token, snapshot)
        assert exc.value.code == "stale_preview_snapshot"
        assert exc.value.message == "invalid configuration: refresh preview"
