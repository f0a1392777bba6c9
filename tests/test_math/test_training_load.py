"""Tests for the EWMA load model: CTL, ATL, TSB and the closed forms."""

from __future__ import annotations

import pytest

from projection_engine.math.training_load import (
    calculate_atl,
    calculate_balance,
    calculate_ctl,
    calculate_ewma_load,
    constant_load_after_days,
    load_series,
    smoothing_alpha,
    step_load,
    weekly_tss_for_ctl_ramp,
    weekly_tss_to_reach_ctl,
)


class TestSmoothingAlpha:
    def test_standard_constants(self) -> None:
        assert smoothing_alpha(7) == pytest.approx(0.25)
        assert smoothing_alpha(42) == pytest.approx(2 / 43)

    def test_constant_below_one_is_raised(self) -> None:
        assert smoothing_alpha(0.5) == pytest.approx(1.0)
        assert smoothing_alpha(-3) == pytest.approx(1.0)


class TestEwmaLoad:
    def test_no_days_returns_seed(self) -> None:
        assert calculate_ewma_load([], 42, seed=30.0) == 30.0

    def test_single_day_from_zero(self) -> None:
        assert calculate_atl([100.0]) == 25.0

    def test_constant_load_converges(self) -> None:
        assert calculate_ctl([80.0] * 500) == pytest.approx(80.0, abs=0.1)

    def test_invalid_loads_count_as_zero(self) -> None:
        dirty = calculate_atl([-50.0, float("nan"), None, float("inf")], seed=20.0)
        clean = calculate_atl([0.0, 0.0, 0.0, 0.0], seed=20.0)
        assert dirty == clean

    def test_idempotent(self) -> None:
        loads = [30.0, 0.0, 90.0, 45.0, 60.0, 0.0, 120.0]
        assert calculate_ctl(loads, seed=40.0) == calculate_ctl(loads, seed=40.0)
        assert calculate_atl(loads, seed=40.0) == calculate_atl(loads, seed=40.0)

    def test_matches_manual_recurrence(self) -> None:
        loads = [30.0, 0.0, 90.0, 45.0]
        value = 10.0
        for load in loads:
            value = step_load(value, load, 7)
        assert calculate_atl(loads, seed=10.0) == round(value, 1)

    def test_series_has_one_value_per_day(self) -> None:
        series = load_series([50.0] * 10, 42)
        assert len(series) == 10
        assert series == sorted(series)

    def test_fatigue_reacts_faster_than_fitness(self) -> None:
        loads = [100.0] * 7
        assert calculate_atl(loads) > calculate_ctl(loads)


class TestBalance:
    def test_positive_when_fresh(self) -> None:
        assert calculate_balance(60.0, 45.0) == 15.0

    def test_negative_when_fatigued(self) -> None:
        assert calculate_balance(50.0, 72.3) == -22.3


class TestClosedForms:
    def test_constant_load_matches_stepping(self) -> None:
        value = 40.0
        for _ in range(10):
            value = step_load(value, 70.0, 42)
        assert constant_load_after_days(40.0, 70.0, 10, 42) == pytest.approx(value)

    def test_ctl_ramp_cap_returns_upper_when_it_fits(self) -> None:
        assert weekly_tss_for_ctl_ramp(50.0, 5.0, 360.0, 42) == 360.0

    def test_ctl_ramp_cap_bisects(self) -> None:
        capped = weekly_tss_for_ctl_ramp(50.0, 2.0, 1000.0, 42)
        gain = constant_load_after_days(50.0, capped / 7.0, 7, 42) - 50.0
        assert capped < 1000.0
        assert gain <= 2.0 + 1e-9
        assert gain == pytest.approx(2.0, abs=0.01)

    def test_reach_ctl_inverts_closed_form(self) -> None:
        weekly = weekly_tss_to_reach_ctl(50.0, 53.0, 42)
        assert constant_load_after_days(50.0, weekly / 7.0, 7, 42) == pytest.approx(53.0)

    def test_reach_ctl_never_negative(self) -> None:
        assert weekly_tss_to_reach_ctl(80.0, 0.0, 42) == 0.0
