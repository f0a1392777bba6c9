"""Training load model: EWMA fitness (CTL), fatigue (ATL) and form (TSB).

Both recurrences use ``alpha = 2 / (time_constant + 1)`` and
``next = prev + alpha * (load - prev)``, applied once per day from a seed.

References:
    - Banister et al. (1975): impulse-response model of training
    - Coggan (2003): Performance Manager chart (CTL/ATL/TSB)
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np
import pandas as pd

from projection_engine.models.enums import (
    CTL_RAMP_BISECTION_ITERATIONS,
    DEFAULT_ATL_TIME_CONSTANT,
    DEFAULT_CTL_TIME_CONSTANT,
    MIN_TIME_CONSTANT,
)


def smoothing_alpha(time_constant: float) -> float:
    """EWMA smoothing factor for a time constant, enforcing ``tc >= 1``."""
    tc = max(MIN_TIME_CONSTANT, float(time_constant))
    return 2.0 / (tc + 1.0)


def _clean_loads(daily_loads: Iterable[float | None]) -> list[float]:
    cleaned = []
    for load in daily_loads:
        if load is None:
            cleaned.append(0.0)
            continue
        value = float(load)
        cleaned.append(value if math.isfinite(value) and value > 0 else 0.0)
    return cleaned


def _ewm(daily_loads: Iterable[float | None], time_constant: float, seed: float) -> pd.Series:
    # The seed is prepended so pandas' adjust=False recurrence starts from it
    values = [float(seed)] + _clean_loads(daily_loads)
    series = pd.Series(values, dtype=np.float64)
    return series.ewm(alpha=smoothing_alpha(time_constant), adjust=False).mean().iloc[1:]


def calculate_ewma_load(
    daily_loads: Iterable[float | None],
    time_constant: float,
    seed: float = 0.0,
) -> float:
    """Return the final EWMA load after applying every daily load.

    Args:
        daily_loads: Daily TSS values, oldest first. Negative, missing and
            non-finite values count as zero.
        time_constant: Decay constant in days; values below 1 are raised to 1.
        seed: Load value before the first day.

    Returns:
        Final load rounded to one decimal (the seed if there are no days).

    Reference:
        Banister et al. (1975). A systems model of training for athletic
        performance. Aust J Sports Med 7:57-61.
    """
    series = _ewm(daily_loads, time_constant, seed)
    if series.empty:
        return round(float(seed), 1)
    return round(float(series.iloc[-1]), 1)


def load_series(
    daily_loads: Iterable[float | None],
    time_constant: float,
    seed: float = 0.0,
) -> list[float]:
    """Return the EWMA load after each day, each rounded to one decimal."""
    return [round(float(v), 1) for v in _ewm(daily_loads, time_constant, seed)]


def calculate_ctl(
    daily_loads: Iterable[float | None],
    seed: float = 0.0,
    time_constant: float = DEFAULT_CTL_TIME_CONSTANT,
) -> float:
    """Chronic training load (fitness), 42-day constant by default."""
    return calculate_ewma_load(daily_loads, time_constant, seed)


def calculate_atl(
    daily_loads: Iterable[float | None],
    seed: float = 0.0,
    time_constant: float = DEFAULT_ATL_TIME_CONSTANT,
) -> float:
    """Acute training load (fatigue), 7-day constant by default."""
    return calculate_ewma_load(daily_loads, time_constant, seed)


def calculate_balance(ctl: float, atl: float) -> float:
    """Training stress balance (form): fitness minus fatigue."""
    return round(ctl - atl, 1)


def step_load(previous: float, today_load: float, time_constant: float) -> float:
    """Advance one day of the recurrence without rounding."""
    return previous + smoothing_alpha(time_constant) * (max(0.0, today_load) - previous)


def constant_load_after_days(
    start: float, daily_load: float, days: int, time_constant: float
) -> float:
    """Load after *days* of a constant daily load, in closed form.

    With constant input ``L`` the recurrence converges geometrically:
    ``x_d = L + (x_0 - L) * (1 - alpha) ** d``.
    """
    decay = (1.0 - smoothing_alpha(time_constant)) ** max(0, days)
    load = max(0.0, daily_load)
    return load + (start - load) * decay


def weekly_tss_for_ctl_ramp(
    start_ctl: float,
    max_ctl_gain: float,
    upper_weekly_tss: float,
    time_constant: float,
    days: int = 7,
) -> float:
    """Largest weekly TSS whose CTL gain over the week stays within a cap.

    Bisects over ``[0, upper_weekly_tss]``; the daily load is the weekly TSS
    spread evenly over seven days.

    Args:
        start_ctl: CTL at the start of the week.
        max_ctl_gain: Maximum allowed CTL increase over the week.
        upper_weekly_tss: Upper search bound (e.g. the TSS ramp cap).
        time_constant: Fitness time constant.
        days: Days simulated (shorter for partial weeks).

    Returns:
        The capped weekly TSS; ``upper_weekly_tss`` when it already fits.
    """
    upper = max(0.0, upper_weekly_tss)

    def gain(weekly: float) -> float:
        return constant_load_after_days(start_ctl, weekly / 7.0, days, time_constant) - start_ctl

    if gain(upper) <= max_ctl_gain + 1e-9:
        return upper
    low, high = 0.0, upper
    for _ in range(CTL_RAMP_BISECTION_ITERATIONS):
        mid = (low + high) / 2.0
        if gain(mid) <= max_ctl_gain:
            low = mid
        else:
            high = mid
    return low


def weekly_tss_to_reach_ctl(
    start_ctl: float, target_ctl: float, time_constant: float, days: int = 7
) -> float:
    """Weekly TSS (as a seven-day rate) that moves CTL to *target_ctl* in *days*.

    Inverts the constant-load closed form; never negative.
    """
    decay = (1.0 - smoothing_alpha(time_constant)) ** max(1, days)
    daily = (target_ctl - start_ctl * decay) / (1.0 - decay)
    return max(0.0, daily * 7.0)
