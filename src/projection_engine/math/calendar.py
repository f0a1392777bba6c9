"""Date helpers: tolerant parsing, ISO weeks and the activity frame."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Iterator

import pandas as pd

from projection_engine.models.context import ActivityRecord
from projection_engine.models.enums import FALLBACK_TSS_PER_HOUR


def parse_date(value: date | str | None) -> date | None:
    """Parse a date or ISO string; return None for anything unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def week_start(day: date) -> date:
    """Monday of the ISO week containing *day*."""
    return day - timedelta(days=day.weekday())


def daterange(start: date, end: date) -> Iterator[date]:
    """Every date from *start* to *end*, inclusive."""
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def calendar_weeks(start: date, end: date) -> list[tuple[date, date]]:
    """ISO weeks covering [start, end], clipped at both ends."""
    weeks = []
    cursor = start
    while cursor <= end:
        sunday = week_start(cursor) + timedelta(days=6)
        weeks.append((cursor, min(sunday, end)))
        cursor = sunday + timedelta(days=1)
    return weeks


def effective_tss(record: ActivityRecord) -> float:
    """Stress score of an activity, estimated from duration when missing."""
    tss = record.training_stress_score
    if tss is not None and tss == tss and tss > 0:
        return float(tss)
    if record.duration_seconds and record.duration_seconds > 0:
        return record.duration_seconds / 3600.0 * FALLBACK_TSS_PER_HOUR
    return 0.0


def activity_frame(records: Iterable[ActivityRecord]) -> tuple[pd.DataFrame, int]:
    """Build a dated frame of activities, dropping malformed dates.

    Returns:
        ``(frame, malformed_count)`` where the frame has columns ``date``
        (datetime64), ``tss`` and ``index`` (position in *records*), sorted
        by date.
    """
    rows = []
    malformed = 0
    for position, record in enumerate(records):
        day = parse_date(record.date)
        if day is None:
            malformed += 1
            continue
        rows.append({"date": pd.Timestamp(day), "tss": effective_tss(record), "index": position})
    frame = pd.DataFrame(rows, columns=["date", "tss", "index"])
    if not frame.empty:
        frame = frame.sort_values(["date", "index"], kind="mergesort").reset_index(drop=True)
    return frame, malformed


def daily_tss_series(frame: pd.DataFrame, start: date, end: date) -> pd.Series:
    """Zero-filled daily TSS totals for every date in [start, end]."""
    index = pd.date_range(pd.Timestamp(start), pd.Timestamp(end), freq="D")
    if frame.empty:
        return pd.Series(0.0, index=index)
    totals = frame.groupby("date")["tss"].sum()
    return totals.reindex(index, fill_value=0.0).astype(float)


def weekly_tss_totals(frame: pd.DataFrame) -> pd.Series:
    """TSS per ISO week (Monday-start), indexed by week start, observed weeks only."""
    if frame.empty:
        return pd.Series(dtype=float)
    weeks = frame["date"].dt.to_period("W-SUN").dt.start_time
    return frame.groupby(weeks)["tss"].sum().sort_index()
