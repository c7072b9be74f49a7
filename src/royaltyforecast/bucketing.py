from __future__ import annotations

from datetime import date, datetime, timedelta

import pandas as pd

from .config import EngineConfig
from .errors import InvalidRangeError
from .types import GRANULARITIES, Granularity


def _as_date(value: date | str | pd.Timestamp) -> date:
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.date()
    if isinstance(value, str):
        return pd.Timestamp(value).date()
    return value


def month_span(start: date, end: date) -> int:
    """Whole calendar months between ``start`` and ``end`` (day-of-month ignored)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def select_granularity(start: date, end: date, config: EngineConfig | None = None) -> Granularity:
    config = config or EngineConfig()
    span = month_span(_as_date(start), _as_date(end))
    if span <= config.daily_max_months:
        return "day"
    if span <= config.weekly_max_months:
        return "week"
    return "month"


def add_months(start: date, months: int) -> date:
    # DateOffset clamps to month end (Jan 31 + 1 month -> Feb 28/29)
    return (pd.Timestamp(start) + pd.DateOffset(months=months)).date()


def build_buckets(
    start: date,
    end: date,
    granularity: Granularity | None = None,
    config: EngineConfig | None = None,
) -> list[date]:
    """Ordered bucket start dates from ``start`` stepping until past ``end``.

    Monthly steps are computed from ``start`` each time rather than chained,
    so a clamped short month does not drag later buckets off their day.
    """
    start, end = _as_date(start), _as_date(end)
    if start > end:
        raise InvalidRangeError(start, end)
    if granularity is None:
        granularity = select_granularity(start, end, config)
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity '{granularity}'. Known: {list(GRANULARITIES)}")

    if granularity == "day":
        return [ts.date() for ts in pd.date_range(pd.Timestamp(start), pd.Timestamp(end), freq="D")]
    if granularity == "week":
        return [ts.date() for ts in pd.date_range(pd.Timestamp(start), pd.Timestamp(end), freq="7D")]

    starts: list[date] = []
    k = 0
    current = start
    while current <= end:
        starts.append(current)
        k += 1
        current = add_months(start, k)
    return starts


def month_steps(start: date, end: date) -> int:
    return len(build_buckets(start, end, "month"))


def bucket_spans(starts: list[date], end: date) -> list[tuple[date, date]]:
    """Half-open ``[start, next_start)`` spans; the last one closes the day after ``end``."""
    end = _as_date(end)
    bounds = list(starts[1:]) + [end + timedelta(days=1)]
    return list(zip(starts, bounds))
