"""Time bucketing shared by every monthly mart.

All marts group by ``month_start`` so the year/month truncation lives in one
place.
"""

from __future__ import annotations

import pandas as pd

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def month_start(timestamps: pd.Series) -> pd.Series:
    """Truncate timestamps to the first instant of their calendar month.

    Examples:
        >>> month_start(pd.Series(pd.to_datetime(["2012-12-31 23:59:59"]))).iloc[0]
        Timestamp('2012-12-01 00:00:00')

    """
    return timestamps.dt.to_period("M").dt.to_timestamp()


def weekday_number(timestamps: pd.Series) -> pd.Series:
    """Day of week with monday = 0."""
    return timestamps.dt.weekday.astype("int64")


def weekday_name(numbers: pd.Series) -> pd.Series:
    """Lower-case weekday name for a ``weekday_number`` column."""
    return numbers.map(lambda n: WEEKDAY_NAMES[int(n)])


def in_day_window(timestamps: pd.Series, start: str, end: str) -> pd.Series:
    """Mask of timestamps between two dates, both days included in full."""
    lower = pd.Timestamp(start)
    upper = pd.Timestamp(end) + pd.Timedelta(days=1)
    return (timestamps >= lower) & (timestamps < upper)
