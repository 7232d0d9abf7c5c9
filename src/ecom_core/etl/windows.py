"""Window calculations over materialised, ordered series.

These are explicit two-pass algorithms: the caller aggregates first, sorts
the buckets, and only then scans them here. Running totals and moving
averages depend on the global order of the whole series, so they must run
after any per-partition aggregation has been merged back together.
"""

from __future__ import annotations

from collections import deque
from decimal import Decimal
from typing import Optional, Sequence

import pandas as pd

from ecom_core.etl.metrics import ZERO, money_column, quantize, safe_ratio


def running_total(values: Sequence[Decimal]) -> list[Decimal]:
    """Cumulative sum with an unbounded preceding frame.

    Examples:
        >>> running_total([Decimal("1.00"), Decimal("2.50")])
        [Decimal('1.00'), Decimal('3.50')]

    """
    out: list[Decimal] = []
    total = ZERO
    for v in values:
        total += v
        out.append(quantize(total))
    return out


def moving_average(
    values: Sequence[Decimal],
    window: int = 3,
    places: int = 2,
) -> list[Decimal]:
    """Trailing moving average over the current bucket and ``window - 1`` before it.

    At the start of the series the average covers only the buckets that
    exist; nothing is padded with zero.

    Examples:
        >>> [str(v) for v in moving_average([Decimal(100), Decimal(200), Decimal(300), Decimal(400)])]
        ['100.00', '150.00', '200.00', '300.00']

    """
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    frame: deque[Decimal] = deque(maxlen=window)
    total = ZERO
    out: list[Decimal] = []
    for v in values:
        if len(frame) == window:
            total -= frame[0]
        frame.append(v)
        total += v
        out.append(quantize(total / Decimal(len(frame)), places))
    return out


def partition_share(
    frame: pd.DataFrame,
    value_col: str,
    partition_cols: Sequence[str],
    *,
    places: int = 2,
) -> pd.Series:
    """Share of each row's value in the total of its partition, in percent.

    First pass sums ``value_col`` per partition key; second pass divides
    each row by its partition total. A partition whose total is not positive
    yields undefined shares.

    Returns:
        Object series of Decimal/None aligned with ``frame``.

    """
    values = money_column(frame, value_col)
    keys = list(zip(*(frame[c] for c in partition_cols)))

    totals: dict[tuple, Decimal] = {}
    for key, v in zip(keys, values):
        totals[key] = totals.get(key, ZERO) + v

    shares: list[Optional[Decimal]] = [
        safe_ratio(v, totals[key], scale=100, places=places) for key, v in zip(keys, values)
    ]
    return pd.Series(shares, index=frame.index, dtype=object)
