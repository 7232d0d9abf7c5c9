"""Fixed-point money arithmetic and NULL-safe ratios.

Money is carried as ``decimal.Decimal`` quantized to cents from the moment
it is parsed. Sums and averages here never go through floating point, so
month-over-month totals do not drift.

A ratio whose denominator is not positive is *undefined*: the helpers return
``None`` (written as an empty cell), never raise and never return 0.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

import pandas as pd

ZERO = Decimal("0.00")

# Marker for a ratio with no valid denominator
UNDEFINED = None


def _is_missing(value: object) -> bool:
    return value is None or value is pd.NA or (isinstance(value, float) and pd.isna(value))


def quantize(value: Decimal, places: int = 2) -> Decimal:
    """Round half away from zero to ``places`` decimals.

    A result that rounds to zero is always positive zero.
    """
    value = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return value.copy_abs() if value.is_zero() else value


def as_decimal(value: object) -> Optional[Decimal]:
    """Convert an int/Decimal (or numpy integer) to Decimal; None stays None."""
    if _is_missing(value):
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(int(value))


def money_sum(values: Iterable[object]) -> Decimal:
    """Sum of the present values, 0.00 when there are none."""
    total = ZERO
    for v in values:
        if not _is_missing(v):
            total += v
    return quantize(total)


def money_mean(values: Iterable[object], places: int = 2) -> Optional[Decimal]:
    """Average of the present values, undefined when there are none."""
    present = [v for v in values if not _is_missing(v)]
    if not present:
        return UNDEFINED
    return quantize(sum(present, ZERO) / Decimal(len(present)), places)


def safe_ratio(
    numerator: object,
    denominator: object,
    *,
    scale: int = 1,
    places: int = 2,
) -> Optional[Decimal]:
    """``numerator / denominator * scale`` rounded, or undefined.

    Args:
        numerator: Count or amount; None propagates as undefined.
        denominator: Count or amount; must be > 0 for a defined result.
        scale: 100 for percentages.
        places: Decimal places of the result.

    Examples:
        >>> safe_ratio(3, 4, scale=100)
        Decimal('75.00')
        >>> safe_ratio(0, 10, scale=100)
        Decimal('0.00')
        >>> safe_ratio(5, 0) is None
        True

    """
    num = as_decimal(numerator)
    den = as_decimal(denominator)
    if num is None or den is None or den <= 0:
        return UNDEFINED
    return quantize(num / den * scale, places)


def ratio_column(
    frame: pd.DataFrame,
    numerator: str,
    denominator: str,
    *,
    scale: int = 1,
    places: int = 2,
) -> pd.Series:
    """Row-wise ``safe_ratio`` over two columns of a frame."""
    values = [
        safe_ratio(n, d, scale=scale, places=places)
        for n, d in zip(frame[numerator], frame[denominator])
    ]
    return pd.Series(values, index=frame.index, dtype=object)


def money_column(frame: pd.DataFrame, column: str) -> pd.Series:
    """Replace missing amounts with 0.00 in an object column of Decimals."""
    return frame[column].map(lambda v: ZERO if _is_missing(v) else v).astype(object)


def subtract(frame: pd.DataFrame, left: str, right: str) -> pd.Series:
    """Row-wise ``left - right`` for two Decimal columns."""
    return pd.Series(
        [quantize(a - b) for a, b in zip(frame[left], frame[right])],
        index=frame.index,
        dtype=object,
    )
