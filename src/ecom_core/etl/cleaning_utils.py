"""Shared utilities for coercing raw string columns into typed columns.

This module provides the low-level parsing used by the schema normaliser:

- Text normalization: strip invisible characters, map null tokens to None
- Identifier parsing: unsigned integers, nullable or required
- Money parsing: fixed-point ``Decimal`` quantized to cents
- Timestamp parsing: one fixed strptime format per run

Every parser works on a whole column and raises ``MalformedInput`` with the
offending row positions, so a bad batch is reported once, not row by row.

Examples:
    >>> from ecom_core.etl.cleaning_utils import to_decimal, strip_invisibles
    >>> to_decimal("49.99")
    Decimal('49.99')
    >>> strip_invisibles("  gsearch  ")
    'gsearch'
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import numpy as np
import pandas as pd

from ecom_core.exceptions import MalformedInput

# Unicode characters that should be stripped from text
NBSP = "\u00a0"  # Non-breaking space
NNBSP = "\u202f"  # Narrow non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))  # Zero-width characters

# Raw exports spell "no value" in several ways
NULL_TOKENS = frozenset({"", "null", "none", "nan", "\\n"})

CENT = Decimal("0.01")

# How many offending values to quote in an error message
_SAMPLE_SIZE = 5

_UNSIGNED_RE = re.compile(r"^\d+$")

# Largest identifier that fits the Int64 columns of the snapshot
MAX_IDENTIFIER = 2**63 - 1


def strip_invisibles(x: Any) -> Optional[str]:
    """Remove invisible and problematic whitespace characters from text.

    Strips carriage returns, tabs, non-breaking and zero-width characters,
    then collapses runs of whitespace.

    Examples:
        >>> strip_invisibles("  Hello World  ")
        'Hello World'
        >>> strip_invisibles(None)

    """
    if x is None or x is pd.NA or (isinstance(x, float) and pd.isna(x)):
        return None
    s = str(x)
    s = s.replace("\r", "").replace("\t", " ").replace(NBSP, " ").replace(NNBSP, " ")
    s = re.sub(r"[%s]" % re.escape(ZW), "", s)  # zero-width
    s = re.sub(r"\s+", " ", s).strip()
    return s


def clean_text(x: Any) -> Optional[str]:
    """Strip invisibles and map null tokens (``""``, ``NULL``, ``\\N``...) to None.

    Examples:
        >>> clean_text("NULL")
        >>> clean_text(" /home ")
        '/home'

    """
    s = strip_invisibles(x)
    if s is None or s.lower() in NULL_TOKENS:
        return None
    return s


def clean_text_column(series: pd.Series) -> pd.Series:
    """Apply ``clean_text`` to every value, returning an object column.

    Absent values are always ``None``, never a float ``nan``.
    """
    return pd.Series([clean_text(v) for v in series], index=series.index, dtype=object)


def _sample(series: pd.Series, mask: pd.Series) -> tuple[list[int], list[object]]:
    bad = series[mask].head(_SAMPLE_SIZE)
    return [int(i) for i in bad.index], list(bad.values)


def to_unsigned(
    series: pd.Series,
    table: str,
    column: str,
    *,
    nullable: bool = False,
) -> pd.Series:
    """Parse a text column of unsigned integers.

    Args:
        series: Raw column (already passed through ``clean_text_column``).
        table: Table name, for error messages.
        column: Column name, for error messages.
        nullable: If False, a missing value is an error.

    Returns:
        ``Int64`` column (nullable integer dtype).

    Raises:
        MalformedInput: If a present value is not a non-negative integer or
            exceeds ``MAX_IDENTIFIER``, or a required value is missing.

    """
    present = series.notna()
    if not nullable and (~present).any():
        rows, values = _sample(series, ~present)
        raise MalformedInput(table, column, "required value is missing", rows, values)

    bad = present & ~series.map(lambda s: bool(_UNSIGNED_RE.match(str(s)))).astype(bool)
    if bad.any():
        rows, values = _sample(series, bad)
        raise MalformedInput(table, column, "not an unsigned integer", rows, values)

    too_large = present & series.map(
        lambda s: not pd.isna(s) and int(s) > MAX_IDENTIFIER
    ).astype(bool)
    if too_large.any():
        rows, values = _sample(series, too_large)
        raise MalformedInput(table, column, "identifier out of range", rows, values)

    return series.map(lambda s: pd.NA if pd.isna(s) else int(s)).astype("Int64")


def to_decimal(x: Any) -> Optional[Decimal]:
    """Parse a single money value into a cent-quantized ``Decimal``.

    Rounds half away from zero, like a ``DECIMAL(10,2)`` cast.

    Returns:
        Decimal, or None if the value is missing or unparseable.

    Examples:
        >>> to_decimal("19.995")
        Decimal('20.00')
        >>> to_decimal("abc")

    """
    s = clean_text(x)
    if s is None:
        return None
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    value = value.quantize(CENT, rounding=ROUND_HALF_UP)
    return value.copy_abs() if value.is_zero() else value


def to_money(
    series: pd.Series,
    table: str,
    column: str,
    *,
    negative: str = "reject",
) -> tuple[pd.Series, int]:
    """Parse a required money column.

    Args:
        series: Raw column.
        table: Table name, for error messages.
        column: Column name, for error messages.
        negative: "reject" raises on negative amounts, "clamp" replaces them
            with 0.00.

    Returns:
        Tuple of (object column of ``Decimal``, number of clamped values).

    Raises:
        MalformedInput: On missing/unparseable values, or negative values
            under the "reject" policy.

    """
    parsed = series.map(to_decimal).astype(object)
    missing = parsed.isna()
    if missing.any():
        rows, values = _sample(series, missing)
        raise MalformedInput(table, column, "not a decimal amount", rows, values)

    is_negative = parsed.map(lambda d: d < 0).astype(bool)
    clamped = int(is_negative.sum())
    if clamped:
        if negative == "reject":
            rows, values = _sample(series, is_negative)
            raise MalformedInput(table, column, "negative amount", rows, values)
        parsed = parsed.where(~is_negative, Decimal("0.00"))
    return parsed, clamped


def to_timestamp(
    series: pd.Series,
    table: str,
    column: str,
    fmt: str,
) -> pd.Series:
    """Parse a required timestamp column with one fixed format.

    Raises:
        MalformedInput: If a value is missing or does not match ``fmt``.

    """
    present = series.notna()
    if (~present).any():
        rows, values = _sample(series, ~present)
        raise MalformedInput(table, column, "required timestamp is missing", rows, values)

    parsed = pd.to_datetime(series, format=fmt, errors="coerce")
    bad = parsed.isna()
    if bad.any():
        rows, values = _sample(series, bad)
        raise MalformedInput(table, column, f"does not match format {fmt!r}", rows, values)
    return parsed


def to_flag(series: pd.Series, table: str, column: str, *, strict: bool) -> pd.Series:
    """Parse a 0/1 flag column into ``int64``.

    With ``strict=False`` only the literal "1" is true and everything else,
    including missing values, is 0. With ``strict=True`` the value must be
    exactly "0" or "1".

    """
    if not strict:
        return pd.Series(np.where(series == "1", 1, 0), index=series.index, dtype="int64")

    valid = series.isin(["0", "1"])
    if not valid.all():
        rows, values = _sample(series, ~valid)
        raise MalformedInput(table, column, "flag must be 0 or 1", rows, values)
    return series.map(int).astype("int64")


def require_unique(series: pd.Series, table: str, column: str) -> None:
    """Raise ``MalformedInput`` if a key column has duplicates."""
    dupes = series.duplicated(keep=False)
    if dupes.any():
        rows, values = _sample(series, dupes)
        raise MalformedInput(table, column, "duplicate primary key", rows, values)
