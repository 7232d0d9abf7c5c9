"""Building blocks shared by the mart builders."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from ecom_core.etl.metrics import money_sum
from ecom_core.etl.timebuckets import month_start

MONTH = "month_start_date"
UNKNOWN = "unknown"


def with_month(frame: pd.DataFrame, time_column: str) -> pd.DataFrame:
    """Copy of ``frame`` with a ``month_start_date`` bucket column."""
    out = frame.copy()
    out[MONTH] = month_start(out[time_column])
    return out


def refunds_per_order(refunds: pd.DataFrame) -> pd.DataFrame:
    """Collapse refunds to one row per order.

    Joining raw refund rows to orders multiplies an order once per refunded
    item; this frame is safe to join on ``order_id``.

    Returns:
        DataFrame with order_id and refund_amt.

    """
    if refunds.empty:
        return pd.DataFrame(
            {"order_id": pd.Series(dtype="Int64"), "refund_amt": pd.Series(dtype=object)}
        )
    return (
        refunds.groupby("order_id", sort=True)
        .agg(refund_amt=("refund_amount", money_sum))
        .reset_index()
    )


def refunds_per_item(refunds: pd.DataFrame) -> pd.DataFrame:
    """Collapse refunds to one row per order item.

    Returns:
        DataFrame with order_item_id and item_refund_amt.

    """
    if refunds.empty:
        return pd.DataFrame(
            {
                "order_item_id": pd.Series(dtype="Int64"),
                "item_refund_amt": pd.Series(dtype=object),
            }
        )
    return (
        refunds.groupby("order_item_id", sort=True)
        .agg(item_refund_amt=("refund_amount", money_sum))
        .reset_index()
    )


def empty_mart(columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=object) for c in columns})


def order_rows(
    frame: pd.DataFrame,
    by: Sequence[str],
    ascending: Sequence[bool] | bool = True,
) -> pd.DataFrame:
    """Sort into the mart's total row order and renumber the index."""
    if frame.empty:
        return frame.reset_index(drop=True)
    return frame.sort_values(list(by), ascending=ascending, kind="mergesort").reset_index(
        drop=True
    )
