"""Tests for running totals, moving averages and partitioned shares."""

from decimal import Decimal

import pandas as pd
import pytest

from ecom_core.etl.windows import moving_average, partition_share, running_total


def _d(*values: str) -> list[Decimal]:
    return [Decimal(v) for v in values]


def test_running_total() -> None:
    assert running_total(_d("100", "200", "300")) == _d("100.00", "300.00", "600.00")


def test_moving_average_uses_available_buckets_at_start() -> None:
    result = moving_average(_d("100", "200", "300", "400"), window=3)
    assert result == _d("100.00", "150.00", "200.00", "300.00")


def test_moving_average_window_one_is_identity() -> None:
    assert moving_average(_d("1.50", "2.50"), window=1) == _d("1.50", "2.50")


def test_moving_average_rejects_bad_window() -> None:
    with pytest.raises(ValueError):
        moving_average(_d("1"), window=0)


def test_partition_share_is_per_partition() -> None:
    frame = pd.DataFrame(
        {
            "month": ["2012-03", "2012-03", "2012-04"],
            "net_revenue": _d("30.00", "10.00", "5.00"),
        }
    )
    shares = partition_share(frame, "net_revenue", ["month"])
    assert shares.tolist() == _d("75.00", "25.00", "100.00")


def test_partition_share_undefined_for_zero_total() -> None:
    frame = pd.DataFrame({"month": ["m", "m"], "net_revenue": _d("0.00", "0.00")})
    assert partition_share(frame, "net_revenue", ["month"]).tolist() == [None, None]
