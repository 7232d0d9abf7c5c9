"""Tests for mart grain assertions.

Every mart declares the key columns that identify one row. A duplicate key
means a one-to-many child was joined without being aggregated first, so
downstream sums would be inflated.
"""

import pandas as pd
import pytest

from ecom_core.config import PipelineConfig
from ecom_core.etl.normalize import Snapshot
from ecom_core.exceptions import FanOutRisk
from ecom_core.marts import REPORTS
from ecom_core.marts.common import refunds_per_order
from ecom_core.qa import assert_unique_grain


class TestAssertUniqueGrain:
    def test_unique_keys_pass(self) -> None:
        frame = pd.DataFrame({"month": ["2012-03", "2012-04"], "value": [1, 2]})
        assert_unique_grain(frame, ["month"], "demo")

    def test_duplicate_keys_raise(self) -> None:
        frame = pd.DataFrame({"month": ["2012-03", "2012-03"], "value": [1, 2]})
        with pytest.raises(FanOutRisk, match="demo: 2 rows share a grain key"):
            assert_unique_grain(frame, ["month"], "demo")

    def test_missing_grain_column_raises(self) -> None:
        with pytest.raises(FanOutRisk, match="grain columns missing"):
            assert_unique_grain(pd.DataFrame({"a": [1]}), ["month"], "demo")


class TestRefundFanOut:
    """Joining raw refunds to orders repeats an order once per refunded item."""

    def test_raw_join_breaks_order_grain(self, snapshot: Snapshot) -> None:
        joined = snapshot.orders.merge(snapshot.order_item_refunds, on="order_id", how="left")
        with pytest.raises(FanOutRisk):
            assert_unique_grain(joined, ["order_id"], "orders_x_refunds")

    def test_pre_aggregated_join_keeps_order_grain(self, snapshot: Snapshot) -> None:
        joined = snapshot.orders.merge(
            refunds_per_order(snapshot.order_item_refunds), on="order_id", how="left"
        )
        assert_unique_grain(joined, ["order_id"], "orders_x_refunds")
        assert len(joined) == len(snapshot.orders)


@pytest.mark.parametrize("name", sorted(REPORTS))
def test_every_mart_respects_its_grain(
    name: str, snapshot: Snapshot, config: PipelineConfig
) -> None:
    report = REPORTS[name]
    mart = report.build(snapshot, config)
    assert_unique_grain(mart, report.grain, report.mart)
