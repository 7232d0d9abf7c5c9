"""Tests for bi_marketing_overview, bi_traffic_trends and bi_sales_seasonality."""

from decimal import Decimal

import pandas as pd

from ecom_core.config import PipelineConfig
from ecom_core.etl.normalize import Snapshot
from ecom_core.marts.marketing import build_marketing, build_seasonality, build_traffic

D = Decimal
MARCH = pd.Timestamp("2012-03-01")
APRIL = pd.Timestamp("2012-04-01")


def test_marketing_overview(snapshot: Snapshot, config: PipelineConfig) -> None:
    mart = build_marketing(snapshot, config)
    assert len(mart) == 4

    paid = mart[(mart["source"] == "gsearch") & (mart["campaign"] == "nonbrand")].iloc[0]
    assert paid["device_type"] == "mobile"
    assert paid["ad_content"] == "g_ad_1"
    assert paid["total_sessions"] == 1
    assert paid["total_orders"] == 1
    assert paid["total_revenue"] == D("99.98")
    assert paid["total_profit"] == D("60.00")
    assert paid["conversion_rate_pct"] == D("100.00")

    organic = mart[mart["campaign"] == "organic_non_paid"]
    march_organic = organic[organic["month_start_date"] == MARCH].iloc[0]
    assert march_organic["ad_content"] == "organic"
    assert march_organic["total_orders"] == 0
    assert march_organic["total_revenue"] == D("0.00")
    assert march_organic["conversion_rate_pct"] == D("0.00")


def test_marketing_excludes_orders_without_session(
    snapshot: Snapshot, config: PipelineConfig
) -> None:
    mart = build_marketing(snapshot, config)
    assert mart["total_orders"].sum() == 2


def test_traffic_trends(snapshot: Snapshot, config: PipelineConfig) -> None:
    mart = build_traffic(snapshot, config).set_index("month_start_date")
    march, april = mart.loc[MARCH], mart.loc[APRIL]

    assert march["paid_google_traffic"] == 1
    assert march["organic_google_traffic"] == 1
    assert march["paid_traffic"] == 1
    assert march["total_sessions"] == 2
    assert march["paid_traffic_share_pct"] == D("50.00")

    assert april["direct_traffic"] == 1
    assert april["paid_bing_traffic"] == 1
    # Direct type-in counts towards the organic share
    assert april["organic_traffic_share_pct"] == D("50.00")


def test_seasonality(snapshot: Snapshot, config: PipelineConfig) -> None:
    mart = build_seasonality(snapshot, config)
    rows = {
        (r.month_start_date, r.source): (r.day_number, r.day_of_week, r.total_orders)
        for r in mart.itertuples()
    }
    assert rows[(MARCH, "gsearch")] == (0, "monday", 1)
    assert rows[(APRIL, "other")] == (0, "monday", 1)
    assert rows[(APRIL, "unknown")] == (1, "tuesday", 1)
    assert mart["avg_order_value"].tolist() == [D("99.98"), D("49.99"), D("49.99")]
