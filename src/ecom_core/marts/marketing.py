"""Marketing marts: channel performance, traffic mix and seasonality.

Marketing figures use gross revenue: channels are judged on the sales they
generate, refunds belong to product quality and logistics.
"""

from __future__ import annotations

import logging

import pandas as pd

from ecom_core.config import PipelineConfig
from ecom_core.etl.attribution import DIRECT_TYPE_IN, OTHER, ORGANIC_CHANNELS, PAID_CHANNELS
from ecom_core.etl.metrics import money_mean, money_sum, ratio_column, safe_ratio
from ecom_core.etl.normalize import Snapshot
from ecom_core.etl.timebuckets import weekday_name, weekday_number
from ecom_core.marts.common import MONTH, UNKNOWN, empty_mart, order_rows, with_month

logger = logging.getLogger(__name__)

MARKETING_DIMENSIONS = ["source", "campaign", "ad_content", "device_type"]

MARKETING_COLUMNS = [
    MONTH,
    *MARKETING_DIMENSIONS,
    "total_sessions",
    "total_orders",
    "total_revenue",
    "total_profit",
    "conversion_rate_pct",
    "revenue_per_session",
]

# Traffic column -> channel groups it counts
TRAFFIC_BUCKETS: dict[str, tuple[str, ...]] = {
    "paid_google_traffic": ("paid_search_google",),
    "paid_bing_traffic": ("paid_search_bing",),
    "paid_socialbook_traffic": ("paid_search_socialbook",),
    "paid_traffic": PAID_CHANNELS,
    "organic_google_traffic": ("organic_search_google",),
    "organic_bing_traffic": ("organic_search_bing",),
    "organic_socialbook_traffic": ("organic_search_socialbook",),
    "organic_traffic": ORGANIC_CHANNELS,
    "direct_traffic": (DIRECT_TYPE_IN,),
    "other_traffic": (OTHER,),
}

TRAFFIC_COLUMNS = [
    MONTH,
    *TRAFFIC_BUCKETS,
    "total_sessions",
    "paid_traffic_share_pct",
    "organic_traffic_share_pct",
]

SEASONALITY_COLUMNS = [
    MONTH,
    "source",
    "day_number",
    "day_of_week",
    "total_orders",
    "avg_order_value",
]


def build_marketing(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_marketing_overview``.

    Sessions left-joined to their orders, grouped by month, source, campaign,
    ad content and device type.
    """
    frame = snapshot.website_sessions.merge(
        snapshot.orders[["order_id", "website_session_id", "price_usd", "profit_gross"]],
        how="left",
        left_on="session_id",
        right_on="website_session_id",
    )
    frame = with_month(frame, "created_at")
    if frame.empty:
        return empty_mart(MARKETING_COLUMNS)

    mart = (
        frame.groupby([MONTH, *MARKETING_DIMENSIONS], sort=True)
        .agg(
            total_sessions=("session_id", "nunique"),
            total_orders=("order_id", "nunique"),
            total_revenue=("price_usd", money_sum),
            total_profit=("profit_gross", money_sum),
        )
        .reset_index()
    )
    mart["conversion_rate_pct"] = ratio_column(mart, "total_orders", "total_sessions", scale=100)
    mart["revenue_per_session"] = ratio_column(mart, "total_revenue", "total_sessions")

    logger.info("Built bi_marketing_overview: %d rows", len(mart))
    return order_rows(mart[MARKETING_COLUMNS], [MONTH, *MARKETING_DIMENSIONS])


def build_traffic(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_traffic_trends``: monthly sessions per channel bucket.

    The organic share counts direct type-in traffic together with organic
    search, since neither is paid for.
    """
    sessions = with_month(snapshot.website_sessions, "created_at")
    if sessions.empty:
        return empty_mart(TRAFFIC_COLUMNS)

    rows = []
    for month, grp in sessions.groupby(MONTH, sort=True):
        row = {MONTH: month}
        for column, channels in TRAFFIC_BUCKETS.items():
            row[column] = int(grp.loc[grp["channel_group"].isin(channels), "session_id"].nunique())
        total = int(grp["session_id"].nunique())
        row["total_sessions"] = total
        row["paid_traffic_share_pct"] = safe_ratio(row["paid_traffic"], total, scale=100)
        row["organic_traffic_share_pct"] = safe_ratio(
            row["organic_traffic"] + row["direct_traffic"], total, scale=100
        )
        rows.append(row)

    mart = pd.DataFrame(rows, columns=TRAFFIC_COLUMNS)
    logger.info("Built bi_traffic_trends: %d months", len(mart))
    return mart


def build_seasonality(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_sales_seasonality``: orders by weekday, source and month.

    ``day_number`` is 0 for monday. Orders without a known session are
    reported under source ``unknown``.
    """
    orders = snapshot.orders.merge(
        snapshot.website_sessions[["session_id", "source"]],
        how="left",
        left_on="website_session_id",
        right_on="session_id",
    )
    orders["source"] = orders["source"].fillna(UNKNOWN)
    orders = with_month(orders, "created_at")
    if orders.empty:
        return empty_mart(SEASONALITY_COLUMNS)

    orders["day_number"] = weekday_number(orders["created_at"])
    mart = (
        orders.groupby([MONTH, "source", "day_number"], sort=True)
        .agg(
            total_orders=("order_id", "nunique"),
            avg_order_value=("price_usd", money_mean),
        )
        .reset_index()
    )
    mart["day_of_week"] = weekday_name(mart["day_number"])

    logger.info("Built bi_sales_seasonality: %d rows", len(mart))
    return order_rows(mart[SEASONALITY_COLUMNS], [MONTH, "day_number", "source"])
