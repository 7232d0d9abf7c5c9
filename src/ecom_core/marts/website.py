"""Website performance marts: conversion funnel, landing pages, billing test."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import pandas as pd

from ecom_core.config import PipelineConfig
from ecom_core.etl.funnel import flag_sessions, landing_pages, step_through_rates
from ecom_core.etl.metrics import money_sum, quantize, safe_ratio
from ecom_core.etl.normalize import Snapshot
from ecom_core.etl.timebuckets import in_day_window
from ecom_core.marts.common import MONTH, empty_mart, order_rows, with_month

logger = logging.getLogger(__name__)

OUTCOME_COLUMNS = [
    "total_sessions",
    "total_orders",
    "total_revenue",
    "conversion_rate_pct",
    "revenue_per_session",
    "avg_order_value",
]

LANDING_COLUMNS = [MONTH, "landing_page", *OUTCOME_COLUMNS]

BILLING_COLUMNS = ["pageview_url", *OUTCOME_COLUMNS, "revenue_per_session_lift"]


def funnel_columns(config: PipelineConfig) -> list[str]:
    stages = config.funnel_stages
    return (
        [MONTH, "total_sessions"]
        + [s.count_column for s in stages]
        + [s.rate_column for s in stages[1:]]
    )


def _outcomes(sessions: int, orders: int, revenue: Decimal) -> dict:
    return {
        "total_sessions": sessions,
        "total_orders": orders,
        "total_revenue": revenue,
        "conversion_rate_pct": safe_ratio(orders, sessions, scale=100),
        "revenue_per_session": safe_ratio(revenue, sessions),
        "avg_order_value": safe_ratio(revenue, orders),
    }


def _with_orders(frame: pd.DataFrame, snapshot: Snapshot) -> pd.DataFrame:
    return frame.merge(
        snapshot.orders[["order_id", "website_session_id", "price_usd"]],
        how="left",
        on="website_session_id",
    )


def build_funnel(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_conversion_funnel``: monthly stage counts and step CTRs.

    Sessions are bucketed by the month of their first pageview.
    """
    stages = config.funnel_stages
    flags = flag_sessions(snapshot.website_pageviews, stages)
    if flags.empty:
        return empty_mart(funnel_columns(config))

    flags = with_month(flags, "session_start_at")
    counts = (
        flags.groupby(MONTH, sort=True)
        .agg(
            total_sessions=("website_session_id", "nunique"),
            **{s.count_column: (s.flag_column, "sum") for s in stages},
        )
        .reset_index()
    )
    mart = step_through_rates(counts, stages)

    logger.info("Built bi_conversion_funnel: %d months", len(mart))
    return order_rows(mart[funnel_columns(config)], [MONTH])


def build_landing_pages(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_landing_page_trends``: outcomes per first-touch landing page."""
    landed = landing_pages(snapshot.website_pageviews, config.entry_urls)
    if landed.empty:
        return empty_mart(LANDING_COLUMNS)

    frame = with_month(_with_orders(landed, snapshot), "landed_at")
    rows = []
    for (month, page), grp in frame.groupby([MONTH, "landing_page"], sort=True):
        rows.append(
            {
                MONTH: month,
                "landing_page": page,
                **_outcomes(
                    int(grp["website_session_id"].nunique()),
                    int(grp["order_id"].nunique()),
                    money_sum(grp["price_usd"]),
                ),
            }
        )

    mart = pd.DataFrame(rows, columns=LANDING_COLUMNS)
    logger.info("Built bi_landing_page_trends: %d rows", len(mart))
    return order_rows(
        mart, [MONTH, "conversion_rate_pct", "landing_page"], [True, False, True]
    )


def _lift(value: Optional[Decimal], control: Optional[Decimal]) -> Optional[Decimal]:
    if value is None or control is None:
        return None
    return quantize(value - control)


def build_billing_test(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_billing_test_results``: raw-rate comparison of billing pages.

    Only pageviews inside the test window count, both end days included in
    full. Each configured variant gets a row, even with no sessions. The
    first configured variant is the control for ``revenue_per_session_lift``.
    """
    pv = snapshot.website_pageviews
    in_test = pv[
        pv["pageview_url"].isin(config.billing_variants)
        & in_day_window(pv["created_at"], config.billing_test_start, config.billing_test_end)
    ]
    seen = in_test[["website_session_id", "pageview_url"]].drop_duplicates()
    frame = _with_orders(seen, snapshot)

    rows = []
    for variant in config.billing_variants:
        grp = frame[frame["pageview_url"] == variant]
        rows.append(
            {
                "pageview_url": variant,
                **_outcomes(
                    int(grp["website_session_id"].nunique()),
                    int(grp["order_id"].nunique()),
                    money_sum(grp["price_usd"]),
                ),
            }
        )

    control = rows[0]["revenue_per_session"]
    for row in rows:
        row["revenue_per_session_lift"] = _lift(row["revenue_per_session"], control)

    mart = pd.DataFrame(rows, columns=BILLING_COLUMNS)
    logger.info(
        "Built bi_billing_test_results: %d variants, %d sessions in window",
        len(mart),
        int(seen["website_session_id"].nunique()),
    )
    return order_rows(mart, ["conversion_rate_pct", "pageview_url"], [False, True])
