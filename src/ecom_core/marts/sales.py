"""Financial marts: monthly sales, customer retention and product mix.

All three are monthly. Refunds are collapsed before any join (per order for
the sales and customer marts, per order item for the product mart) so that
an order with several refunded items is neither double-subtracted nor
double-counted.
"""

from __future__ import annotations

import logging

import pandas as pd

from ecom_core.config import PipelineConfig
from ecom_core.etl.metrics import (
    ZERO,
    money_mean,
    money_sum,
    quantize,
    ratio_column,
    safe_ratio,
)
from ecom_core.etl.normalize import Snapshot
from ecom_core.etl.timebuckets import month_start
from ecom_core.etl.windows import moving_average, partition_share, running_total
from ecom_core.marts.common import (
    MONTH,
    UNKNOWN,
    empty_mart,
    order_rows,
    refunds_per_item,
    refunds_per_order,
    with_month,
)

logger = logging.getLogger(__name__)

SALES_COLUMNS = [
    MONTH,
    "total_sessions",
    "total_orders",
    "refunds_num",
    "gross_revenue",
    "total_refunds",
    "net_revenue",
    "gross_profit",
    "net_profit",
    "conversion_rate",
    "revenue_per_session",
    "avg_order_value_gross",
    "refund_rate_pct",
    "net_margin_pct",
    "cumulative_net_revenue",
    "net_rev_3m_moving_avg",
]

CUSTOMER_COLUMNS = [
    MONTH,
    "new_orders",
    "repeat_orders",
    "unknown_orders",
    "new_revenue",
    "repeat_revenue",
    "avg_order_value_new",
    "avg_order_value_repeat",
    "repeat_revenue_share_pct",
]

PRODUCT_COLUMNS = [
    MONTH,
    "product_name",
    "total_orders",
    "gross_revenue",
    "refunds_num",
    "total_refunds",
    "net_revenue",
    "net_profit",
    "refund_rate_pct",
    "net_revenue_share_pct",
    "net_profit_share_pct",
]


def _mean_or_zero(values: pd.Series):
    mean = money_mean(values)
    return ZERO if mean is None else mean


def _order_buckets(snapshot: Snapshot) -> pd.DataFrame:
    """Orders with their refund total and the month they are reported in.

    An order is reported in the month of its session. Orders whose session is
    missing (no link, or a dangling link) fall back to their own month.
    """
    sessions = snapshot.website_sessions[["session_id", "created_at"]].rename(
        columns={"created_at": "session_created_at"}
    )
    orders = snapshot.orders.merge(
        sessions, how="left", left_on="website_session_id", right_on="session_id"
    )
    orders = orders.merge(refunds_per_order(snapshot.order_item_refunds), how="left", on="order_id")
    bucket_time = orders["session_created_at"].where(
        orders["session_created_at"].notna(), orders["created_at"]
    )
    orders[MONTH] = month_start(bucket_time)
    return orders


def build_sales(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_sales``: monthly growth and profitability KPIs.

    Sessions and orders are combined as a full outer join on the month
    bucket, so months with traffic and no orders and orders with no session
    both appear.

    Returns:
        One row per month, ordered by month, with running total and trailing
        moving average of net revenue.

    """
    sessions = with_month(snapshot.website_sessions, "created_at")
    orders = _order_buckets(snapshot)

    session_counts = sessions.groupby(MONTH)["session_id"].nunique()
    months = sorted(set(session_counts.index) | set(orders[MONTH]))
    if not months:
        return empty_mart(SALES_COLUMNS)

    by_month = dict(tuple(orders.groupby(MONTH, sort=True)))
    rows = []
    for month in months:
        grp = by_month.get(month, orders.iloc[0:0])
        refunded = grp[grp["refund_amt"].notna()]
        gross_revenue = money_sum(grp["price_usd"])
        gross_profit = money_sum(grp["profit_gross"])
        total_refunds = money_sum(grp["refund_amt"])
        rows.append(
            {
                MONTH: month,
                "total_sessions": int(session_counts.get(month, 0)),
                "total_orders": int(grp["order_id"].nunique()),
                "refunds_num": int(refunded["order_id"].nunique()),
                "gross_revenue": gross_revenue,
                "total_refunds": total_refunds,
                "net_revenue": quantize(gross_revenue - total_refunds),
                "gross_profit": gross_profit,
                "net_profit": quantize(gross_profit - total_refunds),
            }
        )

    mart = pd.DataFrame(rows)
    mart["conversion_rate"] = ratio_column(mart, "total_orders", "total_sessions", scale=100)
    mart["revenue_per_session"] = ratio_column(mart, "net_revenue", "total_sessions")
    mart["avg_order_value_gross"] = ratio_column(mart, "gross_revenue", "total_orders")
    mart["refund_rate_pct"] = ratio_column(mart, "total_refunds", "gross_revenue", scale=100)
    mart["net_margin_pct"] = ratio_column(mart, "net_profit", "net_revenue", scale=100)

    # Windows run over the fully merged, month-ordered series
    mart = order_rows(mart, [MONTH])
    net = list(mart["net_revenue"])
    mart["cumulative_net_revenue"] = running_total(net)
    mart["net_rev_3m_moving_avg"] = moving_average(net, window=config.moving_average_window)

    logger.info("Built bi_sales: %d months", len(mart))
    return mart[SALES_COLUMNS]


def build_customers(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_sales_customers``: new vs. repeat orders per order month.

    Orders whose session cannot be found are counted as ``unknown_orders``
    and contribute only to the total revenue behind the repeat share.
    """
    sessions = snapshot.website_sessions[["session_id", "is_repeat_session"]]
    orders = snapshot.orders.merge(
        sessions, how="left", left_on="website_session_id", right_on="session_id"
    )
    orders = with_month(orders, "created_at")
    if orders.empty:
        return empty_mart(CUSTOMER_COLUMNS)

    rows = []
    for month, grp in orders.groupby(MONTH, sort=True):
        new = grp[grp["is_repeat_session"] == 0]
        repeat = grp[grp["is_repeat_session"] == 1]
        unknown = grp[grp["is_repeat_session"].isna()]
        repeat_revenue = money_sum(repeat["price_usd"])
        rows.append(
            {
                MONTH: month,
                "new_orders": int(new["order_id"].nunique()),
                "repeat_orders": int(repeat["order_id"].nunique()),
                "unknown_orders": int(unknown["order_id"].nunique()),
                "new_revenue": money_sum(new["price_usd"]),
                "repeat_revenue": repeat_revenue,
                "avg_order_value_new": _mean_or_zero(new["price_usd"]),
                "avg_order_value_repeat": _mean_or_zero(repeat["price_usd"]),
                "repeat_revenue_share_pct": safe_ratio(
                    repeat_revenue, money_sum(grp["price_usd"]), scale=100, places=1
                ),
            }
        )

    mart = pd.DataFrame(rows, columns=CUSTOMER_COLUMNS)
    logger.info("Built bi_sales_customers: %d months", len(mart))
    return order_rows(mart, [MONTH])


def build_products(snapshot: Snapshot, config: PipelineConfig) -> pd.DataFrame:
    """Build ``bi_sales_products``: net contribution and refund rate per product.

    Refunds are joined per order item. Net profit treats cost of goods as
    unrecoverable: ``sum(price - cogs) - refunds``. Shares are computed
    within each month.
    """
    items = snapshot.order_items.merge(
        refunds_per_item(snapshot.order_item_refunds), how="left", on="order_item_id"
    )
    items = items.merge(
        snapshot.products[["product_id", "product_name"]], how="left", on="product_id"
    )
    items["product_name"] = items["product_name"].fillna(UNKNOWN)
    items = with_month(items, "created_at")
    if items.empty:
        return empty_mart(PRODUCT_COLUMNS)

    rows = []
    for (month, product), grp in items.groupby([MONTH, "product_name"], sort=True):
        refunded = grp[grp["item_refund_amt"].notna()]
        gross_revenue = money_sum(grp["price_usd"])
        total_refunds = money_sum(grp["item_refund_amt"])
        item_profit = money_sum(grp["price_usd"]) - money_sum(grp["cogs_usd"])
        net_revenue = quantize(gross_revenue - total_refunds)
        rows.append(
            {
                MONTH: month,
                "product_name": product,
                "total_orders": int(grp["order_id"].nunique()),
                "gross_revenue": gross_revenue,
                "refunds_num": int(refunded["order_id"].nunique()),
                "total_refunds": total_refunds,
                "net_revenue": net_revenue,
                "net_profit": quantize(item_profit - total_refunds),
                "refund_rate_pct": safe_ratio(total_refunds, gross_revenue, scale=100),
            }
        )

    mart = pd.DataFrame(rows)
    mart["net_revenue_share_pct"] = partition_share(mart, "net_revenue", [MONTH])
    mart["net_profit_share_pct"] = partition_share(mart, "net_profit", [MONTH])

    mart = order_rows(mart, [MONTH, "net_revenue", "product_name"], [True, False, True])
    logger.info("Built bi_sales_products: %d rows", len(mart))
    return mart[PRODUCT_COLUMNS]

