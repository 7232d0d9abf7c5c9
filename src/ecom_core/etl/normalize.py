"""Silver layer: typed entity snapshot.

Turns the all-string raw tables into typed frames:

- identifiers -> ``Int64`` (nullable only for optional links)
- timestamps  -> ``datetime64`` parsed with one fixed format
- money       -> ``Decimal`` quantized to cents (object columns)
- sessions    -> classified into channel_group/source/campaign/ad_content

Any malformed value aborts normalisation with ``MalformedInput``. Nothing is
dropped silently: negative money is either rejected or clamped and counted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path

import pandas as pd

from ecom_core.config import PipelineConfig
from ecom_core.etl.attribution import apply_attribution
from ecom_core.etl.cleaning_utils import (
    clean_text_column,
    require_unique,
    to_flag,
    to_money,
    to_timestamp,
    to_unsigned,
)
from ecom_core.etl.metrics import subtract
from ecom_core.etl.writer import write_frame_atomic

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

SNAPSHOT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class Snapshot:
    """Typed entities of one pipeline run.

    Attributes:
        products: product_id, created_at, product_name.
        orders: order_id, created_at, website_session_id, user_id,
            primary_product_id, items_purchased, price_usd, cogs_usd,
            profit_gross.
        order_items: order_item_id, created_at, order_id, product_id,
            is_primary_item, price_usd, cogs_usd.
        order_item_refunds: refund_id, order_item_id, order_id, refund_date,
            refund_amount.
        website_sessions: session_id, user_id, created_at, channel_group,
            source, campaign, ad_content, device_type, is_repeat_session.
        website_pageviews: website_pageview_id, created_at,
            website_session_id, pageview_url.

    """

    products: pd.DataFrame
    orders: pd.DataFrame
    order_items: pd.DataFrame
    order_item_refunds: pd.DataFrame
    website_sessions: pd.DataFrame
    website_pageviews: pd.DataFrame

    def tables(self) -> dict[str, pd.DataFrame]:
        """Return the entity frames keyed by table name, in declared order."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _clean(raw: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame({c: clean_text_column(raw[c]) for c in raw.columns}, index=raw.index)


def _money(
    df: pd.DataFrame,
    table: str,
    column: str,
    config: PipelineConfig,
) -> pd.Series:
    values, clamped = to_money(df[column], table, column, negative=config.negative_money)
    if clamped:
        logger.warning("%s.%s: clamped %d negative amounts to 0.00", table, column, clamped)
    return values


def normalize_products(raw: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    t = "products"
    df = _clean(raw)
    out = pd.DataFrame(
        {
            "product_id": to_unsigned(df["product_id"], t, "product_id"),
            "created_at": to_timestamp(df["created_at"], t, "created_at", config.timestamp_format),
            "product_name": df["product_name"].fillna(UNKNOWN),
        }
    )
    require_unique(out["product_id"], t, "product_id")
    return out


def normalize_orders(raw: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    """Type the orders table and precompute ``profit_gross``."""
    t = "orders"
    df = _clean(raw)
    out = pd.DataFrame(
        {
            "order_id": to_unsigned(df["order_id"], t, "order_id"),
            "created_at": to_timestamp(df["created_at"], t, "created_at", config.timestamp_format),
            "website_session_id": to_unsigned(
                df["website_session_id"], t, "website_session_id", nullable=True
            ),
            "user_id": to_unsigned(df["user_id"], t, "user_id", nullable=True),
            "primary_product_id": to_unsigned(
                df["primary_product_id"], t, "primary_product_id", nullable=True
            ),
            "items_purchased": to_unsigned(df["items_purchased"], t, "items_purchased"),
            "price_usd": _money(df, t, "price_usd", config),
            "cogs_usd": _money(df, t, "cogs_usd", config),
        }
    )
    require_unique(out["order_id"], t, "order_id")
    out["profit_gross"] = subtract(out, "price_usd", "cogs_usd")
    return out


def normalize_order_items(raw: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    t = "order_items"
    df = _clean(raw)
    out = pd.DataFrame(
        {
            "order_item_id": to_unsigned(df["order_item_id"], t, "order_item_id"),
            "created_at": to_timestamp(df["created_at"], t, "created_at", config.timestamp_format),
            "order_id": to_unsigned(df["order_id"], t, "order_id"),
            "product_id": to_unsigned(df["product_id"], t, "product_id"),
            "is_primary_item": to_flag(df["is_primary_item"], t, "is_primary_item", strict=True),
            "price_usd": _money(df, t, "price_usd", config),
            "cogs_usd": _money(df, t, "cogs_usd", config),
        }
    )
    require_unique(out["order_item_id"], t, "order_item_id")
    return out


def normalize_refunds(raw: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    t = "order_item_refunds"
    df = _clean(raw)
    out = pd.DataFrame(
        {
            "refund_id": to_unsigned(df["order_item_refund_id"], t, "order_item_refund_id"),
            "order_item_id": to_unsigned(df["order_item_id"], t, "order_item_id"),
            "order_id": to_unsigned(df["order_id"], t, "order_id"),
            "refund_date": to_timestamp(
                df["created_at"], t, "created_at", config.timestamp_format
            ),
            "refund_amount": _money(df, t, "refund_amount_usd", config),
        }
    )
    require_unique(out["refund_id"], t, "order_item_refund_id")
    return out


def normalize_sessions(raw: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    """Type the sessions table and attach the attribution dimensions.

    The raw utm/referer columns are consumed here and not kept.
    """
    t = "website_sessions"
    df = _clean(raw)
    attribution = apply_attribution(df)
    out = pd.DataFrame(
        {
            "session_id": to_unsigned(df["website_session_id"], t, "website_session_id"),
            "user_id": to_unsigned(df["user_id"], t, "user_id", nullable=True),
            "created_at": to_timestamp(df["created_at"], t, "created_at", config.timestamp_format),
            "channel_group": attribution["channel_group"],
            "source": attribution["source"],
            "campaign": attribution["campaign"],
            "ad_content": attribution["ad_content"],
            "device_type": df["device_type"].fillna(UNKNOWN),
            "is_repeat_session": to_flag(
                df["is_repeat_session"], t, "is_repeat_session", strict=False
            ),
        }
    )
    require_unique(out["session_id"], t, "website_session_id")
    return out


def normalize_pageviews(raw: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    t = "website_pageviews"
    df = _clean(raw)
    out = pd.DataFrame(
        {
            "website_pageview_id": to_unsigned(
                df["website_pageview_id"], t, "website_pageview_id"
            ),
            "created_at": to_timestamp(df["created_at"], t, "created_at", config.timestamp_format),
            "website_session_id": to_unsigned(df["website_session_id"], t, "website_session_id"),
            "pageview_url": df["pageview_url"],
        }
    )
    require_unique(out["website_pageview_id"], t, "website_pageview_id")
    return out


NORMALIZERS = {
    "products": normalize_products,
    "orders": normalize_orders,
    "order_items": normalize_order_items,
    "order_item_refunds": normalize_refunds,
    "website_sessions": normalize_sessions,
    "website_pageviews": normalize_pageviews,
}


def normalize_snapshot(raw: dict[str, pd.DataFrame], config: PipelineConfig) -> Snapshot:
    """Normalise all six raw tables.

    Args:
        raw: Raw frames keyed by table name (see ``ecom_core.etl.raw``).
        config: Pipeline configuration.

    Returns:
        Snapshot of typed entities.

    Raises:
        MalformedInput: On the first table that fails to normalise. No
            partial snapshot is returned.

    """
    typed = {}
    for table, normalizer in NORMALIZERS.items():
        typed[table] = normalizer(raw[table], config)
        logger.info("Normalised %s: %d rows", table, len(typed[table]))
    return Snapshot(**typed)


def write_snapshot(snapshot: Snapshot, clean_dir: Path) -> list[Path]:
    """Write the typed snapshot as one CSV per entity.

    Returns:
        Paths written, in table order.

    """
    clean_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for table, frame in snapshot.tables().items():
        path = clean_dir / f"{table}.csv"
        write_frame_atomic(frame, path, date_format=SNAPSHOT_TIMESTAMP_FORMAT)
        written.append(path)
    logger.info("Wrote clean snapshot to %s", clean_dir)
    return written
