"""Bronze layer: raw CSV exports.

Every raw table is read with all columns as strings and no pandas NA
inference; null tokens are resolved later by the normaliser so that the
same rules apply to every column.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from ecom_core.exceptions import MalformedInput

logger = logging.getLogger(__name__)

# Raw table name -> required columns
RAW_TABLES: dict[str, tuple[str, ...]] = {
    "products": ("product_id", "created_at", "product_name"),
    "orders": (
        "order_id",
        "created_at",
        "website_session_id",
        "user_id",
        "primary_product_id",
        "items_purchased",
        "price_usd",
        "cogs_usd",
    ),
    "order_items": (
        "order_item_id",
        "created_at",
        "order_id",
        "product_id",
        "is_primary_item",
        "price_usd",
        "cogs_usd",
    ),
    "order_item_refunds": (
        "order_item_refund_id",
        "created_at",
        "order_item_id",
        "order_id",
        "refund_amount_usd",
    ),
    "website_sessions": (
        "website_session_id",
        "created_at",
        "user_id",
        "is_repeat_session",
        "utm_source",
        "utm_campaign",
        "utm_content",
        "device_type",
        "http_referer",
    ),
    "website_pageviews": (
        "website_pageview_id",
        "created_at",
        "website_session_id",
        "pageview_url",
    ),
}


def read_raw_table(raw_dir: Path, table: str) -> pd.DataFrame:
    """Read one raw CSV as an all-string frame.

    Args:
        raw_dir: Bronze directory (``<data_root>/a_raw``).
        table: Raw table name, a key of ``RAW_TABLES``.

    Returns:
        DataFrame with exactly the required columns, in declared order.

    Raises:
        MalformedInput: If the file or a required column is missing.

    """
    path = raw_dir / f"{table}.csv"
    if not path.exists():
        raise MalformedInput(table, "*", f"raw file not found: {path}")

    df = pd.read_csv(
        path,
        dtype=str,
        keep_default_na=False,
        encoding="utf-8-sig",
    )
    df.columns = [str(c).strip() for c in df.columns]

    required = RAW_TABLES[table]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise MalformedInput(table, ",".join(missing), "required column missing")

    logger.debug("Read %d raw rows from %s", len(df), path.name)
    return df[list(required)].reset_index(drop=True)


def read_raw_snapshot(raw_dir: Path) -> dict[str, pd.DataFrame]:
    """Read all six raw tables."""
    return {table: read_raw_table(raw_dir, table) for table in RAW_TABLES}
