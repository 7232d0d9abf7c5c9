"""Shared fixtures: a small raw export that can be checked by hand.

Sessions (2012):
    1  Mar 19  gsearch paid, mobile, new      -> order 1 (2 items, both refunded)
    2  Mar 19  organic google, desktop, new   -> no order
    3  Apr 02  direct type-in, desktop, repeat -> order 2
    4  Apr 05  bsearch paid, desktop, new      -> no order
Order 3 (Apr 10) has no session link.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd
import pytest

from ecom_core.config import DataPaths, PipelineConfig
from ecom_core.etl.normalize import Snapshot, normalize_snapshot
from ecom_core.etl.raw import RAW_TABLES

RAW_ROWS: dict[str, list[tuple]] = {
    "products": [
        ("1", "2012-03-19 08:00:00", "The Original Mr. Fuzzy"),
        ("2", "2012-01-06 13:00:00", "The Forever Love Bear"),
    ],
    "website_sessions": [
        ("1", "2012-03-19 08:04:16", "1", "0", "gsearch", "nonbrand", "g_ad_1", "mobile",
         "https://www.gsearch.com"),
        ("2", "2012-03-19 09:00:00", "2", "0", "NULL", "NULL", "NULL", "desktop",
         "https://www.gsearch.com"),
        ("3", "2012-04-02 10:00:00", "1", "1", "", "", "", "desktop", ""),
        ("4", "2012-04-05 11:00:00", "3", "0", "bsearch", "brand", "b_ad_2", "desktop",
         "https://www.bsearch.com"),
    ],
    "website_pageviews": [
        ("1", "2012-03-19 08:04:16", "1", "/lander-1"),
        ("2", "2012-03-19 08:05:00", "1", "/products"),
        ("3", "2012-03-19 08:06:00", "1", "/the-original-mr-fuzzy"),
        ("4", "2012-03-19 08:07:00", "1", "/cart"),
        ("5", "2012-03-19 08:08:00", "1", "/shipping"),
        ("6", "2012-03-19 08:09:00", "1", "/billing"),
        ("7", "2012-03-19 08:10:00", "1", "/thank-you-for-your-order"),
        ("8", "2012-03-19 09:00:00", "2", "/home"),
        ("9", "2012-03-19 09:01:00", "2", "/products"),
        ("10", "2012-04-02 10:00:00", "3", "/home"),
        ("11", "2012-04-05 11:00:00", "4", "/products"),
    ],
    "orders": [
        ("1", "2012-03-19 08:10:00", "1", "1", "1", "2", "99.98", "39.98"),
        ("2", "2012-04-02 10:30:00", "3", "1", "1", "1", "49.99", "19.49"),
        ("3", "2012-04-10 12:00:00", "", "9", "1", "1", "49.99", "19.49"),
    ],
    "order_items": [
        ("1", "2012-03-19 08:10:00", "1", "1", "1", "49.99", "19.49"),
        ("2", "2012-03-19 08:10:00", "1", "2", "0", "49.99", "20.49"),
        ("3", "2012-04-02 10:30:00", "2", "1", "1", "49.99", "19.49"),
        ("4", "2012-04-10 12:00:00", "3", "1", "1", "49.99", "19.49"),
    ],
    "order_item_refunds": [
        ("1", "2012-03-25 10:00:00", "1", "1", "49.99"),
        ("2", "2012-03-25 10:00:00", "2", "1", "10.00"),
    ],
}


def raw_frame(table: str, rows: Sequence[tuple] = ()) -> pd.DataFrame:
    """All-string raw frame with the table's required columns."""
    return pd.DataFrame(list(rows), columns=list(RAW_TABLES[table]), dtype=object)


def make_raw(**tables: Sequence[tuple]) -> dict[str, pd.DataFrame]:
    """Raw snapshot with the given tables; every other table is empty."""
    return {table: raw_frame(table, tables.get(table, ())) for table in RAW_TABLES}


def make_snapshot(config: PipelineConfig | None = None, **tables: Sequence[tuple]) -> Snapshot:
    return normalize_snapshot(make_raw(**tables), config or PipelineConfig())


def write_raw(raw_dir: Path, raw: dict[str, pd.DataFrame]) -> None:
    raw_dir.mkdir(parents=True, exist_ok=True)
    for table, frame in raw.items():
        frame.to_csv(raw_dir / f"{table}.csv", index=False, lineterminator="\n")


@pytest.fixture
def raw_tables() -> dict[str, pd.DataFrame]:
    return make_raw(**RAW_ROWS)


@pytest.fixture
def snapshot(raw_tables: dict[str, pd.DataFrame]) -> Snapshot:
    return normalize_snapshot(raw_tables, PipelineConfig())


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig()


@pytest.fixture
def data_paths(tmp_path: Path, raw_tables: dict[str, pd.DataFrame]) -> DataPaths:
    """DataPaths rooted in a temp dir with the sample raw export in a_raw/."""
    paths = DataPaths.from_root(tmp_path / "data")
    write_raw(paths.raw, raw_tables)
    return paths
