"""Snapshot quality checks.

These checks never modify data. Referential gaps are reported (and only
raised in strict mode); duplicate grain keys in a mart are always an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NamedTuple, Sequence

import pandas as pd

from ecom_core.etl.normalize import Snapshot
from ecom_core.exceptions import FanOutRisk, ReferentialGap

logger = logging.getLogger(__name__)


class Relationship(NamedTuple):
    """A child -> parent link checked for orphans."""

    name: str
    child: str
    child_key: str
    parent: str
    parent_key: str


RELATIONSHIPS: tuple[Relationship, ...] = (
    Relationship("order->session", "orders", "website_session_id", "website_sessions", "session_id"),
    Relationship("order_item->order", "order_items", "order_id", "orders", "order_id"),
    Relationship("order_item->product", "order_items", "product_id", "products", "product_id"),
    Relationship(
        "refund->order_item", "order_item_refunds", "order_item_id", "order_items", "order_item_id"
    ),
    Relationship("refund->order", "order_item_refunds", "order_id", "orders", "order_id"),
    Relationship(
        "pageview->session", "website_pageviews", "website_session_id", "website_sessions", "session_id"
    ),
)


@dataclass
class SnapshotQAResult:
    """Result of the snapshot QA checks.

    Attributes:
        summary: Row count per entity and orphan count per relationship.
        gaps: Orphan child rows per relationship name (empty frames when clean).
    """

    summary: dict
    gaps: dict[str, pd.DataFrame]

    @property
    def has_gaps(self) -> bool:
        return any(not frame.empty for frame in self.gaps.values())


def find_orphans(snapshot: Snapshot, relationship: Relationship) -> pd.DataFrame:
    """Child rows whose (present) foreign key has no parent row.

    A null foreign key is an absent link, not a gap.
    """
    tables = snapshot.tables()
    child = tables[relationship.child]
    parent_keys = tables[relationship.parent][relationship.parent_key]
    keys = child[relationship.child_key]
    mask = keys.notna() & ~keys.isin(parent_keys)
    return child[mask]


def run_snapshot_qa(snapshot: Snapshot) -> SnapshotQAResult:
    """Count rows and collect referential gaps of a normalised snapshot.

    This function does not read or write files and does not raise on gaps.
    """
    summary: dict = {"rows": {name: len(frame) for name, frame in snapshot.tables().items()}}
    gaps = {}
    for rel in RELATIONSHIPS:
        orphans = find_orphans(snapshot, rel)
        gaps[rel.name] = orphans
        if not orphans.empty:
            logger.warning(
                "Referential gap %s: %d %s rows reference a missing %s",
                rel.name,
                len(orphans),
                rel.child,
                rel.parent,
            )
    summary["gaps"] = {name: len(frame) for name, frame in gaps.items()}
    return SnapshotQAResult(summary=summary, gaps=gaps)


def raise_on_gaps(result: SnapshotQAResult) -> None:
    """Raise ``ReferentialGap`` if the QA result has any orphan rows."""
    found = {name: count for name, count in result.summary["gaps"].items() if count}
    if found:
        raise ReferentialGap(f"Referential gaps found: {found}")


def assert_unique_grain(frame: pd.DataFrame, keys: Sequence[str], name: str) -> None:
    """Raise ``FanOutRisk`` if ``frame`` has duplicate rows on ``keys``.

    Examples:
        >>> assert_unique_grain(pd.DataFrame({"k": [1, 2]}), ["k"], "demo")

    """
    keys = list(keys)
    missing = [k for k in keys if k not in frame.columns]
    if missing:
        raise FanOutRisk(f"{name}: grain columns missing: {missing}")

    dupes = frame[frame.duplicated(keys, keep=False)]
    if not dupes.empty:
        sample = dupes[keys].head(5).to_dict("records")
        raise FanOutRisk(f"{name}: {len(dupes)} rows share a grain key {keys}, e.g. {sample}")
