"""Funnel stage flags, step-through rates and landing pages.

A funnel is an ordered list of stages, each matching a fixed set of page
URLs. A session's flag for a stage is 1 if any of its pageviews hit one of
the stage's URLs. Flags are independent of each other; only the
step-through rates assume the stages are visited in order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import pandas as pd

from ecom_core.etl.metrics import safe_ratio

logger = logging.getLogger(__name__)

ENTRY_URLS = frozenset(
    {"/home", "/lander-1", "/lander-2", "/lander-3", "/lander-4", "/lander-5"}
)

PRODUCT_PAGES = frozenset(
    {
        "/the-original-mr-fuzzy",
        "/the-forever-love-bear",
        "/the-birthday-sugar-panda",
        "/the-hudson-river-mini-bear",
    }
)


@dataclass(frozen=True)
class FunnelStage:
    """One named checkpoint of the funnel.

    Attributes:
        name: Stage name, used to derive column names.
        urls: Page URLs that count as reaching this stage.
        rate_name: Prefix of the click-through rate column, if it differs
            from ``name``.

    """

    name: str
    urls: frozenset
    rate_name: Optional[str] = None

    @property
    def flag_column(self) -> str:
        return f"saw_{self.name}"

    @property
    def count_column(self) -> str:
        return f"to_{self.name}"

    @property
    def rate_column(self) -> str:
        return f"{self.rate_name or self.name}_ctr"


DEFAULT_FUNNEL_STAGES: tuple[FunnelStage, ...] = (
    FunnelStage("home", ENTRY_URLS),
    FunnelStage("products", frozenset({"/products"}), rate_name="product_list"),
    FunnelStage("product_page", PRODUCT_PAGES),
    FunnelStage("cart", frozenset({"/cart"})),
    FunnelStage("shipping", frozenset({"/shipping"})),
    FunnelStage("billing", frozenset({"/billing", "/billing-2"})),
    FunnelStage("thank_you_page", frozenset({"/thank-you-for-your-order"})),
)


def flag_sessions(pageviews: pd.DataFrame, stages: Sequence[FunnelStage]) -> pd.DataFrame:
    """Compute one 0/1 flag per stage for every session with pageviews.

    Args:
        pageviews: Typed pageviews (website_session_id, created_at,
            pageview_url).
        stages: Ordered funnel stages.

    Returns:
        DataFrame with website_session_id, session_start_at (time of the first
        pageview) and one ``saw_<stage>`` int column per stage, sorted by
        session id.

    Examples:
        >>> pv = pd.DataFrame({
        ...     "website_session_id": [1, 1],
        ...     "created_at": pd.to_datetime(["2012-01-01 10:00", "2012-01-01 10:01"]),
        ...     "pageview_url": ["/home", "/cart"],
        ... })
        >>> flags = flag_sessions(pv, DEFAULT_FUNNEL_STAGES)
        >>> int(flags.loc[0, "saw_cart"]), int(flags.loc[0, "saw_shipping"])
        (1, 0)

    """
    columns = ["website_session_id", "session_start_at"] + [s.flag_column for s in stages]
    if pageviews.empty:
        return pd.DataFrame(columns=columns)

    work = pageviews[["website_session_id", "created_at"]].copy()
    for stage in stages:
        work[stage.flag_column] = pageviews["pageview_url"].isin(stage.urls).astype("int64")

    aggregations = {"session_start_at": ("created_at", "min")}
    aggregations.update({s.flag_column: (s.flag_column, "max") for s in stages})
    flags = (
        work.groupby("website_session_id", sort=True)
        .agg(**aggregations)
        .reset_index()
    )
    logger.debug("Flagged %d sessions across %d funnel stages", len(flags), len(stages))
    return flags[columns]


def step_through_rates(
    counts: pd.DataFrame,
    stages: Sequence[FunnelStage],
) -> pd.DataFrame:
    """Add ``<stage>_ctr`` columns to a frame of per-stage counts.

    The rate for stage N is ``to_<N> / to_<N-1> * 100``, undefined when the
    previous stage count is zero. The first stage has no rate.

    Args:
        counts: Frame with one ``to_<stage>`` column per stage.
        stages: Ordered funnel stages.

    Returns:
        Copy of ``counts`` with the rate columns appended.

    """
    result = counts.copy()
    for previous, current in zip(stages, stages[1:]):
        result[current.rate_column] = pd.Series(
            [
                safe_ratio(n, d, scale=100)
                for n, d in zip(result[current.count_column], result[previous.count_column])
            ],
            index=result.index,
            dtype=object,
        )
    return result


def landing_pages(pageviews: pd.DataFrame, entry_urls: frozenset) -> pd.DataFrame:
    """Resolve the first-touch landing page of every session.

    The landing pageview is the chronologically first pageview of the
    session, ties broken by the lowest pageview id. Sessions whose first
    pageview is not an entry URL have no landing page and are left out.

    Returns:
        DataFrame with website_session_id, landing_page and landed_at.

    """
    columns = ["website_session_id", "landing_page", "landed_at"]
    if pageviews.empty:
        return pd.DataFrame(columns=columns)

    ordered = pageviews.sort_values(
        ["website_session_id", "created_at", "website_pageview_id"], kind="mergesort"
    )
    first = ordered.drop_duplicates("website_session_id", keep="first")
    first = first[first["pageview_url"].isin(entry_urls)]

    dropped = int(pageviews["website_session_id"].nunique()) - len(first)
    if dropped:
        logger.debug("%d sessions did not land on an entry page", dropped)

    return (
        first.rename(columns={"pageview_url": "landing_page", "created_at": "landed_at"})[columns]
        .reset_index(drop=True)
    )
