"""Channel attribution for website sessions.

Every session gets four marketing dimensions derived from its raw
``utm_source``, ``http_referer``, ``utm_campaign`` and ``utm_content``:

- channel_group: paid / organic search per engine, direct type-in, or other
- source: the utm source, else the search engine found in the referer
- campaign: the utm campaign, else ``organic_non_paid``
- ad_content: the utm content, else ``organic`` (``n/a`` counts as absent)

Each dimension is an ordered rule table evaluated top-down; the first rule
whose predicate matches wins and every table has a default, so
classification is total. Changing the order of a table changes every
channel KPI downstream, so the tables are module-level constants and the
evaluator is a single function.

Examples:
    >>> classify(RawTouch(utm_source=None, http_referer="https://www.gsearch.com"))
    Attribution(channel_group='organic_search_google', source='gsearch', campaign='organic_non_paid', ad_content='organic')
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

# (utm_source / referer token, channel suffix)
SEARCH_ENGINES = (
    ("gsearch", "google"),
    ("bsearch", "bing"),
    ("socialbook", "socialbook"),
)

DIRECT_TYPE_IN = "direct_type_in"
OTHER = "other"
ORGANIC_CAMPAIGN = "organic_non_paid"
ORGANIC_CONTENT = "organic"

PAID_CHANNELS = tuple(f"paid_search_{suffix}" for _, suffix in SEARCH_ENGINES)
ORGANIC_CHANNELS = tuple(f"organic_search_{suffix}" for _, suffix in SEARCH_ENGINES)
CHANNEL_GROUPS = PAID_CHANNELS + ORGANIC_CHANNELS + (DIRECT_TYPE_IN, OTHER)


class RawTouch(NamedTuple):
    """Raw marketing fields of one session (None means absent)."""

    utm_source: Optional[str] = None
    http_referer: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_content: Optional[str] = None


class Attribution(NamedTuple):
    """Canonical marketing dimensions of one session."""

    channel_group: str
    source: str
    campaign: str
    ad_content: str


@dataclass(frozen=True)
class Rule:
    """One row of a rule table.

    Attributes:
        name: Label used in logs and tests.
        predicate: Decides whether the rule applies to a touch.
        result: Either a constant or a function of the touch.
    """

    name: str
    predicate: Callable[[RawTouch], bool]
    result: str | Callable[[RawTouch], str]

    def resolve(self, touch: RawTouch) -> str:
        return self.result(touch) if callable(self.result) else self.result


def evaluate(rules: Sequence[Rule], touch: RawTouch, default: str) -> str:
    """Return the result of the first matching rule, or ``default``."""
    for rule in rules:
        if rule.predicate(touch):
            return rule.resolve(touch)
    return default


def _utm_is(token: str) -> Callable[[RawTouch], bool]:
    return lambda t: t.utm_source == token


def _organic_from(domain: str) -> Callable[[RawTouch], bool]:
    return lambda t: t.utm_source is None and t.http_referer is not None and domain in t.http_referer


def _referer_mentions(token: str) -> Callable[[RawTouch], bool]:
    return lambda t: t.http_referer is not None and token in t.http_referer


CHANNEL_GROUP_RULES: tuple[Rule, ...] = (
    tuple(
        Rule(f"paid_search_{suffix}", _utm_is(token), f"paid_search_{suffix}")
        for token, suffix in SEARCH_ENGINES
    )
    + tuple(
        Rule(f"organic_search_{suffix}", _organic_from(f"{token}.com"), f"organic_search_{suffix}")
        for token, suffix in SEARCH_ENGINES
    )
    + (
        Rule(
            DIRECT_TYPE_IN,
            lambda t: t.utm_source is None and t.http_referer is None,
            DIRECT_TYPE_IN,
        ),
    )
)

SOURCE_RULES: tuple[Rule, ...] = (
    Rule("utm_source", lambda t: t.utm_source is not None, lambda t: t.utm_source),
) + tuple(Rule(f"referer_{token}", _referer_mentions(token), token) for token, _ in SEARCH_ENGINES)

CAMPAIGN_RULES: tuple[Rule, ...] = (
    Rule("utm_campaign", lambda t: t.utm_campaign is not None, lambda t: t.utm_campaign),
)

AD_CONTENT_RULES: tuple[Rule, ...] = (
    Rule("placeholder", lambda t: t.utm_content == "n/a", ORGANIC_CONTENT),
    Rule("utm_content", lambda t: t.utm_content is not None, lambda t: t.utm_content),
)


def classify(touch: RawTouch) -> Attribution:
    """Classify one session's raw marketing fields.

    Classification is a pure function of the four raw fields.
    """
    return Attribution(
        channel_group=evaluate(CHANNEL_GROUP_RULES, touch, OTHER),
        source=evaluate(SOURCE_RULES, touch, OTHER),
        campaign=evaluate(CAMPAIGN_RULES, touch, ORGANIC_CAMPAIGN),
        ad_content=evaluate(AD_CONTENT_RULES, touch, ORGANIC_CONTENT),
    )


def apply_attribution(sessions: pd.DataFrame) -> pd.DataFrame:
    """Return the four attribution columns for a frame of raw sessions.

    Args:
        sessions: Frame with utm_source, http_referer, utm_campaign and
            utm_content columns, already cleaned (None for absent).

    Returns:
        DataFrame with channel_group, source, campaign and ad_content, on the
        same index as ``sessions``. No row is ever dropped.

    """
    touches = zip(
        sessions["utm_source"],
        sessions["http_referer"],
        sessions["utm_campaign"],
        sessions["utm_content"],
    )
    rows = [classify(RawTouch(*(_absent_to_none(v) for v in t))) for t in touches]
    result = pd.DataFrame(rows, columns=list(Attribution._fields), index=sessions.index)

    if logger.isEnabledFor(logging.DEBUG):
        for channel, count in result["channel_group"].value_counts().sort_index().items():
            logger.debug("channel_group %s: %d sessions", channel, count)
    return result


def _absent_to_none(value: object) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value)
