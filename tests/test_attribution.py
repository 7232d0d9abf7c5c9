"""Tests for the ordered attribution rule tables."""

import pandas as pd
import pytest

from ecom_core.etl.attribution import (
    CHANNEL_GROUPS,
    Attribution,
    RawTouch,
    Rule,
    apply_attribution,
    classify,
    evaluate,
)


@pytest.mark.parametrize(
    ("touch", "channel_group", "source"),
    [
        (RawTouch("gsearch", "https://www.gsearch.com"), "paid_search_google", "gsearch"),
        (RawTouch("bsearch", "https://www.bsearch.com"), "paid_search_bing", "bsearch"),
        (RawTouch("socialbook", None), "paid_search_socialbook", "socialbook"),
        (RawTouch(None, "https://www.gsearch.com"), "organic_search_google", "gsearch"),
        (RawTouch(None, "https://www.bsearch.com"), "organic_search_bing", "bsearch"),
        (RawTouch(None, "https://socialbook.com/feed"), "organic_search_socialbook", "socialbook"),
        (RawTouch(None, None), "direct_type_in", "other"),
        (RawTouch(None, "https://example.org"), "other", "other"),
        (RawTouch("newsletter", None), "other", "newsletter"),
    ],
)
def test_channel_group_and_source(touch: RawTouch, channel_group: str, source: str) -> None:
    result = classify(touch)
    assert result.channel_group == channel_group
    assert result.source == source


def test_utm_source_wins_over_referer() -> None:
    # Paid rules are evaluated before the referer fallback
    result = classify(RawTouch("bsearch", "https://www.gsearch.com"))
    assert result.channel_group == "paid_search_bing"
    assert result.source == "bsearch"


def test_campaign_and_ad_content_defaults() -> None:
    result = classify(RawTouch(None, None, None, "n/a"))
    assert result.campaign == "organic_non_paid"
    assert result.ad_content == "organic"

    paid = classify(RawTouch("gsearch", None, "nonbrand", "g_ad_1"))
    assert paid.campaign == "nonbrand"
    assert paid.ad_content == "g_ad_1"


def test_classification_is_deterministic() -> None:
    touch = RawTouch(None, "https://www.bsearch.com", None, None)
    assert classify(touch) == classify(touch)


def test_evaluate_first_match_wins_and_falls_back_to_default() -> None:
    rules = (
        Rule("a", lambda t: t.utm_source is not None, "first"),
        Rule("b", lambda t: True, "second"),
    )
    assert evaluate(rules, RawTouch("x"), "default") == "first"
    assert evaluate(rules, RawTouch(None), "default") == "second"
    assert evaluate((), RawTouch(None), "default") == "default"


def test_apply_attribution_is_total() -> None:
    sessions = pd.DataFrame(
        {
            "utm_source": ["gsearch", None, None, "weird"],
            "http_referer": [None, "https://www.gsearch.com", None, None],
            "utm_campaign": ["brand", None, None, None],
            "utm_content": ["g_ad_2", None, "n/a", None],
        },
        index=[10, 11, 12, 13],
    )
    out = apply_attribution(sessions)
    assert list(out.columns) == list(Attribution._fields)
    assert list(out.index) == [10, 11, 12, 13]
    assert out.notna().all().all()
    assert set(out["channel_group"]) <= set(CHANNEL_GROUPS)
