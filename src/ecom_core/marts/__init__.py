"""Gold layer: the BI marts, one per report.

``REPORTS`` maps a report name to its mart table, grain and builder. Every
builder takes the typed snapshot and the run configuration and returns a
fully ordered frame; it never reads or writes files.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pandas as pd

from ecom_core.config import PipelineConfig
from ecom_core.etl.normalize import Snapshot
from ecom_core.marts.common import MONTH
from ecom_core.marts.marketing import build_marketing, build_seasonality, build_traffic
from ecom_core.marts.sales import build_customers, build_products, build_sales
from ecom_core.marts.website import build_billing_test, build_funnel, build_landing_pages


@dataclass(frozen=True)
class Report:
    """One report and the mart it produces.

    Attributes:
        name: Report name used on the command line.
        mart: Output table (and CSV file stem).
        grain: Columns that identify one mart row.
        build: Builder function.
        description: One-line summary for ``ecom-marts list``.
    """

    name: str
    mart: str
    grain: tuple[str, ...]
    build: Callable[[Snapshot, PipelineConfig], pd.DataFrame]
    description: str


REPORTS: dict[str, Report] = {
    r.name: r
    for r in (
        Report(
            "sales",
            "bi_sales",
            (MONTH,),
            build_sales,
            "Monthly gross/net revenue, profit and growth trends",
        ),
        Report(
            "customers",
            "bi_sales_customers",
            (MONTH,),
            build_customers,
            "New vs. repeat customer orders and revenue",
        ),
        Report(
            "products",
            "bi_sales_products",
            (MONTH, "product_name"),
            build_products,
            "Net revenue, profit share and refund rate per product",
        ),
        Report(
            "marketing",
            "bi_marketing_overview",
            (MONTH, "source", "campaign", "ad_content", "device_type"),
            build_marketing,
            "Sessions, orders and revenue by traffic source and device",
        ),
        Report(
            "traffic",
            "bi_traffic_trends",
            (MONTH,),
            build_traffic,
            "Monthly sessions per channel group with paid/organic share",
        ),
        Report(
            "seasonality",
            "bi_sales_seasonality",
            (MONTH, "source", "day_number"),
            build_seasonality,
            "Orders and average order value by weekday",
        ),
        Report(
            "funnel",
            "bi_conversion_funnel",
            (MONTH,),
            build_funnel,
            "Monthly funnel stage counts and click-through rates",
        ),
        Report(
            "landing_pages",
            "bi_landing_page_trends",
            (MONTH, "landing_page"),
            build_landing_pages,
            "Sessions, conversion and revenue per landing page",
        ),
        Report(
            "billing_test",
            "bi_billing_test_results",
            ("pageview_url",),
            build_billing_test,
            "Billing page A/B test results",
        ),
    )
}

__all__ = ["REPORTS", "Report"]
