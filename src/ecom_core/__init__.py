"""E-commerce marts - ETL from raw web/order exports to BI-ready marts.

This package turns raw session, pageview, order, order item, refund and
product exports into analytical marts across three layers:

- **Bronze (raw)**: CSV exports, every column a string
- **Silver (clean)**: typed entities with sessions classified by channel
- **Gold (marts)**: monthly aggregates for BI dashboards

Module Structure:
    ecom_core.etl: raw reader, normaliser, aggregation helpers, writer, API
    ecom_core.marts: report registry and mart builders
    ecom_core.qa: snapshot and grain checks
    ecom_core.config: DataPaths and PipelineConfig

Quick Start:
    >>> from ecom_core import DataPaths, PipelineConfig, run_pipeline
    >>>
    >>> paths = DataPaths.from_root("data")
    >>> result = run_pipeline(paths, PipelineConfig())
    >>> result.marts["sales"][["month_start_date", "net_revenue"]].head()
    >>>
    >>> # Single report, in memory only
    >>> from ecom_core import build_marts, load_snapshot
    >>> snapshot = load_snapshot(paths)
    >>> marts = build_marts(snapshot, reports=["billing_test"])

Grain Reference:
    bi_sales, bi_sales_customers, bi_traffic_trends, bi_conversion_funnel: month
    bi_sales_products: month x product_name
    bi_marketing_overview: month x source x campaign x ad_content x device_type
    bi_sales_seasonality: month x source x day_number
    bi_landing_page_trends: month x landing_page
    bi_billing_test_results: billing page variant
"""

__version__ = "0.1.0"

from ecom_core.config import DataPaths, PipelineConfig
from ecom_core.etl.api import (
    PipelineResult,
    build_marts,
    load_snapshot,
    run_pipeline,
    run_report,
)
from ecom_core.exceptions import (
    ConfigError,
    DataQualityError,
    EcomAPIError,
    ETLError,
    FanOutRisk,
    MalformedInput,
    PipelineLockedError,
    ReferentialGap,
)
from ecom_core.marts import REPORTS

__all__ = [
    "REPORTS",
    "ConfigError",
    "DataPaths",
    "DataQualityError",
    "ETLError",
    "EcomAPIError",
    "FanOutRisk",
    "MalformedInput",
    "PipelineConfig",
    "PipelineLockedError",
    "PipelineResult",
    "ReferentialGap",
    "__version__",
    "build_marts",
    "load_snapshot",
    "run_pipeline",
    "run_report",
]
