"""Example: Full e-commerce marts pipeline

This example runs every report end to end:
1. Read raw CSV exports from data/a_raw (Bronze)
2. Normalise them into a typed snapshot in data/b_clean (Silver)
3. Build and write the bi_* marts to data/c_processed/marts (Gold)

Prerequisites:
- Place products.csv, orders.csv, order_items.csv, order_item_refunds.csv,
  website_sessions.csv and website_pageviews.csv in data/a_raw/
"""

from pathlib import Path

from ecom_core import DataPaths, PipelineConfig, run_pipeline

paths = DataPaths.from_root(Path("data"))

# Clamp negative amounts instead of aborting the run
config = PipelineConfig(negative_money="clamp")

print(f"Running all reports from {paths.raw}...")
result = run_pipeline(paths, config)

for path in result.written:
    print(f"  wrote {path}")

print("\nSnapshot QA:")
for table, rows in result.qa.summary["rows"].items():
    print(f"  - {table}: {rows} rows")
for relationship, orphans in result.qa.summary["gaps"].items():
    if orphans:
        print(f"  - {relationship}: {orphans} orphan rows")

print("\nMonthly sales (last 6 months):")
sales = result.marts["sales"]
print(sales[["month_start_date", "net_revenue", "net_rev_3m_moving_avg"]].tail(6))

print("\nBilling page test:")
print(result.marts["billing_test"])
