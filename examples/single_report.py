"""Example: build a single report in memory

Loads the snapshot once and builds only the funnel and landing page marts,
without writing anything to disk.
"""

from pathlib import Path

from ecom_core import DataPaths, build_marts, load_snapshot

paths = DataPaths.from_root(Path("data"))

snapshot = load_snapshot(paths)
marts = build_marts(snapshot, reports=["funnel", "landing_pages"])

funnel = marts["funnel"]
print("Click-through rates by month:")
print(funnel[["month_start_date"] + [c for c in funnel.columns if c.endswith("_ctr")]])

print("\nLanding pages:")
print(marts["landing_pages"].head(10))
