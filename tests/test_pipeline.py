"""End-to-end tests for run_pipeline: idempotence, fail-fast and locking."""

from pathlib import Path

import pandas as pd
import pytest

from conftest import write_raw
from ecom_core import (
    REPORTS,
    DataPaths,
    MalformedInput,
    PipelineConfig,
    PipelineLockedError,
    ReferentialGap,
    build_marts,
    load_snapshot,
    run_pipeline,
    run_report,
)
from ecom_core.etl.metadata import read_metadata
from ecom_core.etl.writer import LOCK_FILENAME


def _mart_bytes(paths: DataPaths) -> dict[str, bytes]:
    return {p.name: p.read_bytes() for p in sorted(paths.marts.glob("*.csv"))}


def test_run_writes_every_mart(data_paths: DataPaths) -> None:
    result = run_pipeline(data_paths)

    assert set(result.marts) == set(REPORTS)
    assert [p.name for p in result.written] == [f"{r.mart}.csv" for r in REPORTS.values()]
    for report in REPORTS.values():
        meta = read_metadata(data_paths.marts, report.mart)
        assert meta is not None
        assert meta.status == "ok"
        assert meta.rows == len(result.marts[report.name])
    assert (data_paths.clean / "orders.csv").exists()
    assert not (data_paths.marts / LOCK_FILENAME).exists()


def test_rerun_is_byte_identical(data_paths: DataPaths) -> None:
    run_pipeline(data_paths)
    first = _mart_bytes(data_paths)
    run_pipeline(data_paths)
    assert _mart_bytes(data_paths) == first


def test_output_rendering(data_paths: DataPaths) -> None:
    run_pipeline(data_paths)
    text = (data_paths.marts / "bi_sales.csv").read_text(encoding="utf-8")
    lines = text.split("\n")
    assert "\r" not in text
    assert lines[0].startswith("month_start_date,total_sessions,total_orders")
    assert lines[1].startswith("2012-03-01,2,1,1,99.98,59.99,39.99,60.00,0.01,50.00,20.00")

    billing = pd.read_csv(data_paths.marts / "bi_billing_test_results.csv", dtype=str)
    # Undefined ratios are empty cells, not zero
    assert billing["conversion_rate_pct"].isna().all()


def test_malformed_input_writes_nothing(data_paths: DataPaths, raw_tables) -> None:
    raw_tables["website_pageviews"].loc[0, "created_at"] = "not a date"
    write_raw(data_paths.raw, raw_tables)

    with pytest.raises(MalformedInput):
        run_pipeline(data_paths)
    assert not data_paths.marts.exists() or not list(data_paths.marts.glob("*.csv"))
    assert not (data_paths.clean / "orders.csv").exists()


def test_missing_raw_file(tmp_path: Path) -> None:
    paths = DataPaths.from_root(tmp_path)
    with pytest.raises(MalformedInput, match="raw file not found"):
        load_snapshot(paths)


def test_lock_held_by_another_run(data_paths: DataPaths) -> None:
    data_paths.marts.mkdir(parents=True)
    (data_paths.marts / LOCK_FILENAME).write_text("12345")

    with pytest.raises(PipelineLockedError):
        run_pipeline(data_paths, PipelineConfig(lock_timeout_seconds=0.2))
    assert not list(data_paths.marts.glob("*.csv"))
    assert (data_paths.marts / LOCK_FILENAME).exists()


def test_referential_gaps_reported_by_default(data_paths: DataPaths, raw_tables) -> None:
    orders = raw_tables["orders"]
    orders.loc[len(orders)] = ["4", "2012-04-11 12:00:00", "99", "", "", "1", "5.00", "1.00"]
    write_raw(data_paths.raw, raw_tables)

    result = run_pipeline(data_paths)
    assert result.qa.summary["gaps"]["order->session"] == 1
    assert result.qa.gaps["order->session"]["order_id"].tolist() == [4]

    with pytest.raises(ReferentialGap):
        run_pipeline(data_paths, PipelineConfig(strict_references=True))


def test_run_report_single_mart(data_paths: DataPaths) -> None:
    mart = run_report(data_paths, "traffic")
    assert "paid_traffic_share_pct" in mart.columns
    assert [p.name for p in data_paths.marts.glob("*.csv")] == ["bi_traffic_trends.csv"]


def test_build_marts_in_memory(data_paths: DataPaths) -> None:
    snapshot = load_snapshot(data_paths)
    marts = build_marts(snapshot, reports=["funnel", "sales"])
    assert list(marts) == ["funnel", "sales"]
    assert not data_paths.marts.exists()
