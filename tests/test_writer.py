"""Tests for deterministic CSV rendering, atomic writes and the marts lock."""

from decimal import Decimal
from pathlib import Path

import pandas as pd
import pytest

from ecom_core.etl.writer import LOCK_FILENAME, mart_lock, render_csv, write_frame_atomic
from ecom_core.exceptions import PipelineLockedError


def test_render_csv() -> None:
    frame = pd.DataFrame(
        {
            "month_start_date": pd.to_datetime(["2012-03-01"]),
            "total_orders": [3],
            "net_revenue": [Decimal("10.50")],
            "conversion_rate": [None],
        }
    )
    assert render_csv(frame) == (
        "month_start_date,total_orders,net_revenue,conversion_rate\n2012-03-01,3,10.50,\n"
    )


def test_write_frame_atomic_replaces_file(tmp_path: Path) -> None:
    path = tmp_path / "marts" / "bi_demo.csv"
    write_frame_atomic(pd.DataFrame({"a": [1]}), path)
    write_frame_atomic(pd.DataFrame({"a": [2]}), path)
    assert path.read_text() == "a\n2\n"
    assert [p.name for p in path.parent.iterdir()] == ["bi_demo.csv"]


def test_lock_is_released(tmp_path: Path) -> None:
    with mart_lock(tmp_path) as lock_path:
        assert lock_path.exists()
    assert not (tmp_path / LOCK_FILENAME).exists()


def test_lock_is_released_on_error(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        with mart_lock(tmp_path):
            raise RuntimeError("boom")
    assert not (tmp_path / LOCK_FILENAME).exists()


def test_second_holder_times_out(tmp_path: Path) -> None:
    with mart_lock(tmp_path):
        with pytest.raises(PipelineLockedError):
            with mart_lock(tmp_path, timeout_seconds=0.1):
                pass
