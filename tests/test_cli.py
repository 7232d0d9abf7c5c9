"""Tests for the ecom-marts command line."""

import pytest

from conftest import write_raw
from ecom_core.cli import EXIT_DATA_ERROR, EXIT_ETL_ERROR, EXIT_OK, main
from ecom_core.config import DataPaths
from ecom_core.etl.writer import LOCK_FILENAME


def test_list(capsys: pytest.CaptureFixture) -> None:
    assert main(["list"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "billing_test" in out
    assert "bi_sales_seasonality" in out


def test_run(data_paths: DataPaths) -> None:
    assert main(["run", "--data-root", str(data_paths.data_root), "--quiet"]) == EXIT_OK
    assert (data_paths.marts / "bi_sales.csv").exists()


def test_report_to_stdout(data_paths: DataPaths, capsys: pytest.CaptureFixture) -> None:
    code = main(["report", "traffic", "--data-root", str(data_paths.data_root), "--stdout"])
    assert code == EXIT_OK
    out = capsys.readouterr().out
    assert out.startswith("month_start_date,paid_google_traffic")


def test_malformed_input_exit_code(data_paths: DataPaths, raw_tables) -> None:
    raw_tables["orders"].loc[0, "price_usd"] = "abc"
    write_raw(data_paths.raw, raw_tables)
    assert main(["run", "--data-root", str(data_paths.data_root)]) == EXIT_DATA_ERROR


def test_identifier_out_of_range_exit_code(data_paths: DataPaths, raw_tables) -> None:
    raw_tables["products"].loc[0, "product_id"] = "18446744073709551615"
    write_raw(data_paths.raw, raw_tables)
    assert main(["run", "--data-root", str(data_paths.data_root)]) == EXIT_DATA_ERROR


@pytest.mark.parametrize(
    "content",
    [
        '{"unknown": 1}',
        '{"moving_average_window": "3"}',
        '{"billing_variants": ["/billing", "/billing"]}',
    ],
)
def test_bad_config_exit_code(data_paths: DataPaths, tmp_path, content: str) -> None:
    config = tmp_path / "bad.json"
    config.write_text(content)
    args = ["run", "--data-root", str(data_paths.data_root), "--config", str(config)]
    assert main(args) == EXIT_DATA_ERROR


def test_locked_exit_code(data_paths: DataPaths) -> None:
    data_paths.marts.mkdir(parents=True)
    (data_paths.marts / LOCK_FILENAME).write_text("1")
    assert main(["run", "--data-root", str(data_paths.data_root)]) == EXIT_ETL_ERROR


def test_unknown_report_is_rejected_by_parser() -> None:
    with pytest.raises(SystemExit):
        main(["report", "nope", "--data-root", "data"])
