"""Command line entry point: ``ecom-marts``.

Usage:

    ecom-marts run --data-root data
    ecom-marts report billing_test --data-root data --stdout
    ecom-marts list

Exit codes: 0 on success, 2 on data-quality or configuration errors, 1 on
other pipeline errors.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ecom_core.config import DataPaths, PipelineConfig
from ecom_core.etl.api import run_pipeline
from ecom_core.etl.writer import render_csv
from ecom_core.exceptions import ConfigError, DataQualityError, ETLError
from ecom_core.marts import REPORTS

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ETL_ERROR = 1
EXIT_DATA_ERROR = 2


@dataclass
class Args:
    command: str
    report: Optional[str]
    data_root: Optional[Path]
    config: Optional[Path]
    stdout: bool
    quiet: bool
    verbose: bool


def parse_args(argv: Optional[Sequence[str]] = None) -> Args:
    p = argparse.ArgumentParser(
        prog="ecom-marts",
        description="Build BI marts from raw e-commerce session and order exports",
    )
    sub = p.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--data-root",
        type=Path,
        required=True,
        help="Root directory holding a_raw/, b_clean/ and c_processed/",
    )
    common.add_argument("--config", type=Path, help="JSON file with PipelineConfig overrides")
    verbosity = common.add_mutually_exclusive_group()
    verbosity.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    verbosity.add_argument("--verbose", action="store_true", help="Debug logging")

    sub.add_parser("run", parents=[common], help="Run the full pipeline (all reports)")

    report = sub.add_parser("report", parents=[common], help="Run a single report")
    report.add_argument("name", choices=sorted(REPORTS), help="Report name")
    report.add_argument(
        "--stdout",
        action="store_true",
        help="Also print the mart as CSV to standard output",
    )

    sub.add_parser("list", help="List available reports")

    a = p.parse_args(argv)
    return Args(
        command=a.command,
        report=getattr(a, "name", None),
        data_root=getattr(a, "data_root", None),
        config=getattr(a, "config", None),
        stdout=getattr(a, "stdout", False),
        quiet=getattr(a, "quiet", False),
        verbose=getattr(a, "verbose", False),
    )


def _log_level(args: Args) -> int:
    if args.quiet:
        return logging.WARNING
    if args.verbose:
        return logging.DEBUG
    return logging.INFO


def _list_reports() -> None:
    width = max(len(name) for name in REPORTS)
    for name, report in REPORTS.items():
        print(f"{name:<{width}}  {report.mart:<24}  {report.description}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=_log_level(args), format="%(levelname)s: %(message)s")

    if args.command == "list":
        _list_reports()
        return EXIT_OK

    try:
        config = PipelineConfig.from_json(args.config) if args.config else PipelineConfig()
        paths = DataPaths.from_root(args.data_root)
        reports = [args.report] if args.command == "report" else None
        result = run_pipeline(paths, config, reports)
    except (DataQualityError, ConfigError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        return EXIT_DATA_ERROR
    except ETLError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return EXIT_ETL_ERROR

    if args.command == "report" and args.stdout:
        sys.stdout.write(render_csv(result.marts[args.report]))
    return EXIT_OK


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
