"""Public API for the e-commerce marts pipeline.

A run has three phases, and nothing is written until the first two succeed:

1. load: read the raw CSVs and normalise them into a typed snapshot
2. build: compute every requested mart in memory and check its grain
3. write: under the marts lock, write the clean snapshot, then each mart
   atomically, then its metadata

Examples:
    >>> from ecom_core import DataPaths, PipelineConfig, run_pipeline
    >>> result = run_pipeline(DataPaths.from_root("data"), PipelineConfig())
    >>> result.marts["sales"].head()

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from ecom_core.config import DataPaths, PipelineConfig
from ecom_core.etl.metadata import BUILDER_VERSION, MartMetadata, write_metadata
from ecom_core.etl.normalize import Snapshot, normalize_snapshot, write_snapshot
from ecom_core.etl.raw import read_raw_snapshot
from ecom_core.etl.writer import mart_lock, write_frame_atomic
from ecom_core.exceptions import ConfigError
from ecom_core.marts import REPORTS, Report
from ecom_core.qa.checks import (
    SnapshotQAResult,
    assert_unique_grain,
    raise_on_gaps,
    run_snapshot_qa,
)

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Result of a pipeline run.

    Attributes:
        marts: Built marts keyed by report name.
        written: Paths of the mart CSVs written, in report order.
        qa: Snapshot QA result (row counts and referential gaps).
    """

    marts: dict[str, pd.DataFrame]
    written: list[Path]
    qa: SnapshotQAResult


def resolve_reports(reports: Optional[Iterable[str]] = None) -> list[Report]:
    """Look up report names, defaulting to all reports in registry order.

    Raises:
        ConfigError: If a name is not a known report.

    """
    if reports is None:
        return list(REPORTS.values())
    names = list(reports)
    unknown = [n for n in names if n not in REPORTS]
    if unknown:
        raise ConfigError(f"Unknown report(s) {unknown}. Available: {sorted(REPORTS)}")
    return [REPORTS[n] for n in names]


def _load(paths: DataPaths, config: PipelineConfig) -> tuple[Snapshot, SnapshotQAResult]:
    logger.info("Loading raw snapshot from %s", paths.raw)
    snapshot = normalize_snapshot(read_raw_snapshot(paths.raw), config)
    qa = run_snapshot_qa(snapshot)
    if config.strict_references:
        raise_on_gaps(qa)
    return snapshot, qa


def load_snapshot(paths: DataPaths, config: Optional[PipelineConfig] = None) -> Snapshot:
    """Read and normalise the raw tables.

    Args:
        paths: DataPaths configuration.
        config: Pipeline configuration (defaults to ``PipelineConfig()``).

    Returns:
        Typed snapshot. Nothing is written to disk.

    Raises:
        MalformedInput: If a raw file, column or value is malformed.
        ReferentialGap: If ``strict_references`` is on and a link is dangling.

    """
    snapshot, _ = _load(paths, config or PipelineConfig())
    return snapshot


def build_marts(
    snapshot: Snapshot,
    config: Optional[PipelineConfig] = None,
    reports: Optional[Iterable[str]] = None,
) -> dict[str, pd.DataFrame]:
    """Build marts in memory.

    Args:
        snapshot: Typed snapshot from ``load_snapshot``.
        config: Pipeline configuration (defaults to ``PipelineConfig()``).
        reports: Report names to build (default: all).

    Returns:
        Dictionary of report name -> mart DataFrame.

    Raises:
        ConfigError: If a report name is unknown.
        FanOutRisk: If a mart has duplicate rows on its grain.

    """
    config = config or PipelineConfig()
    marts = {}
    for report in resolve_reports(reports):
        mart = report.build(snapshot, config)
        assert_unique_grain(mart, report.grain, report.mart)
        marts[report.name] = mart
    return marts


def _write_mart(marts_dir: Path, report: Report, mart: pd.DataFrame) -> Path:
    path = marts_dir / f"{report.mart}.csv"
    meta = MartMetadata(
        mart=report.mart,
        report=report.name,
        grain=list(report.grain),
        rows=len(mart),
        builder_version=BUILDER_VERSION,
        last_run=datetime.now().isoformat(),
        status="ok",
    )
    try:
        write_frame_atomic(mart, path)
    except Exception as e:
        logger.error("Failed to write %s: %s", report.mart, e)
        meta.status = "failed"
        meta.rows = 0
        write_metadata(marts_dir, meta)
        raise
    write_metadata(marts_dir, meta)
    logger.info("Wrote %s (%d rows)", path, len(mart))
    return path


def run_pipeline(
    paths: DataPaths,
    config: Optional[PipelineConfig] = None,
    reports: Optional[Iterable[str]] = None,
) -> PipelineResult:
    """Run the full pipeline: load, build, then write under the marts lock.

    Every mart is recomputed from the raw snapshot and replaces its previous
    file. Re-running on the same raw input produces byte-identical marts.

    Args:
        paths: DataPaths configuration.
        config: Pipeline configuration (defaults to ``PipelineConfig()``).
        reports: Report names to run (default: all).

    Returns:
        PipelineResult with the marts, written paths and QA result.

    Raises:
        DataQualityError: On malformed input, strict referential gaps or a
            grain violation. Nothing is written in that case.
        PipelineLockedError: If another run holds the marts lock.

    """
    config = config or PipelineConfig()
    selected = resolve_reports(reports)

    snapshot, qa = _load(paths, config)
    marts = build_marts(snapshot, config, [r.name for r in selected])

    paths.ensure_dirs()
    written = []
    with mart_lock(paths.marts, config.lock_timeout_seconds):
        write_snapshot(snapshot, paths.clean)
        for report in selected:
            written.append(_write_mart(paths.marts, report, marts[report.name]))

    logger.info("Pipeline finished: %d marts written to %s", len(written), paths.marts)
    return PipelineResult(marts=marts, written=written, qa=qa)


def run_report(
    paths: DataPaths,
    name: str,
    config: Optional[PipelineConfig] = None,
) -> pd.DataFrame:
    """Run the pipeline for a single report and return its mart."""
    return run_pipeline(paths, config, [name]).marts[name]
