"""Unified configuration for the e-commerce marts pipeline.

This module provides the filesystem layout (DataPaths) and the run
configuration (PipelineConfig) used across all layers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from datetime import date
from pathlib import Path

from ecom_core.etl.funnel import DEFAULT_FUNNEL_STAGES, ENTRY_URLS, FunnelStage
from ecom_core.exceptions import ConfigError

NEGATIVE_MONEY_POLICIES = ("reject", "clamp")

# Scalar config field -> accepted types
SCALAR_TYPES: dict[str, tuple[type, ...]] = {
    "timestamp_format": (str,),
    "negative_money": (str,),
    "billing_test_start": (str,),
    "billing_test_end": (str,),
    "moving_average_window": (int,),
    "strict_references": (bool,),
    "lock_timeout_seconds": (int, float),
}


@dataclass
class DataPaths:
    """All filesystem paths used by the pipeline.

    Attributes:
        data_root: Root directory for all data layers.

    Directory Structure:
        data_root/
        ├── a_raw/                # Bronze: raw CSV exports, all-string columns
        ├── b_clean/              # Silver: typed snapshot (one CSV per entity)
        └── c_processed/
            └── marts/            # Gold: bi_* marts + _meta/

    """

    data_root: Path

    @classmethod
    def from_root(cls, data_root: str | Path) -> DataPaths:
        """Create DataPaths from a root directory.

        Examples:
            >>> paths = DataPaths.from_root("data")
            >>> paths.raw
            PosixPath('data/a_raw')

        """
        if isinstance(data_root, str):
            data_root = Path(data_root)
        return cls(data_root=data_root)

    @property
    def raw(self) -> Path:
        """Bronze layer: raw CSV exports."""
        return self.data_root / "a_raw"

    @property
    def clean(self) -> Path:
        """Silver layer: typed entity snapshot."""
        return self.data_root / "b_clean"

    @property
    def marts(self) -> Path:
        """Gold layer: reporting marts."""
        return self.data_root / "c_processed" / "marts"

    def ensure_dirs(self) -> None:
        """Create all directories in the data structure."""
        for path in [self.raw, self.clean, self.marts]:
            path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class PipelineConfig:
    """Configuration for a pipeline run.

    Attributes:
        timestamp_format: strptime format every raw timestamp must match.
        negative_money: "reject" aborts the run on a negative price/cost/refund,
            "clamp" sets it to 0.00 and logs a warning.
        funnel_stages: Ordered funnel stage definitions.
        entry_urls: URLs that count as landing pages.
        billing_variants: Billing page URLs compared by the A/B report. The
            first one is the control.
        billing_test_start: First day of the A/B window (YYYY-MM-DD, inclusive).
        billing_test_end: Last day of the A/B window (YYYY-MM-DD, inclusive).
        moving_average_window: Number of buckets in the trailing moving average.
        strict_references: If True, referential gaps abort the run.
        lock_timeout_seconds: How long to wait for another run's marts lock.

    """

    timestamp_format: str = "%Y-%m-%d %H:%M:%S"
    negative_money: str = "reject"
    funnel_stages: tuple[FunnelStage, ...] = DEFAULT_FUNNEL_STAGES
    entry_urls: frozenset[str] = ENTRY_URLS
    billing_variants: tuple[str, ...] = ("/billing", "/billing-2")
    billing_test_start: str = "2012-09-01"
    billing_test_end: str = "2013-01-31"
    moving_average_window: int = 3
    strict_references: bool = False
    lock_timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        for name, types in SCALAR_TYPES.items():
            value = getattr(self, name)
            # bool is an int subclass; only strict_references takes one
            if not isinstance(value, types) or (isinstance(value, bool) and bool not in types):
                raise ConfigError(
                    f"{name} must be of type {' or '.join(t.__name__ for t in types)}, "
                    f"got {type(value).__name__} {value!r}"
                )
        if self.negative_money not in NEGATIVE_MONEY_POLICIES:
            raise ConfigError(
                f"Invalid negative_money '{self.negative_money}'. "
                f"Must be one of {NEGATIVE_MONEY_POLICIES}."
            )
        if self.moving_average_window < 1:
            raise ConfigError(
                f"moving_average_window must be >= 1, got {self.moving_average_window}"
            )
        if self.lock_timeout_seconds < 0:
            raise ConfigError(
                f"lock_timeout_seconds must be >= 0, got {self.lock_timeout_seconds}"
            )
        if len(self.billing_variants) < 2:
            raise ConfigError("billing_variants needs at least two URLs to compare")
        if len(set(self.billing_variants)) != len(self.billing_variants):
            raise ConfigError(f"Duplicate billing variants: {list(self.billing_variants)}")
        if not self.funnel_stages:
            raise ConfigError("funnel_stages must define at least one stage")
        names = [stage.name for stage in self.funnel_stages]
        if len(set(names)) != len(names):
            raise ConfigError(f"Duplicate funnel stage names: {names}")
        rates = [stage.rate_column for stage in self.funnel_stages]
        if len(set(rates)) != len(rates):
            raise ConfigError(f"Duplicate funnel rate columns: {rates}")
        try:
            start = date.fromisoformat(self.billing_test_start)
            end = date.fromisoformat(self.billing_test_end)
        except ValueError as e:
            raise ConfigError(f"Invalid billing test window: {e}") from e
        if end < start:
            raise ConfigError(
                f"billing_test_end {self.billing_test_end} is before "
                f"billing_test_start {self.billing_test_start}"
            )

    @classmethod
    def from_json(cls, path: str | Path) -> PipelineConfig:
        """Build a config from a JSON file of overrides.

        Scalar fields are taken as-is. ``entry_urls`` and ``billing_variants``
        accept JSON lists. ``funnel_stages`` accepts a list of
        ``{"name": ..., "urls": [...], "rate_name": ...}`` objects, where
        ``rate_name`` is optional.

        Raises:
            ConfigError: If the file cannot be read, has unknown keys or a
                value of the wrong type.

        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot load config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")

        return cls().with_overrides(data)

    def with_overrides(self, overrides: dict) -> PipelineConfig:
        """Return a copy of this config with the given fields replaced."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {unknown}")

        values = dict(overrides)
        if "entry_urls" in values:
            values["entry_urls"] = frozenset(_url_list("entry_urls", values["entry_urls"]))
        if "billing_variants" in values:
            values["billing_variants"] = tuple(
                _url_list("billing_variants", values["billing_variants"])
            )
        if "funnel_stages" in values:
            try:
                values["funnel_stages"] = tuple(
                    FunnelStage(
                        name=s["name"],
                        urls=frozenset(_url_list(f"funnel stage {s['name']!r}", s["urls"])),
                        rate_name=s.get("rate_name"),
                    )
                    for s in values["funnel_stages"]
                )
            except (KeyError, TypeError, AttributeError) as e:
                raise ConfigError(f"Invalid funnel_stages definition: {e}") from e
        return replace(self, **values)


def _url_list(name: str, value: object) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{name} must be a list of URL strings, got {value!r}")
    return value
