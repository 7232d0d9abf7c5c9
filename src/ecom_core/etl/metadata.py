"""Run metadata for built marts.

One JSON file per mart is kept in ``<marts>/_meta/``. It records when the
mart was last built, its grain and row count, and whether the write
succeeded. The mart CSV itself carries no run-specific values, so it stays
byte-identical across runs while the metadata changes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

BUILDER_VERSION = "marts_v1"


@dataclass
class MartMetadata:
    """Metadata for one mart build.

    Attributes:
        mart: Mart table name (e.g. "bi_sales").
        report: Report name that produced it (e.g. "sales").
        grain: Key columns that identify a row.
        rows: Number of rows written.
        builder_version: Version identifier of the mart logic.
        last_run: ISO timestamp of when the mart was built.
        status: "ok" or "failed".

    """

    mart: str
    report: str
    grain: list[str]
    rows: int
    builder_version: str
    last_run: str  # ISO timestamp
    status: str  # "ok" | "failed"

    def to_dict(self) -> dict:
        """Convert metadata to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> MartMetadata:
        """Create metadata from dictionary."""
        return cls(**data)


def metadata_path(marts_dir: Path, mart: str) -> Path:
    """Path of the metadata file for a mart."""
    return marts_dir / "_meta" / f"{mart}.json"


def write_metadata(marts_dir: Path, metadata: MartMetadata) -> None:
    """Write metadata JSON to the ``_meta/`` subdirectory."""
    path = metadata_path(marts_dir, metadata.mart)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(metadata.to_dict(), f, indent=2, ensure_ascii=False)
    logger.debug("Wrote metadata: %s", path)


def read_metadata(marts_dir: Path, mart: str) -> MartMetadata | None:
    """Read a mart's metadata if it exists.

    Returns:
        MartMetadata, or None if the file is missing or corrupted.

    """
    path = metadata_path(marts_dir, mart)
    if not path.exists():
        return None

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return MartMetadata.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        logger.warning("Error reading metadata %s: %s", path, e)
        return None
