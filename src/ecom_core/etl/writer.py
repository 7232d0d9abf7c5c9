"""Atomic CSV output and the marts directory lock.

Each output file is written to a temporary sibling and renamed into place,
so a reader never sees a half-written mart. Concurrent pipeline runs over
the same marts directory are serialised by an exclusive lock file.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import pandas as pd

from ecom_core.exceptions import PipelineLockedError

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".marts.lock"
LOCK_POLL_SECONDS = 0.1

MART_DATE_FORMAT = "%Y-%m-%d"


def render_csv(frame: pd.DataFrame, *, date_format: str = MART_DATE_FORMAT) -> str:
    """Render a frame as CSV text with fixed formatting.

    Decimals render via ``str`` (already quantized), missing values and
    undefined ratios as empty cells, datetimes with ``date_format``, and
    lines end with ``\\n`` on every platform.
    """
    return frame.to_csv(
        index=False,
        na_rep="",
        date_format=date_format,
        lineterminator="\n",
    )


def write_frame_atomic(
    frame: pd.DataFrame,
    path: Path,
    *,
    date_format: str = MART_DATE_FORMAT,
) -> Path:
    """Write a frame to ``path`` through a temporary file and an atomic rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = render_csv(frame, date_format=date_format)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    logger.debug("Wrote %d rows to %s", len(frame), path)
    return path


@contextmanager
def mart_lock(marts_dir: Path, timeout_seconds: float = 0.0) -> Iterator[Path]:
    """Hold the exclusive lock of a marts directory.

    Args:
        marts_dir: Directory whose writes are serialised.
        timeout_seconds: How long to wait for another holder to release it.

    Raises:
        PipelineLockedError: If the lock is still held after the timeout.

    """
    marts_dir.mkdir(parents=True, exist_ok=True)
    lock_path = marts_dir / LOCK_FILENAME
    deadline = time.monotonic() + timeout_seconds

    while True:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            break
        except FileExistsError:
            if time.monotonic() >= deadline:
                raise PipelineLockedError(
                    f"Marts directory {marts_dir} is locked by another run ({lock_path})"
                ) from None
            time.sleep(LOCK_POLL_SECONDS)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(str(os.getpid()))
        logger.debug("Acquired lock %s", lock_path)
        yield lock_path
    finally:
        lock_path.unlink(missing_ok=True)
        logger.debug("Released lock %s", lock_path)
