"""Quality checks for the typed snapshot and the built marts.

Example:
    >>> from ecom_core.qa import run_snapshot_qa
    >>> result = run_snapshot_qa(snapshot)
    >>> result.summary["gaps"]
    {'order->session': 0, ...}

"""

from ecom_core.qa.checks import SnapshotQAResult, assert_unique_grain, run_snapshot_qa

__all__ = ["SnapshotQAResult", "assert_unique_grain", "run_snapshot_qa"]
