"""Pydantic models for followdiff."""

from followdiff.models.follower import FollowerRecord
from followdiff.models.snapshot import Snapshot
from followdiff.models.diff import DiffResult
from followdiff.models.scan import ScanState, ScanProgress, ScanResult, ImportResult

__all__ = [
    "FollowerRecord",
    "Snapshot",
    "DiffResult",
    "ScanState",
    "ScanProgress",
    "ScanResult",
    "ImportResult",
]
