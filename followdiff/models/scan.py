"""Scan outcome models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from followdiff.models.follower import FollowerRecord


class ScanState(str, Enum):
    """Lifecycle of a follower list scan."""
    IDLE = "idle"
    OPENING = "opening"
    SCROLLING = "scrolling"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ScanProgress(BaseModel):
    """Progress update pushed while a scan runs."""

    count: int
    status: str


class ScanResult(BaseModel):
    """Outcome of a finished (complete or cancelled) scan."""

    status: ScanState
    scanned_user: str = ""
    followers: list[FollowerRecord] = []
    scroll_cycles: int = 0
    pictures_inlined: int = 0
    scanned_at: datetime
    duration_ms: float

    @property
    def cancelled(self) -> bool:
        return self.status == ScanState.CANCELLED


class ImportResult(BaseModel):
    """Counts reported by a snapshot import."""

    added: int
    skipped: int
