"""followdiff - follower list snapshots and diffs."""

from followdiff.models.follower import FollowerRecord
from followdiff.models.snapshot import Snapshot
from followdiff.models.diff import DiffResult
from followdiff.models.scan import ScanResult, ImportResult
from followdiff.config import TrackerConfig
from followdiff.core.orchestrator import FollowerTracker
from followdiff.core.diff import compute_diff, create_snapshot
from followdiff.core.schema import validate_snapshot, validate_export_data
from followdiff.core.exporter import export_snapshots, save_export, load_export

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "FollowerTracker",
    "TrackerConfig",
    # Models
    "FollowerRecord",
    "Snapshot",
    "DiffResult",
    "ScanResult",
    "ImportResult",
    # Snapshot operations
    "compute_diff",
    "create_snapshot",
    "validate_snapshot",
    "validate_export_data",
    # Export utilities
    "export_snapshots",
    "save_export",
    "load_export",
    "__version__",
]
