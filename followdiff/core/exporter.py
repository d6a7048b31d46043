"""Export utilities for snapshot history."""

import json
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from followdiff.exceptions import SnapshotValidationError
from followdiff.models.diff import DiffResult
from followdiff.models.snapshot import Snapshot

if TYPE_CHECKING:
    import pandas as pd

try:
    import pandas as pd
    PANDAS_AVAILABLE = True
except ImportError:
    PANDAS_AVAILABLE = False


def export_snapshots(snapshots: list[Snapshot], strip_images: bool = False) -> list[dict]:
    """
    Convert snapshots to the export file shape.

    Args:
        snapshots: Snapshots to export
        strip_images: Replace every profile picture with "" to keep files small

    Returns:
        List of {timestamp, count, scannedUser, followers} dicts
    """
    return [
        {
            "timestamp": s.timestamp,
            "count": s.count,
            "scannedUser": s.scanned_user,
            "followers": [
                {
                    "username": f.username,
                    "fullName": f.full_name,
                    "profilePicUrl": "" if strip_images else f.profile_pic_url,
                }
                for f in s.followers
            ],
        }
        for s in snapshots
    ]


def to_json(snapshots: list[Snapshot], strip_images: bool = False, indent: int = 2) -> str:
    """Serialize snapshots to an export JSON string."""
    return json.dumps(export_snapshots(snapshots, strip_images), indent=indent, ensure_ascii=False)


def default_export_name() -> str:
    """File name used when the caller gives a directory instead of a file."""
    return f"followers-{int(time.time() * 1000)}.json"


def save_export(
    snapshots: list[Snapshot],
    filepath: str | Path,
    strip_images: bool = False,
    indent: int = 2,
) -> Path:
    """
    Write snapshots to an export file.

    Args:
        snapshots: Snapshots to save
        filepath: Output file, or an existing directory to place a timestamped file in
        strip_images: Drop profile pictures
        indent: JSON indentation level

    Returns:
        Path to the saved file
    """
    path = Path(filepath)
    if path.is_dir():
        path = path / default_export_name()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_json(snapshots, strip_images, indent), encoding="utf-8")
    return path


def load_export(filepath: str | Path) -> Any:
    """
    Read the raw JSON of an export file. Schema validation happens on import.

    Raises:
        SnapshotValidationError: The file is not valid JSON
    """
    path = Path(filepath)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SnapshotValidationError("Invalid JSON file.") from e


def _check_pandas():
    """Raise ImportError if pandas is not available."""
    if not PANDAS_AVAILABLE:
        raise ImportError(
            "pandas is required for DataFrame export. Install with: pip install followdiff[pandas]"
        )


def snapshot_to_df(snapshot: Snapshot) -> "pd.DataFrame":
    """
    One row per follower, with the snapshot timestamp on every row.

    Raises:
        ImportError: If pandas is not installed
    """
    _check_pandas()

    rows = []
    for follower in snapshot.followers:
        row = follower.model_dump()
        row["snapshot_timestamp"] = snapshot.timestamp
        rows.append(row)
    return pd.DataFrame(rows, columns=["username", "full_name", "profile_pic_url", "snapshot_timestamp"])


def diff_to_df(diff: DiffResult) -> "pd.DataFrame":
    """
    Flatten a diff into one row per account with a "change" column
    (unfollowed, new or unchanged).

    Raises:
        ImportError: If pandas is not installed
    """
    _check_pandas()

    rows = []
    for change, followers in (
        ("unfollowed", diff.unfollowed),
        ("new", diff.new_followers),
        ("unchanged", diff.unchanged),
    ):
        for follower in followers:
            row = follower.model_dump()
            row["change"] = change
            rows.append(row)
    return pd.DataFrame(rows, columns=["username", "full_name", "profile_pic_url", "change"])
