"""Validation and normalization of snapshot data coming from outside the store."""

import math
from typing import Any

from followdiff.core.diff import dedupe_followers
from followdiff.exceptions import SnapshotValidationError
from followdiff.models.follower import FollowerRecord
from followdiff.models.snapshot import Snapshot


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_whole_number(value: Any) -> bool:
    """True for ints and finite integral floats. json.loads accepts NaN and Infinity."""
    if not _is_number(value):
        return False
    return isinstance(value, int) or (math.isfinite(value) and value.is_integer())


def _str_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


def validate_snapshot(obj: Any) -> Snapshot:
    """
    Validate one snapshot-like object and normalize optional fields.

    A legacy "usernames" list is accepted in place of "followers". Optional
    string fields of the wrong type are replaced by "" instead of rejected.
    Followers come back deduplicated and sorted like a freshly created snapshot.

    Args:
        obj: Decoded JSON value

    Returns:
        Normalized Snapshot

    Raises:
        SnapshotValidationError: With a human-readable reason
    """
    if not isinstance(obj, dict):
        raise SnapshotValidationError("Snapshot must be an object.")

    timestamp = obj.get("timestamp")
    if not _is_whole_number(timestamp) or timestamp <= 0:
        raise SnapshotValidationError("Snapshot missing valid timestamp.")

    followers = obj.get("followers")
    if not isinstance(followers, list):
        usernames = obj.get("usernames")
        if not isinstance(usernames, list):
            raise SnapshotValidationError("Snapshot missing followers array.")
        followers = [{"username": str(u), "fullName": "", "profilePicUrl": ""} for u in usernames]

    for i, follower in enumerate(followers):
        if not isinstance(follower, dict) or not isinstance(follower.get("username"), str):
            raise SnapshotValidationError(f"Invalid follower at index {i}.")

    records = dedupe_followers(
        FollowerRecord(
            username=f["username"],
            full_name=_str_or_empty(f.get("fullName")),
            profile_pic_url=_str_or_empty(f.get("profilePicUrl")),
        )
        for f in followers
    )

    # A stated count is trusted only while it still describes the follower list
    count = obj.get("count")
    if not _is_whole_number(count) or len(records) != len(followers):
        count = len(records)

    return Snapshot(
        timestamp=int(timestamp),
        count=int(count),
        scanned_user=_str_or_empty(obj.get("scannedUser")),
        followers=records,
    )


def validate_export_data(data: Any) -> list[Snapshot]:
    """
    Validate a whole export file.

    Accepts a bare list of snapshots or {"snapshots": [...]}. The first
    invalid entry rejects the whole file.

    Raises:
        SnapshotValidationError: Reason prefixed with the 1-based entry number
    """
    if not data and not isinstance(data, (list, dict)):
        raise SnapshotValidationError("File is empty or not valid JSON.")

    if isinstance(data, list):
        entries = data
    elif isinstance(data, dict) and isinstance(data.get("snapshots"), list):
        entries = data["snapshots"]
    else:
        raise SnapshotValidationError("Expected an array of snapshots or { snapshots: [...] }.")

    if not entries:
        raise SnapshotValidationError("No snapshots found in file.")

    validated = []
    for i, entry in enumerate(entries):
        try:
            validated.append(validate_snapshot(entry))
        except SnapshotValidationError as e:
            raise SnapshotValidationError(f"Snapshot #{i + 1}: {e.reason}") from e
    return validated
