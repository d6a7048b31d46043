"""Snapshot creation and comparison."""

import time
from operator import attrgetter
from typing import Iterable

from followdiff.models.diff import DiffResult
from followdiff.models.follower import FollowerRecord
from followdiff.models.snapshot import Snapshot

_by_username = attrgetter("username")


def dedupe_followers(followers: Iterable[FollowerRecord]) -> list[FollowerRecord]:
    """
    Collapse repeated usernames and sort by username.

    The first occurrence of a username is kept; its empty fields are filled
    from later occurrences.
    """
    unique: dict[str, FollowerRecord] = {}
    for follower in followers:
        existing = unique.get(follower.username)
        unique[follower.username] = existing.merged_with(follower) if existing else follower
    return sorted(unique.values(), key=_by_username)


def create_snapshot(
    followers: Iterable[FollowerRecord],
    scanned_user: str = "",
    timestamp: int | None = None,
) -> Snapshot:
    """
    Build a snapshot from a scanned follower list.

    Args:
        followers: Records in any order, possibly with repeats
        scanned_user: Handle of the profile that was scanned
        timestamp: Capture time in epoch milliseconds, now if None

    Returns:
        Snapshot with unique, sorted followers
    """
    unique = dedupe_followers(followers)
    return Snapshot(
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
        scanned_user=scanned_user,
        followers=unique,
        count=len(unique),
    )


def compute_diff(older: Snapshot, newer: Snapshot) -> DiffResult:
    """
    Compare two snapshots.

    Accounts only in older are unfollowed, accounts only in newer are new,
    and accounts in both are unchanged, reported with the newer record.
    All three lists are sorted by username.
    """
    older_map = {f.username: f for f in older.followers}
    newer_map = {f.username: f for f in newer.followers}

    unfollowed = [f for name, f in older_map.items() if name not in newer_map]
    new_followers = [f for name, f in newer_map.items() if name not in older_map]
    unchanged = [f for name, f in newer_map.items() if name in older_map]

    unfollowed.sort(key=_by_username)
    new_followers.sort(key=_by_username)
    unchanged.sort(key=_by_username)

    return DiffResult(
        unfollowed=unfollowed,
        new_followers=new_followers,
        unchanged=unchanged,
        older_date=older.timestamp,
        newer_date=newer.timestamp,
        older_count=len(older.followers),
        newer_count=len(newer.followers),
        unchanged_count=len(unchanged),
    )


def filter_followers(followers: Iterable[FollowerRecord], query: str) -> list[FollowerRecord]:
    """Case-insensitive substring match on username or display name."""
    needle = query.strip().lower()
    if not needle:
        return list(followers)
    return [
        f for f in followers
        if needle in f.username.lower() or needle in f.full_name.lower()
    ]
