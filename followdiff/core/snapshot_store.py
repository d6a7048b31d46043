"""Bounded, newest-first snapshot history on top of a key-value store."""

from typing import Any

from followdiff.core.schema import validate_export_data
from followdiff.logging import get_logger
from followdiff.models.scan import ImportResult
from followdiff.models.snapshot import Snapshot
from followdiff.storage.base import KeyValueStore

SNAPSHOTS_KEY = "follower_snapshots"


def migrate_record(raw: dict) -> dict:
    """Upgrade a stored record that predates structured follower entries."""
    if "followers" in raw or not isinstance(raw.get("usernames"), list):
        return raw
    return {
        **raw,
        "followers": [
            {"username": u, "fullName": "", "profilePicUrl": ""} for u in raw["usernames"]
        ],
    }


class SnapshotStore:
    """
    Snapshot history, newest first, capped at max_snapshots.

    Reads and writes are read-modify-write cycles on a single key and are
    not atomic against another writer of the same store; the last write wins.
    """

    def __init__(self, kv: KeyValueStore, max_snapshots: int = 10):
        self.kv = kv
        self.max_snapshots = max_snapshots
        self._log = get_logger("snapshot_store")

    async def _load_raw(self) -> list[dict]:
        return await self.kv.get(SNAPSHOTS_KEY) or []

    async def _write_raw(self, raw: list[dict]) -> None:
        await self.kv.set(SNAPSHOTS_KEY, raw)

    @staticmethod
    def _to_models(raw: list[dict]) -> list[Snapshot]:
        return [Snapshot.model_validate(migrate_record(r)) for r in raw]

    async def save(self, snapshot: Snapshot) -> list[Snapshot]:
        """
        Prepend a snapshot, dropping entries past the retention bound.

        Trimming is by position: the entries at the end of the list (saved
        earliest) are the ones dropped. A timestamp already in the store is
        moved one past the newest stored timestamp, so the saved snapshot
        is always the first entry returned.

        Returns:
            The stored snapshots after the save
        """
        raw = await self._load_raw()
        taken = {r.get("timestamp") for r in raw}
        if snapshot.timestamp in taken:
            bumped = max(t for t in taken if isinstance(t, int)) + 1
            self._log.info("snapshot_timestamp_bumped", requested=snapshot.timestamp, timestamp=bumped)
            snapshot = snapshot.model_copy(update={"timestamp": bumped})

        raw.insert(0, snapshot.to_storage())
        dropped = len(raw) - self.max_snapshots
        if dropped > 0:
            del raw[self.max_snapshots:]
        await self._write_raw(raw)
        self._log.info(
            "snapshot_saved",
            timestamp=snapshot.timestamp,
            count=snapshot.count,
            evicted=max(dropped, 0),
        )
        return self._to_models(raw)

    async def list_snapshots(self) -> list[Snapshot]:
        """All stored snapshots, legacy records upgraded on the fly."""
        return self._to_models(await self._load_raw())

    async def get(self, timestamp: int) -> Snapshot | None:
        for raw in await self._load_raw():
            if raw.get("timestamp") == timestamp:
                return Snapshot.model_validate(migrate_record(raw))
        return None

    async def delete(self, timestamp: int) -> list[Snapshot]:
        """
        Remove the snapshot with this timestamp. Nothing is written when absent.

        Returns:
            The remaining snapshots
        """
        raw = await self._load_raw()
        remaining = [r for r in raw if r.get("timestamp") != timestamp]
        if len(remaining) != len(raw):
            await self._write_raw(remaining)
            self._log.info("snapshot_deleted", timestamp=timestamp)
        return self._to_models(remaining)

    async def import_data(self, data: Any) -> ImportResult:
        """
        Merge snapshots from an export file into the store.

        Candidates whose timestamp is already stored (or repeated earlier in
        the same file) are skipped. The merged set is re-sorted newest first
        and trimmed to the retention bound.

        Raises:
            SnapshotValidationError: The file is invalid; nothing is changed
        """
        candidates = validate_export_data(data)
        raw = await self._load_raw()
        seen = {r.get("timestamp") for r in raw}

        added: list[dict] = []
        skipped = 0
        for snapshot in candidates:
            if snapshot.timestamp in seen:
                skipped += 1
                continue
            seen.add(snapshot.timestamp)
            added.append(snapshot.to_storage())

        if added:
            merged = sorted(raw + added, key=lambda r: r.get("timestamp", 0), reverse=True)
            await self._write_raw(merged[:self.max_snapshots])

        self._log.info("import_complete", added=len(added), skipped=skipped)
        return ImportResult(added=len(added), skipped=skipped)

    async def clear(self) -> None:
        await self.kv.delete(SNAPSHOTS_KEY)
