"""Request/response message handling between a UI surface and the tracker."""

from enum import Enum
from typing import Any

from pydantic import ValidationError

from followdiff.core.orchestrator import FollowerTracker
from followdiff.exceptions import FollowdiffError
from followdiff.logging import get_logger
from followdiff.models.follower import FollowerRecord


class MessageType(str, Enum):
    """Message types understood by MessageRouter."""
    SCAN_FOLLOWERS = "SCAN_FOLLOWERS"
    SCAN_FOLLOWERS_PROGRESS = "SCAN_FOLLOWERS_PROGRESS"
    SCAN_FOLLOWERS_COMPLETE = "SCAN_FOLLOWERS_COMPLETE"
    SCAN_FOLLOWERS_ERROR = "SCAN_FOLLOWERS_ERROR"
    CANCEL_OPERATION = "CANCEL_OPERATION"
    GET_SNAPSHOTS = "GET_SNAPSHOTS"
    DELETE_SNAPSHOT = "DELETE_SNAPSHOT"
    GET_DIFF = "GET_DIFF"
    IMPORT_SNAPSHOTS = "IMPORT_SNAPSHOTS"
    EXPORT_SNAPSHOTS = "EXPORT_SNAPSHOTS"


class MessageRouter:
    """
    Dispatches {"type": ..., **payload} messages to a FollowerTracker.

    Responses keep the same shape whatever the transport; domain errors come
    back as {"error": reason} rather than raising.
    """

    def __init__(self, tracker: FollowerTracker):
        self.tracker = tracker
        self._log = get_logger("router")
        self._handlers = {
            MessageType.SCAN_FOLLOWERS: self._scan,
            MessageType.SCAN_FOLLOWERS_COMPLETE: self._scan_complete,
            MessageType.CANCEL_OPERATION: self._cancel,
            MessageType.GET_SNAPSHOTS: self._get_snapshots,
            MessageType.DELETE_SNAPSHOT: self._delete_snapshot,
            MessageType.GET_DIFF: self._get_diff,
            MessageType.IMPORT_SNAPSHOTS: self._import,
            MessageType.EXPORT_SNAPSHOTS: self._export,
        }

    async def handle(self, message: dict) -> dict:
        msg_type = message.get("type") if isinstance(message, dict) else None
        try:
            handler = self._handlers[MessageType(msg_type)]
        except (ValueError, KeyError):
            return {"error": f"Unknown message type: {msg_type}"}

        try:
            return await handler(message)
        except FollowdiffError as e:
            self._log.info("message_failed", type=msg_type, error=str(e))
            return {"error": str(e)}

    async def _scan(self, message: dict) -> dict:
        return self.tracker.start_scan(message.get("targetUser"))

    async def _scan_complete(self, message: dict) -> dict:
        try:
            followers = [FollowerRecord.model_validate(f) for f in message.get("followers") or []]
        except ValidationError as e:
            return {"error": f"Invalid follower list: {e.error_count()} error(s)"}
        snapshot, total = await self.tracker.complete_scan(followers, message.get("scannedUser") or "")
        return {"snapshot": snapshot.to_storage(), "totalSnapshots": total}

    async def _cancel(self, message: dict) -> dict:
        return self.tracker.cancel_scan()

    async def _get_snapshots(self, message: dict) -> dict:
        snapshots = await self.tracker.list_snapshots()
        return {"snapshots": [s.to_storage() for s in snapshots]}

    async def _delete_snapshot(self, message: dict) -> dict:
        remaining = await self.tracker.delete_snapshot(message.get("timestamp"))
        return {"snapshots": [s.to_storage() for s in remaining]}

    async def _get_diff(self, message: dict) -> dict:
        diff = await self.tracker.diff(message.get("olderTimestamp"), message.get("newerTimestamp"))
        return {"diff": diff.model_dump(by_alias=True)}

    async def _import(self, message: dict) -> dict:
        result = await self.tracker.import_data(message.get("data"))
        return result.model_dump()

    async def _export(self, message: dict) -> dict:
        return {"snapshots": await self.tracker.export(bool(message.get("stripImages")))}
