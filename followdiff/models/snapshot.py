"""Snapshot data model."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from followdiff.models.follower import FollowerRecord


class Snapshot(BaseModel):
    """Timestamped capture of a follower list, sorted by username."""

    timestamp: int
    scanned_user: str = Field(default="", alias="scannedUser")
    followers: list[FollowerRecord] = []
    count: int = 0

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _default_count(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("count") is None:
            data = {**data, "count": len(data.get("followers") or [])}
        return data

    def to_storage(self) -> dict:
        """Dump to the camelCase shape used by the store and export files."""
        return self.model_dump(by_alias=True)
