"""Snapshot diff result model."""

from pydantic import BaseModel, Field

from followdiff.models.follower import FollowerRecord


class DiffResult(BaseModel):
    """Three-way comparison between an older and a newer snapshot."""

    unfollowed: list[FollowerRecord] = []
    new_followers: list[FollowerRecord] = Field(default=[], alias="newFollowers")
    unchanged: list[FollowerRecord] = []
    older_date: int = Field(alias="olderDate")
    newer_date: int = Field(alias="newerDate")
    older_count: int = Field(alias="olderCount")
    newer_count: int = Field(alias="newerCount")
    unchanged_count: int = Field(alias="unchangedCount")

    model_config = {"populate_by_name": True}
