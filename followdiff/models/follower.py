"""Follower record model."""

from pydantic import BaseModel, Field


class FollowerRecord(BaseModel):
    """One account seen in a follower list, keyed by username."""

    username: str
    full_name: str = Field(default="", alias="fullName")
    profile_pic_url: str = Field(default="", alias="profilePicUrl")

    model_config = {"populate_by_name": True}

    @property
    def has_remote_picture(self) -> bool:
        """True when the picture is still a remote URL rather than inline data."""
        return self.profile_pic_url.startswith(("http://", "https://"))

    @property
    def is_complete(self) -> bool:
        return bool(self.full_name and self.profile_pic_url)

    def merged_with(self, other: "FollowerRecord") -> "FollowerRecord":
        """
        Combine two sightings of the same account.

        Fields already known on self are kept; empty fields are filled from
        other. A non-empty value is never replaced by an empty one.
        """
        return FollowerRecord(
            username=self.username,
            full_name=self.full_name or other.full_name,
            profile_pic_url=self.profile_pic_url or other.profile_pic_url,
        )
