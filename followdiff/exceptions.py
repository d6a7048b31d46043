"""Custom exception hierarchy for followdiff."""


class FollowdiffError(Exception):
    """Base exception for all followdiff errors."""


class ScanSetupError(FollowdiffError):
    """The follower list never became available to scan."""

    def __init__(self, message: str, partial: list | None = None):
        super().__init__(message)
        self.partial = partial or []


class ProfileNotFoundError(ScanSetupError):
    """Profile does not exist or is suspended."""


class PageBlockedError(ScanSetupError):
    """Detected bot blocking or rate limit."""


class AssetFetchError(FollowdiffError):
    """Failed to download a profile picture."""


class SnapshotValidationError(FollowdiffError):
    """Snapshot data failed schema validation."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SnapshotNotFoundError(FollowdiffError):
    """No stored snapshot matches the requested timestamp."""


class StorageError(FollowdiffError):
    """Key-value store operation failed."""


class ConfigError(FollowdiffError):
    """Invalid configuration."""
