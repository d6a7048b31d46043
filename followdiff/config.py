"""Configuration management using Pydantic Settings."""

from enum import Enum

from pydantic_settings import BaseSettings


class StoreBackend(str, Enum):
    """Key-value store backend for persisted snapshots."""
    SQLITE = "sqlite"
    REDIS = "redis"
    MEMORY = "memory"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


class TrackerConfig(BaseSettings):
    """Configuration for the followdiff tracker."""

    # Browser settings
    headless: bool = True
    browser_timeout_ms: int = 30000
    user_agent: str | None = None
    proxy_url: str | None = None
    storage_state_path: str | None = None
    base_url: str = "https://www.instagram.com"

    # Scroll loop
    scroll_step_px: int = 400
    settle_delay_ms: int = 1500
    stall_threshold: int = 5
    stall_delta_px: int = 5

    # Overlay handling
    open_settle_ms: int = 2000
    reuse_settle_ms: int = 400
    overlay_timeout_ms: int = 8000
    container_attempts: int = 20
    container_interval_ms: int = 600
    watch_interval_ms: int = 250

    # Pacing
    min_delay_ms: int = 1000
    max_delay_ms: int = 3000

    # Profile pictures
    inline_pictures: bool = True
    asset_batch_size: int = 10

    # Storage
    store_backend: StoreBackend = StoreBackend.SQLITE
    sqlite_path: str = ".followdiff.db"
    redis_url: str = "redis://localhost:6379/0"
    max_snapshots: int = 10

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE

    model_config = {
        "env_prefix": "FOLLOWDIFF_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }
