"""Logging setup for followdiff."""

from followdiff.logging.setup import (
    configure_logging,
    get_logger,
    bind_scan_context,
    clear_scan_context,
)

__all__ = ["configure_logging", "get_logger", "bind_scan_context", "clear_scan_context"]
