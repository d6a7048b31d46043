"""Structlog setup: one stderr stream, JSON for machines or colour for people."""

import logging
import sys

import structlog

from followdiff.config import TrackerConfig, LogFormat

# Keys bound for the lifetime of one scan
SCAN_CONTEXT_KEYS = ("scan_id", "target_user")


def _renderers(log_format: LogFormat) -> list:
    if log_format == LogFormat.JSON:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(config: TrackerConfig | None = None) -> None:
    """
    Route structlog and stdlib logging to stderr at the configured level.

    stdout is left to the CLI, whose tables and exports may be piped.
    Scan context bound with bind_scan_context is merged into every event.

    Args:
        config: TrackerConfig instance, uses defaults if None
    """
    config = config or TrackerConfig()
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # Libraries that log through stdlib (aiosqlite, playwright) share the stream
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderers(config.log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Logger tagged with logger_name=name when a component name is given."""
    logger = structlog.get_logger()
    return logger.bind(logger_name=name) if name else logger


def bind_scan_context(scan_id: str, target_user: str | None = None) -> None:
    """Tag every event logged by the current task until clear_scan_context()."""
    structlog.contextvars.bind_contextvars(scan_id=scan_id, target_user=target_user or "")


def clear_scan_context() -> None:
    structlog.contextvars.unbind_contextvars(*SCAN_CONTEXT_KEYS)
