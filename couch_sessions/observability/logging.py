"""
Structured Logging Module - WBS 1.5.1

This module provides structured JSON logging for the session store.

Pattern: Structured logging for observability
Pattern: Singleton configuration (configure once at startup)

WBS Items:
- 1.5.1.1: Configure structlog with JSON formatter
- 1.5.1.2: Add timestamp and level processors
- 1.5.1.3: Configure based on log_level setting
- 1.5.1.4: Export get_logger() function
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor


_configured: bool = False


# =============================================================================
# Custom Processors - WBS 1.5.1.2
# =============================================================================


def add_timestamp(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO 8601 timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def rename_level(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename log_level to level for cleaner output."""
    if "log_level" in event_dict:
        event_dict["level"] = event_dict.pop("log_level")
    return event_dict


# =============================================================================
# WBS 1.5.1.3: Singleton Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """
    Configure structlog for the store.

    Subsequent calls are no-ops unless force=True. A structlog configuration
    installed by the host application is left in place.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream (default: sys.stdout)
        force: Force reconfiguration (for testing only)
    """
    global _configured

    if not force and (_configured or structlog.is_configured()):
        return

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_timestamp,
        rename_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """
    Reset logging configuration state.

    WARNING: This should only be used in tests.
    """
    global _configured
    _configured = False


# =============================================================================
# WBS 1.5.1.4: Logger Factory
# =============================================================================


def get_logger(name: str) -> Any:
    """
    Get a structured logger.

    The logger is a lazy proxy: it picks up the configuration active when
    it is used, so module-level loggers honour a later configure_logging()
    call (the store configures logging from Settings.log_level).

    Args:
        name: Logger name (typically module name)

    Returns:
        structlog lazy logger proxy with the name bound as logger_name

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("session_saved", sid="abc")
    """
    return structlog.get_logger(logger_name=name)


def _level_to_int(level: str) -> int:
    """Convert level string to logging int."""
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level.upper(), logging.INFO)
