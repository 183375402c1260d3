"""Logging setup for hosts embedding Mnemos."""

from __future__ import annotations

import logging

import structlog

# Event fields that may carry user content; long values are clipped so a
# single oversized memory does not flood the log.
_CONTENT_FIELDS = ("content", "query", "conclusion", "event", "text")
_MAX_DISPLAY_LEN = 200

_logging_configured = False


def _truncate_content_fields(logger, method_name, event_dict):
    """Structlog processor: clip long content-bearing values."""
    for key in _CONTENT_FIELDS:
        val = event_dict.get(key)
        if isinstance(val, str) and len(val) > _MAX_DISPLAY_LEN:
            event_dict[key] = val[:_MAX_DISPLAY_LEN] + "... [truncated]"
    return event_dict


def configure_logging(level: int = logging.WARNING, colors: bool = True) -> None:
    """Configure structlog and standard-library logging.

    Safe to call more than once; later calls are no-ops. Library code
    never calls this; the embedding host does, before creating loggers.
    """
    global _logging_configured  # noqa: PLW0603
    if _logging_configured:
        return
    _logging_configured = True

    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            _truncate_content_fields,
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
