"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys

import structlog

# -v steps down from the configured level
_VERBOSITY = ["warning", "info", "debug"]


def level_for(log_level: str, verbose: int = 0) -> str:
    """Combine the configured level with the number of -v flags."""
    base = _VERBOSITY.index(log_level.lower()) if log_level.lower() in _VERBOSITY else 0
    return _VERBOSITY[min(base + verbose, len(_VERBOSITY) - 1)]


def configure_logging(log_level: str = "warning", log_format: str = "console") -> None:
    """Set up structlog on stderr; JSON lines or human-readable console output.

    stdout is left alone for reports.
    """

    level = getattr(logging, log_level.upper(), logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # SQLAlchemy and friends log through the stdlib
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a named structlog logger."""
    return structlog.get_logger(name or __name__)
