"""Structured logging for autotag.

Every event goes to stderr, so stdout carries only the computed tag (or the
JSON result record). Events render for a terminal by default, or as one
JSON object per line with ``--json-log``.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(
    *, verbose: bool = False, quiet: bool = False, json_log: bool = False
) -> None:
    """Set the level and renderer for all autotag loggers.

    ``quiet`` wins over ``verbose``: warnings and errors only.
    """
    level = logging.WARNING if quiet else logging.DEBUG if verbose else logging.INFO
    if json_log:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "autotag") -> structlog.typing.FilteringBoundLogger:
    # Module loggers are created at import time; the proxy picks up the
    # configuration on each call.
    return structlog.get_logger(logger=name)
