"""structlog setup shared by the CLI and library callers."""

from __future__ import annotations

import logging
import os
import sys

import structlog

from threatflow.config import (
    DEFAULT_LOG_LEVEL,
    ENV_LOG_LEVEL,
    debug_enabled,
)


def resolve_level(level: str | None = None) -> int:
    """Pick the log level: explicit arg, then debug flag, then env."""
    if level is None:
        if debug_enabled():
            return logging.DEBUG
        level = os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.WARNING


def configure_logging(level: str | None = None) -> None:
    """Route structlog through stdlib logging on stderr."""
    log_level = resolve_level(level)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
