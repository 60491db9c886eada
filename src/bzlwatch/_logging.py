"""Logging utilities for bzlwatch.

This module provides a standalone structlog logger factory that writes
text or JSON formatted logs to standard error. Loggers are self-contained
and do not modify global structlog configuration.
"""

import logging
import sys
from os import getenv
from typing import TYPE_CHECKING, Literal, TextIO, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

LogFormatType = Literal["json", "text"]

_default_logger: "FilteringBoundLogger | None" = None  # noqa: UP037


def log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).
        respect_env: If True, BZLWATCH_DEBUG overrides to DEBUG level.

    Returns:
        The logging level as an integer. Unknown names map to INFO.
    """
    if respect_env and getenv("BZLWATCH_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


def create_logger(
    *,
    level: str = "info",
    log_format: LogFormatType = "text",
    stream: TextIO | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger writing to a stream.

    Args:
        level: Log level threshold (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        stream: Where to write. Defaults to standard error.

    Returns:
        A configured FilteringBoundLogger instance.
    """
    effective_level = log_level_from_string(level, respect_env=True)
    logger_factory = structlog.WriteLoggerFactory(
        file=stream if stream is not None else sys.stderr
    )

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            logger_factory(),
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(effective_level),
            context_class=dict,
        ),
    )


def get_logger() -> "FilteringBoundLogger":  # noqa: UP037
    """Return the shared logger, creating a default one on first use."""
    global _default_logger  # noqa: PLW0603
    if _default_logger is None:
        _default_logger = create_logger()
    return _default_logger


def set_logger(logger: "FilteringBoundLogger") -> None:  # noqa: UP037
    """Replace the shared logger returned by get_logger()."""
    global _default_logger  # noqa: PLW0603
    _default_logger = logger
