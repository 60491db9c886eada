"""Environment configuration for bzlwatch.

This module provides the WatchConfig Pydantic model and load_config(),
which reads it from environment variables:

    BAZEL_EXEC           Build tool executable (default: bazel)
    DEBOUNCE_DELAY       Debounce delay in milliseconds (default: 100)
    BZLWATCH_LOG_LEVEL   debug, info, warning or error (default: info)
    BZLWATCH_LOG_FORMAT  text or json (default: text)
    BZLWATCH_DEBUG       Any non-empty value forces debug logging
"""

import os
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bzlwatch.exceptions import ConfigValidationError


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT


class WatchConfig(BaseModel):
    """Runtime configuration.

    Attributes:
        executable: Build tool executable used for queries and actions.
        debounce_ms: Quiet period in milliseconds before changes are delivered.
        logging: Logging settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    executable: str = Field(default="bazel", min_length=1)
    debounce_ms: int = Field(default=100, ge=0)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Config key path -> environment variable
ENV_VARS: dict[tuple[str, ...], str] = {
    ("executable",): "BAZEL_EXEC",
    ("debounce_ms",): "DEBOUNCE_DELAY",
    ("logging", "level"): "BZLWATCH_LOG_LEVEL",
    ("logging", "format"): "BZLWATCH_LOG_FORMAT",
}


def _set_nested(target: dict[str, Any], path: tuple[str, ...], value: str) -> None:  # pyright: ignore[reportExplicitAny]
    *parents, leaf = path
    for key in parents:
        target = target.setdefault(key, {})
    target[leaf] = value


def load_config(environ: Mapping[str, str] | None = None) -> WatchConfig:
    """Load configuration from environment variables.

    Empty values are treated as unset.

    Args:
        environ: Environment to read. Defaults to os.environ.

    Returns:
        The validated configuration.

    Raises:
        ConfigValidationError: If a variable holds an invalid value.
    """
    env = os.environ if environ is None else environ

    values: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for path, var in ENV_VARS.items():
        raw = env.get(var, "").strip()
        if path[0] == "logging":
            raw = raw.lower()
        if raw:
            _set_nested(values, path, raw)

    if env.get("BZLWATCH_DEBUG", "").strip():
        _set_nested(values, ("logging", "level"), LogLevel.DEBUG.value)

    try:
        return WatchConfig.model_validate(values)
    except ValidationError as e:
        error = e.errors()[0]
        path = tuple(str(part) for part in error["loc"])
        var = ENV_VARS.get(path, ".".join(path))
        msg = f"Invalid value for {var}: {error['msg']}"
        raise ConfigValidationError(msg, key=var, value=error.get("input")) from e
