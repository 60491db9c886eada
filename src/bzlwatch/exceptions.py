"""bzlwatch exceptions."""

from typing import Any


class BzlwatchError(Exception):
    """Base exception for bzlwatch errors."""


# =============================================================================
# Invocation Exceptions
# =============================================================================


class InvocationError(BzlwatchError):
    """Base exception for command line invocation errors."""


class MissingActionError(InvocationError):
    """Raised when no build tool action (build, test, run) was supplied."""

    def __init__(self, message: str = "missing action (build, test, run, ...)") -> None:
        super().__init__(message)


class MissingTargetsError(InvocationError):
    """Raised when only flags (or nothing) follow the action."""

    def __init__(self, message: str = "missing targets to watch") -> None:
        super().__init__(message)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(BzlwatchError):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]


# =============================================================================
# Query Exceptions
# =============================================================================


class QueryError(BzlwatchError):
    """Base exception for dependency query errors."""


class QuerySpawnError(QueryError):
    """Raised when the build tool query subprocess cannot be started.

    Attributes:
        expression: The query expression that was being run.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and query context.

        Args:
            message: Human-readable error message.
            expression: The query expression that was being run.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.expression: str = expression
        self.cause: Exception | None = cause


# =============================================================================
# Watch Exceptions
# =============================================================================


class WatchError(BzlwatchError):
    """Base exception for filesystem watch errors."""


class WatchRegistrationError(WatchError):
    """Raised when a path cannot be registered with the watcher.

    Attributes:
        path: The path that could not be watched.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and path context.

        Args:
            message: Human-readable error message.
            path: The path that could not be watched.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.path: str = path
        self.cause: Exception | None = cause


class EventStreamError(WatchError):
    """Raised when the notification backend fails while delivering events."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause: Exception | None = cause


# =============================================================================
# Process Exceptions
# =============================================================================


class LaunchError(BzlwatchError):
    """Raised when the build tool action process cannot be spawned.

    Attributes:
        argv: The command line that failed to start.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        argv: tuple[str, ...],
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and process context.

        Args:
            message: Human-readable error message.
            argv: The command line that failed to start.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.argv: tuple[str, ...] = argv
        self.cause: Exception | None = cause
