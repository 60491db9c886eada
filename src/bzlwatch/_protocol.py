"""Protocol definitions for the watch loop collaborators.

This module defines the capabilities the loop depends on, so the real
build tool, filesystem watcher and process spawning can be replaced by
fakes:
- QueryRunner: Runs a query expression against the build tool
- PathWatcher: Registers paths for change notification
- EventSource: Delivers debounced change events
- ProcessHandle: A running build tool action
- ProcessLauncher: Spawns build tool actions
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from ._models import QueryResult, WatchEvent


@runtime_checkable
class QueryRunner(Protocol):
    """Protocol for running build tool queries."""

    async def run_query(self, expression: str) -> "QueryResult":  # noqa: UP037
        """Run a query expression and capture its output.

        Args:
            expression: An expression in the build tool's query language.

        Returns:
            The captured output. A non-zero exit code is not an error.

        Raises:
            QuerySpawnError: If the query process cannot be started.
        """
        ...


@runtime_checkable
class PathWatcher(Protocol):
    """Protocol for registering watched paths."""

    def watch(self, path: str) -> bool:
        """Register a non-recursive watch on a path.

        Registering the same path twice is a no-op.

        Args:
            path: Filesystem path to watch.

        Returns:
            True if the path was newly registered, False if already watched.

        Raises:
            WatchRegistrationError: If the path cannot be watched.
        """
        ...


@runtime_checkable
class EventSource(Protocol):
    """Protocol for consuming debounced filesystem events."""

    def events(self) -> "AsyncIterator[WatchEvent]":  # noqa: UP037
        """Return an ordered stream of change events.

        Raises:
            EventStreamError: If the notification backend fails mid-stream.
        """
        ...


@runtime_checkable
class ProcessHandle(Protocol):
    """Protocol for a running build tool action."""

    @property
    def pid(self) -> int:
        """Return the process ID."""
        ...

    def kill(self) -> None:
        """Forcibly terminate the process.

        Raises:
            ProcessLookupError: If the process has already exited.
            OSError: If the signal cannot be delivered.
        """
        ...


@runtime_checkable
class ProcessLauncher(Protocol):
    """Protocol for spawning build tool actions."""

    async def launch(self, argv: "Sequence[str]") -> ProcessHandle:  # noqa: UP037
        """Spawn a process without waiting for it to finish.

        Raises:
            LaunchError: If the process cannot be spawned.
        """
        ...
