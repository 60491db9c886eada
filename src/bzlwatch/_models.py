"""Data models for the watch loop.

This module defines the core data types shared by the loop components:
- ChangeKind: Kinds of filesystem change the watcher reports
- WatchEvent: A single coalesced change to one path
- LoopState: Phases of the trigger loop
- QueryResult: Raw output of one dependency query
- InvocationConfig: The action, its arguments and the watched targets
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Self

from bzlwatch.exceptions import MissingActionError, MissingTargetsError


class ChangeKind(StrEnum):
    """Kinds of filesystem change.

    Only MODIFIED, REMOVED and RENAMED trigger a relaunch. CREATED is
    reported for completeness and ignored by the loop.
    """

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"

    @property
    def is_relevant(self) -> bool:
        """Return True if this kind of change should retrigger the action."""
        return self is not ChangeKind.CREATED


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """A debounced change to a single watched path.

    Attributes:
        kind: What happened to the path.
        path: The filesystem path that changed.
    """

    kind: ChangeKind
    path: str


class LoopState(StrEnum):
    """Trigger loop phases.

    - INITIALIZING: Building the first watch set and launching the action
    - RUNNING: Waiting for the next filesystem event
    - REWATCHING: Re-resolving the watch set after a build file change
    - RELAUNCHING: Killing the current action and starting a new one
    - STOPPED: Shut down by a signal
    """

    INITIALIZING = "initializing"
    RUNNING = "running"
    REWATCHING = "rewatching"
    RELAUNCHING = "relaunching"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Captured output of a build tool query.

    Attributes:
        stdout_lines: Standard output split into lines.
        stderr: Standard error text, passed through for the user.
        exit_code: Process exit code. Not treated as a failure signal.
    """

    stdout_lines: tuple[str, ...]
    stderr: str = ""
    exit_code: int | None = None


@dataclass(frozen=True, slots=True)
class InvocationConfig:
    """What to run and what to watch.

    Attributes:
        action: Build tool command, e.g. ``build``, ``test`` or ``run``.
        args: Every token after the action, passed through verbatim.
        targets: Targets whose dependencies are watched.
    """

    action: str
    args: tuple[str, ...]
    targets: tuple[str, ...]

    @classmethod
    def from_argv(cls, tokens: Sequence[str]) -> Self:
        """Build an invocation from command line tokens.

        The first token is the action. Leading flag tokens after it are
        passed to the build tool but are not treated as targets, and
        neither is anything from a ``--`` separator on.

        Args:
            tokens: Command line tokens, excluding the program name.

        Returns:
            The parsed invocation.

        Raises:
            MissingActionError: If no tokens were given.
            MissingTargetsError: If nothing but flags follow the action.
        """
        if not tokens:
            raise MissingActionError

        action, *rest = tokens
        args = tuple(rest)

        index = 0
        while index < len(args) and args[index].startswith("-"):
            index += 1
        targets = args[index:]
        if "--" in targets:
            # Everything after "--" belongs to the program being run.
            targets = targets[: targets.index("--")]

        if not targets:
            raise MissingTargetsError

        return cls(action=action, args=args, targets=targets)
