"""Build tool action processes.

This module provides the AnyioProcessLauncher, which spawns processes
that share the terminal, and the ProcessRunner, which launches the
configured action and kills it again on request.
"""

import contextlib
from typing import TYPE_CHECKING, final

import anyio
import anyio.abc

from bzlwatch.exceptions import LaunchError

from ._logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from structlog.typing import FilteringBoundLogger

    from ._protocol import ProcessHandle, ProcessLauncher


@final
class AnyioProcessLauncher:
    """Spawns processes with anyio, inheriting stdin, stdout and stderr.

    When a task group is given, every spawned process is reaped in the
    background once it exits, so killed actions do not linger as zombies.
    Cancelling the task group kills any process still running.
    """

    __slots__ = ("_task_group",)

    def __init__(self, task_group: anyio.abc.TaskGroup | None = None) -> None:
        self._task_group = task_group

    async def launch(self, argv: "Sequence[str]") -> anyio.abc.Process:  # noqa: UP037
        """Spawn a process without waiting for it to finish.

        Raises:
            LaunchError: If the process cannot be spawned.
        """
        command = tuple(argv)
        try:
            process = await anyio.open_process(
                command, stdin=None, stdout=None, stderr=None
            )
        except OSError as e:
            msg = f"Failed to start '{' '.join(command)}': {e}"
            raise LaunchError(msg, argv=command, cause=e) from e

        if self._task_group is not None:
            self._task_group.start_soon(self._reap, process)
        return process

    @staticmethod
    async def _reap(process: anyio.abc.Process) -> None:
        async with process:
            _ = await process.wait()


@final
class ProcessRunner:
    """Launches the build tool action and terminates it on demand.

    Kills are best-effort and never wait for the process to exit, so an
    old action may briefly overlap with its replacement.
    """

    __slots__ = ("_launcher", "_logger", "executable")

    def __init__(
        self,
        executable: str,
        launcher: "ProcessLauncher",
        *,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        self.executable = executable
        self._launcher = launcher
        self._logger = logger

    @property
    def logger(self) -> "FilteringBoundLogger":  # noqa: UP037
        return self._logger if self._logger is not None else get_logger()

    async def launch(self, action: str, args: "Sequence[str]") -> "ProcessHandle":  # noqa: UP037
        """Start ``<executable> <action> <args...>``.

        Raises:
            LaunchError: If the process cannot be spawned.
        """
        argv = (self.executable, action, *args)
        handle = await self._launcher.launch(argv)
        self.logger.info("launched", command=" ".join(argv), pid=handle.pid)
        return handle

    def terminate(self, handle: "ProcessHandle") -> None:
        """Kill a launched action, ignoring any error.

        The process may already have exited, which is not a failure.
        """
        with contextlib.suppress(ProcessLookupError, OSError):
            handle.kill()
        self.logger.debug("terminated", pid=handle.pid)
