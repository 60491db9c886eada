"""Trigger loop coordinating watches, events and the build tool action.

This module provides the TriggerLoop class, which owns the running action
and the watch set, and restarts the action whenever a watched file changes.
"""

import signal
from typing import TYPE_CHECKING, final

import anyio

from bzlwatch.exceptions import BzlwatchError, EventStreamError

from ._classify import is_build_definition_file
from ._logging import get_logger
from ._models import LoopState

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ._models import InvocationConfig, WatchEvent
    from ._protocol import EventSource, ProcessHandle
    from ._runner import ProcessRunner
    from ._watchset import WatchSetManager

# Seconds to wait before reopening a failed event stream.
STREAM_RETRY_DELAY = 1.0


@final
class TriggerLoop:
    """Relaunches a build tool action whenever its inputs change.

    Events are handled strictly one at a time. For each relevant change the
    running action is killed, the watch set is rebuilt if a build file
    changed, and the action is launched again with the original arguments.

    Attributes:
        invocation: The action, arguments and targets being watched.
        state: Current loop phase.
        process: Handle to the running action, if one has been launched.
        launch_count: Number of times the action has been launched.
        rebuild_count: Number of watch set rebuilds after the initial one.
    """

    __slots__ = (
        "_events",
        "_logger",
        "_runner",
        "_watch_set",
        "invocation",
        "launch_count",
        "process",
        "rebuild_count",
        "retry_delay",
        "state",
    )

    def __init__(  # noqa: PLR0913
        self,
        invocation: "InvocationConfig",
        *,
        watch_set: "WatchSetManager",
        runner: "ProcessRunner",
        events: "EventSource",
        logger: "FilteringBoundLogger | None" = None,
        retry_delay: float = STREAM_RETRY_DELAY,
    ) -> None:
        self.invocation = invocation
        self._watch_set = watch_set
        self._runner = runner
        self._events = events
        self._logger = logger
        self.retry_delay = retry_delay
        self.state = LoopState.INITIALIZING
        self.process: ProcessHandle | None = None
        self.launch_count = 0
        self.rebuild_count = 0

    @property
    def logger(self) -> "FilteringBoundLogger":  # noqa: UP037
        return self._logger if self._logger is not None else get_logger()

    async def start(self) -> None:
        """Build the initial watch set and launch the action once.

        Raises:
            QuerySpawnError: If a dependency query cannot be started.
            WatchRegistrationError: If a dependency cannot be watched.
            LaunchError: If the action cannot be spawned.
        """
        self.state = LoopState.INITIALIZING
        _ = await self._watch_set.rebuild_watches(self.invocation.targets)
        await self._launch()
        self.state = LoopState.RUNNING

    async def handle_event(self, event: "WatchEvent") -> bool:  # noqa: UP037
        """Kill and relaunch the action in response to one change.

        Args:
            event: The change to react to.

        Returns:
            True if the action was relaunched, False if the event was ignored.

        Raises:
            QuerySpawnError: If re-resolving the watch set fails to query.
            WatchRegistrationError: If re-resolving the watch set fails.
            LaunchError: If the action cannot be spawned again.
        """
        if not event.kind.is_relevant:
            return False

        self.logger.info("changed", path=event.path, kind=event.kind.value)
        self.state = LoopState.RELAUNCHING
        if self.process is not None:
            self._runner.terminate(self.process)
            self.process = None

        if is_build_definition_file(event.path):
            # Build files can change the dependency graph itself.
            self.state = LoopState.REWATCHING
            self.logger.info("rewatching", targets=list(self.invocation.targets))
            _ = await self._watch_set.rebuild_watches(self.invocation.targets)
            self.rebuild_count += 1
            self.state = LoopState.RELAUNCHING

        await self._launch()
        self.state = LoopState.RUNNING
        return True

    async def _launch(self) -> None:
        self.process = await self._runner.launch(
            self.invocation.action, self.invocation.args
        )
        self.launch_count += 1

    async def _consume(self) -> None:
        while True:
            try:
                async for event in self._events.events():
                    _ = await self.handle_event(event)
            except EventStreamError as e:
                self.logger.warning("event_stream_error", error=str(e))
                await anyio.sleep(self.retry_delay)
            else:
                self.logger.debug("event_stream_closed")
                return

    async def run(self, *, handle_signals: bool = False) -> None:
        """Start the action and keep it in sync with its inputs.

        Runs until the event stream ends or, with ``handle_signals``, until
        SIGINT or SIGTERM is received. The running action is killed on the
        way out.

        Args:
            handle_signals: Stop cleanly on SIGINT and SIGTERM.

        Raises:
            BzlwatchError: If a query, watch registration or launch fails.
        """
        await self.start()

        if not handle_signals:
            await self._consume()
            return

        error: BzlwatchError | None = None
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._watch_signals, tg.cancel_scope)
            try:
                await self._consume()
            except BzlwatchError as e:
                # Re-raised below so callers see it outside the task group.
                error = e
            tg.cancel_scope.cancel()

        self.stop()
        if error is not None:
            raise error

    async def _watch_signals(self, scope: anyio.CancelScope) -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for signum in signals:
                self.logger.info("shutdown", signal=signal.Signals(signum).name)
                break
        scope.cancel()

    def stop(self) -> None:
        """Kill the running action and mark the loop stopped."""
        if self.process is not None:
            self._runner.terminate(self.process)
            self.process = None
        self.state = LoopState.STOPPED
