"""Wiring of the real collaborators into a running trigger loop."""

from typing import TYPE_CHECKING

import anyio

from bzlwatch._loop import TriggerLoop
from bzlwatch._query import BazelQueryRunner, QueryClient
from bzlwatch._runner import AnyioProcessLauncher, ProcessRunner
from bzlwatch._watcher import FileWatcher
from bzlwatch._watchset import WatchSetManager
from bzlwatch.exceptions import BzlwatchError

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from bzlwatch._models import InvocationConfig
    from bzlwatch.config import WatchConfig


async def serve(
    invocation: "InvocationConfig",
    config: "WatchConfig",
    logger: "FilteringBoundLogger",
) -> None:
    """Watch the invocation's targets and rerun its action until interrupted.

    Args:
        invocation: The action, arguments and targets.
        config: Executable and debounce settings.
        logger: Logger shared by all components.

    Raises:
        BzlwatchError: On any fatal query, watch or launch failure.
    """
    watcher = FileWatcher(debounce_ms=config.debounce_ms)
    client = QueryClient(BazelQueryRunner(config.executable), logger=logger)
    watch_set = WatchSetManager(client, watcher, logger=logger)

    error: BzlwatchError | None = None
    async with anyio.create_task_group() as tg:
        runner = ProcessRunner(
            config.executable, AnyioProcessLauncher(tg), logger=logger
        )
        loop = TriggerLoop(
            invocation,
            watch_set=watch_set,
            runner=runner,
            events=watcher,
            logger=logger,
        )
        try:
            await loop.run(handle_signals=True)
        except BzlwatchError as e:
            error = e
        # Cancelling the reapers kills any action still running.
        tg.cancel_scope.cancel()

    if error is not None:
        raise error
