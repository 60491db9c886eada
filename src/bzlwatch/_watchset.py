"""Watch set construction.

This module provides the WatchSetManager, which resolves every target's
current source and build file dependencies and registers each of them
with the filesystem watcher.
"""

from typing import TYPE_CHECKING, final

from ._logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from structlog.typing import FilteringBoundLogger

    from ._protocol import PathWatcher
    from ._query import QueryClient


@final
class WatchSetManager:
    """Keeps the watcher registered on everything the targets depend on.

    Every rebuild is a full re-resolution for all targets. Nothing is
    diffed against the previous watch set; the watcher ignores paths it
    already has.

    Attributes:
        watched: Paths registered by the most recent rebuild, in order.
    """

    __slots__ = ("_client", "_logger", "_watcher", "watched")

    def __init__(
        self,
        client: "QueryClient",
        watcher: "PathWatcher",
        *,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        self._client = client
        self._watcher = watcher
        self._logger = logger
        self.watched: tuple[str, ...] = ()

    @property
    def logger(self) -> "FilteringBoundLogger":  # noqa: UP037
        return self._logger if self._logger is not None else get_logger()

    async def rebuild_watches(self, targets: "Iterable[str]") -> tuple[str, ...]:  # noqa: UP037
        """Resolve and register the complete watch set for all targets.

        Args:
            targets: Targets whose dependencies should be watched.

        Returns:
            Every path registered in this pass, without duplicates.

        Raises:
            QuerySpawnError: If a dependency query cannot be started.
            WatchRegistrationError: If any path cannot be watched. The
                rebuild is aborted rather than leaving a partial watch set.
        """
        seen: dict[str, None] = {}

        for target in targets:
            sources = await self._client.query_sources(target)
            for path in sources:
                self._register(path, seen, event="watching_source_file")

            build_files = await self._client.query_build_files(target)
            for path in build_files:
                self._register(path, seen, event="watching_build_file")

            self.logger.info(
                "watching_target",
                target=target,
                sources=len(sources),
                build_files=len(build_files),
            )

        self.watched = tuple(seen)
        return self.watched

    def _register(self, path: str, seen: dict[str, None], *, event: str) -> None:
        if path in seen:
            return
        self.logger.info(event, path=path)
        _ = self._watcher.watch(path)
        seen[path] = None
