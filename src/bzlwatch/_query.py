"""Dependency queries against the build tool.

This module provides the BazelQueryRunner, which runs ``<executable> query``
as a subprocess, and the QueryClient, which turns query output for a target
into watchable filesystem paths.
"""

from typing import TYPE_CHECKING, final

import anyio

from bzlwatch.exceptions import QuerySpawnError

from ._classify import is_watchable, normalize
from ._logging import get_logger
from ._models import QueryResult

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ._protocol import QueryRunner

SOURCES_QUERY = "kind('source file', deps(set({target})))"
BUILDFILES_QUERY = "buildfiles(deps(set({target})))"


@final
class BazelQueryRunner:
    """Runs query expressions through the build tool's ``query`` subcommand."""

    __slots__ = ("executable",)

    def __init__(self, executable: str = "bazel") -> None:
        self.executable = executable

    async def run_query(self, expression: str) -> QueryResult:
        """Run a query expression and capture its output.

        Args:
            expression: An expression in the build tool's query language.

        Returns:
            The captured output. A non-zero exit code is not an error.

        Raises:
            QuerySpawnError: If the query process cannot be started.
        """
        command = [self.executable, "query", expression]
        try:
            completed = await anyio.run_process(command, check=False)
        except OSError as e:
            msg = f"Failed to run '{self.executable} query': {e}"
            raise QuerySpawnError(msg, expression=expression, cause=e) from e

        stdout = completed.stdout.decode("utf-8", errors="replace")
        stderr = completed.stderr.decode("utf-8", errors="replace")
        return QueryResult(
            stdout_lines=tuple(stdout.splitlines()),
            stderr=stderr,
            exit_code=completed.returncode,
        )


@final
class QueryClient:
    """Resolves the files a target depends on.

    Both queries are full, fresh traversals of the target's dependency
    graph. Results are filtered to watchable local files and normalized
    into workspace-relative paths.
    """

    __slots__ = ("_logger", "_runner")

    def __init__(
        self,
        runner: "QueryRunner",
        *,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        self._runner = runner
        self._logger = logger

    @property
    def logger(self) -> "FilteringBoundLogger":  # noqa: UP037
        return self._logger if self._logger is not None else get_logger()

    async def query(self, expression: str) -> list[str]:
        """Run an expression and return watchable, normalized paths.

        Query stderr is logged for the user; it never fails the call.

        Raises:
            QuerySpawnError: If the query process cannot be started.
        """
        result = await self._runner.run_query(expression)

        stderr = result.stderr.strip()
        if stderr:
            self.logger.info("query_stderr", expression=expression, output=stderr)
        if result.exit_code:
            self.logger.debug(
                "query_exit_code", expression=expression, exit_code=result.exit_code
            )

        return [
            normalize(line)
            for raw_line in result.stdout_lines
            if (line := raw_line.strip()) and is_watchable(line)
        ]

    async def query_sources(self, target: str) -> list[str]:
        """Return the source files the target transitively depends on."""
        return await self.query(SOURCES_QUERY.format(target=target))

    async def query_build_files(self, target: str) -> list[str]:
        """Return the build files the target transitively depends on."""
        return await self.query(BUILDFILES_QUERY.format(target=target))
