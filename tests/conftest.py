"""Shared test fixtures for bzlwatch tests.

The fakes here stand in for the build tool, the filesystem watcher and
process spawning so the loop can be driven deterministically.
"""

import io
import json
from collections.abc import AsyncIterator, Iterable, Sequence
from dataclasses import dataclass, field

import pytest
from rich.console import Console

from bzlwatch._logging import create_logger
from bzlwatch._models import QueryResult, WatchEvent
from bzlwatch._query import BUILDFILES_QUERY, SOURCES_QUERY
from bzlwatch.exceptions import (
    EventStreamError,
    LaunchError,
    WatchRegistrationError,
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeQueryRunner:
    """QueryRunner answering from a fixed expression -> lines table."""

    def __init__(
        self,
        results: dict[str, Sequence[str]] | None = None,
        *,
        stderr: str = "",
        exit_code: int = 0,
    ) -> None:
        self.results: dict[str, Sequence[str]] = dict(results or {})
        self.stderr = stderr
        self.exit_code = exit_code
        self.expressions: list[str] = []

    def set_target(
        self, target: str, *, sources: Sequence[str], build_files: Sequence[str]
    ) -> None:
        self.results[SOURCES_QUERY.format(target=target)] = sources
        self.results[BUILDFILES_QUERY.format(target=target)] = build_files

    async def run_query(self, expression: str) -> QueryResult:
        self.expressions.append(expression)
        return QueryResult(
            stdout_lines=tuple(self.results.get(expression, ())),
            stderr=self.stderr,
            exit_code=self.exit_code,
        )


@dataclass
class FakeWatcher:
    """PathWatcher recording registrations; paths in `missing` fail."""

    missing: set[str] = field(default_factory=set)
    paths: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list)

    def watch(self, path: str) -> bool:
        self.calls.append(path)
        if path in self.missing:
            msg = f"Cannot watch '{path}': no such file or directory"
            raise WatchRegistrationError(msg, path=path)
        if path in self.paths:
            return False
        self.paths.add(path)
        return True


class FakeEventSource:
    """EventSource replaying scripted streams.

    Each call to events() consumes the next script. A script item is either
    a WatchEvent to yield or an exception to raise.
    """

    def __init__(self, *scripts: Iterable[WatchEvent | Exception]) -> None:
        self.scripts = [list(script) for script in scripts]
        self.opened = 0

    async def events(self) -> AsyncIterator[WatchEvent]:
        self.opened += 1
        if not self.scripts:
            return
        for item in self.scripts.pop(0):
            if isinstance(item, Exception):
                raise item
            yield item


@dataclass
class FakeProcess:
    pid: int
    kills: int = 0
    kill_error: BaseException | None = None

    def kill(self) -> None:
        self.kills += 1
        if self.kill_error is not None:
            raise self.kill_error


@dataclass
class FakeLauncher:
    """ProcessLauncher recording every command line it is asked to spawn."""

    fail: bool = False
    launched: list[tuple[str, ...]] = field(default_factory=list)
    processes: list[FakeProcess] = field(default_factory=list)

    async def launch(self, argv: Sequence[str]) -> FakeProcess:
        command = tuple(argv)
        if self.fail:
            msg = f"Failed to start '{' '.join(command)}'"
            raise LaunchError(msg, argv=command, cause=FileNotFoundError(command[0]))
        self.launched.append(command)
        process = FakeProcess(pid=1000 + len(self.processes))
        self.processes.append(process)
        return process


class LogCapture:
    """A JSON logger writing to memory, with helpers to read entries back."""

    def __init__(self, level: str = "debug") -> None:
        self.stream = io.StringIO()
        self.logger = create_logger(level=level, log_format="json", stream=self.stream)

    @property
    def entries(self) -> list[dict[str, object]]:
        return [
            json.loads(line) for line in self.stream.getvalue().splitlines() if line
        ]

    def events(self, name: str) -> list[dict[str, object]]:
        return [entry for entry in self.entries if entry["event"] == name]


@pytest.fixture
def query_runner() -> FakeQueryRunner:
    return FakeQueryRunner()


@pytest.fixture
def fake_watcher() -> FakeWatcher:
    return FakeWatcher()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def logs() -> LogCapture:
    return LogCapture()


@pytest.fixture
def console() -> Console:
    return Console(
        width=100,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )
