"""Tests for bzlwatch._loop module."""

from dataclasses import dataclass

import pytest

from bzlwatch._loop import TriggerLoop
from bzlwatch._models import ChangeKind, InvocationConfig, LoopState, WatchEvent
from bzlwatch._query import QueryClient
from bzlwatch._runner import ProcessRunner
from bzlwatch._watchset import WatchSetManager
from bzlwatch.exceptions import (
    EventStreamError,
    LaunchError,
    WatchRegistrationError,
)
from tests.conftest import (
    FakeEventSource,
    FakeLauncher,
    FakeQueryRunner,
    FakeWatcher,
    LogCapture,
)

ARGV = ("test", "--config=ci", "//app:bin")
COMMAND = ("bazel", "test", "--config=ci", "//app:bin")


@dataclass
class Harness:
    loop: TriggerLoop
    runner: FakeQueryRunner
    watcher: FakeWatcher
    launcher: FakeLauncher
    events: FakeEventSource
    logs: LogCapture


def make_harness(
    *scripts: list[WatchEvent | Exception],
    watcher: FakeWatcher | None = None,
    launcher: FakeLauncher | None = None,
) -> Harness:
    logs = LogCapture()
    runner = FakeQueryRunner()
    runner.set_target(
        "//app:bin", sources=["//app:a.go", "//app:b.go"], build_files=["//app:BUILD"]
    )
    watcher = watcher if watcher is not None else FakeWatcher()
    launcher = launcher if launcher is not None else FakeLauncher()
    events = FakeEventSource(*scripts)
    loop = TriggerLoop(
        InvocationConfig.from_argv(ARGV),
        watch_set=WatchSetManager(
            QueryClient(runner, logger=logs.logger), watcher, logger=logs.logger
        ),
        runner=ProcessRunner("bazel", launcher, logger=logs.logger),
        events=events,
        logger=logs.logger,
        retry_delay=0,
    )
    return Harness(loop, runner, watcher, launcher, events, logs)


def modified(path: str) -> WatchEvent:
    return WatchEvent(kind=ChangeKind.MODIFIED, path=path)


@pytest.mark.anyio
class TestStart:
    async def test_initial_watch_set_and_single_launch(self) -> None:
        harness = make_harness()

        await harness.loop.start()

        assert harness.watcher.paths == {"app/a.go", "app/b.go", "app/BUILD"}
        assert harness.launcher.launched == [COMMAND]
        assert harness.loop.state == LoopState.RUNNING
        assert harness.loop.launch_count == 1
        assert harness.loop.rebuild_count == 0

    async def test_watch_failure_prevents_launch(self) -> None:
        harness = make_harness(watcher=FakeWatcher(missing={"app/b.go"}))

        with pytest.raises(WatchRegistrationError):
            await harness.loop.start()

        assert harness.launcher.launched == []
        assert harness.loop.state == LoopState.INITIALIZING

    async def test_launch_failure_propagates(self) -> None:
        harness = make_harness(launcher=FakeLauncher(fail=True))

        with pytest.raises(LaunchError):
            await harness.loop.start()


@pytest.mark.anyio
class TestHandleEvent:
    async def test_source_change_relaunches_without_rewatch(self) -> None:
        harness = make_harness()
        await harness.loop.start()
        first = harness.launcher.processes[0]
        queries_before = len(harness.runner.expressions)

        acted = await harness.loop.handle_event(modified("/ws/app/a.go"))

        assert acted is True
        assert first.kills == 1
        assert harness.launcher.launched == [COMMAND, COMMAND]
        assert len(harness.runner.expressions) == queries_before
        assert harness.loop.rebuild_count == 0
        assert harness.loop.process is harness.launcher.processes[1]
        assert harness.loop.state == LoopState.RUNNING

    async def test_build_file_change_rewatches_before_relaunch(self) -> None:
        harness = make_harness()
        await harness.loop.start()
        harness.runner.set_target(
            "//app:bin",
            sources=["//app:a.go", "//app:b.go", "//app:c.go"],
            build_files=["//app:BUILD"],
        )

        _ = await harness.loop.handle_event(modified("/ws/app/BUILD"))

        assert harness.launcher.processes[0].kills == 1
        assert harness.launcher.launched == [COMMAND, COMMAND]
        assert harness.loop.rebuild_count == 1
        assert "app/c.go" in harness.watcher.paths
        events = [entry["event"] for entry in harness.logs.entries]
        last_launch = max(i for i, name in enumerate(events) if name == "launched")
        assert events.index("rewatching") < last_launch

    async def test_starlark_change_rewatches(self) -> None:
        harness = make_harness()
        await harness.loop.start()

        _ = await harness.loop.handle_event(
            WatchEvent(kind=ChangeKind.RENAMED, path="/ws/tools/defs.bzl")
        )

        assert harness.loop.rebuild_count == 1

    @pytest.mark.parametrize("kind", [ChangeKind.REMOVED, ChangeKind.RENAMED])
    async def test_removed_and_renamed_relaunch(self, kind: ChangeKind) -> None:
        harness = make_harness()
        await harness.loop.start()

        acted = await harness.loop.handle_event(WatchEvent(kind=kind, path="app/a.go"))

        assert acted is True
        assert harness.loop.launch_count == 2

    async def test_created_is_ignored_silently(self) -> None:
        harness = make_harness()
        await harness.loop.start()
        entries_before = len(harness.logs.entries)

        acted = await harness.loop.handle_event(
            WatchEvent(kind=ChangeKind.CREATED, path="app/new.go")
        )

        assert acted is False
        assert harness.launcher.processes[0].kills == 0
        assert harness.loop.launch_count == 1
        assert len(harness.logs.entries) == entries_before

    async def test_kill_failure_does_not_stop_relaunch(self) -> None:
        harness = make_harness()
        await harness.loop.start()
        harness.launcher.processes[0].kill_error = ProcessLookupError()

        _ = await harness.loop.handle_event(modified("app/a.go"))

        assert harness.loop.launch_count == 2

    async def test_rewatch_failure_propagates(self) -> None:
        harness = make_harness()
        await harness.loop.start()
        harness.watcher.missing.add("app/b.go")

        with pytest.raises(WatchRegistrationError):
            _ = await harness.loop.handle_event(modified("app/BUILD"))

        assert harness.loop.launch_count == 1

    async def test_logs_changed_path(self) -> None:
        harness = make_harness()
        await harness.loop.start()

        _ = await harness.loop.handle_event(modified("/ws/app/a.go"))

        [entry] = harness.logs.events("changed")
        assert entry["path"] == "/ws/app/a.go"
        assert entry["kind"] == "modified"


@pytest.mark.anyio
class TestRun:
    async def test_one_cycle_per_event(self) -> None:
        harness = make_harness(
            [
                modified("/ws/app/a.go"),
                WatchEvent(kind=ChangeKind.CREATED, path="/ws/app/x.go"),
                modified("/ws/app/BUILD"),
            ]
        )

        await harness.loop.run()

        assert harness.launcher.launched == [COMMAND] * 3
        assert [p.kills for p in harness.launcher.processes] == [1, 1, 0]
        assert harness.loop.rebuild_count == 1

    async def test_stream_error_is_logged_and_stream_reopened(self) -> None:
        harness = make_harness(
            [modified("app/a.go"), EventStreamError("notify backend failed")],
            [modified("app/b.go")],
        )

        await harness.loop.run()

        assert harness.events.opened == 2
        assert harness.loop.launch_count == 3
        [entry] = harness.logs.events("event_stream_error")
        assert entry["level"] == "warning"
        assert entry["error"] == "notify backend failed"

    async def test_fatal_setup_error_stops_run(self) -> None:
        harness = make_harness([modified("app/BUILD")])
        harness.runner.set_target(
            "//app:bin", sources=["//app:gone.go"], build_files=[]
        )
        harness.watcher.missing.add("app/gone.go")

        with pytest.raises(WatchRegistrationError):
            await harness.loop.run()

    async def test_stop_kills_running_process(self) -> None:
        harness = make_harness()
        await harness.loop.run()

        harness.loop.stop()

        assert harness.launcher.processes[0].kills == 1
        assert harness.loop.process is None
        assert harness.loop.state == LoopState.STOPPED
