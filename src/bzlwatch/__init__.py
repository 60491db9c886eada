"""Re-run bazel actions when the files they depend on change.

bzlwatch asks the build tool which source and build files a set of targets
depends on, watches exactly those files, and kills and relaunches the
requested action (build, test, run, ...) whenever one of them changes. A
change to a build file first re-resolves the watch set, since the
dependency graph itself may have changed.

Key Components:
    - QueryClient: Resolves target dependencies through ``bazel query``
    - WatchSetManager: Registers every dependency with the file watcher
    - FileWatcher: Debounced, per-file change notifications (watchfiles)
    - ProcessRunner: Launches and kills the build tool action
    - TriggerLoop: Ties the components together, one event at a time

Example:
    >>> from bzlwatch import InvocationConfig
    >>> InvocationConfig.from_argv(["test", "--config=ci", "//app:tests"]).targets
    ('//app:tests',)
"""

__version__ = "0.1.0"

from ._classify import (
    is_aliased,
    is_build_definition_file,
    is_default_tools_buildfile,
    is_external_workspace,
    is_watchable,
    normalize,
)
from ._loop import TriggerLoop
from ._models import ChangeKind, InvocationConfig, LoopState, QueryResult, WatchEvent
from ._protocol import (
    EventSource,
    PathWatcher,
    ProcessHandle,
    ProcessLauncher,
    QueryRunner,
)
from ._query import BazelQueryRunner, QueryClient
from ._runner import AnyioProcessLauncher, ProcessRunner
from ._watcher import FileWatcher
from ._watchset import WatchSetManager

__all__ = [
    "AnyioProcessLauncher",
    "BazelQueryRunner",
    "ChangeKind",
    "EventSource",
    "FileWatcher",
    "InvocationConfig",
    "LoopState",
    "PathWatcher",
    "ProcessHandle",
    "ProcessLauncher",
    "ProcessRunner",
    "QueryClient",
    "QueryResult",
    "QueryRunner",
    "TriggerLoop",
    "WatchEvent",
    "WatchSetManager",
    "__version__",
    "is_aliased",
    "is_build_definition_file",
    "is_default_tools_buildfile",
    "is_external_workspace",
    "is_watchable",
    "normalize",
]
