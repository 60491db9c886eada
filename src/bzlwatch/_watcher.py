"""File watcher using watchfiles.

Watched files are registered individually, but notifications come from
non-recursive watches on their parent directories, filtered down to the
registered files. Watching the directory keeps a file watched across
editor saves that replace it by rename.

Changes are debounced by watchfiles and then coalesced per path, so one
save produces one event no matter how many raw notifications it caused.

Adding a file restarts the underlying watch, and whatever the old watch
had buffered is lost with it. Each registered file therefore carries a
stat stamp, and every time the watch is (re)opened files whose stamp no
longer matches are reported as changed.
"""

from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import final

import anyio
from watchfiles import Change, awatch

from bzlwatch.exceptions import EventStreamError, WatchRegistrationError

from ._models import ChangeKind, WatchEvent

# Upper bound watchfiles may spend grouping a continuous burst of changes.
MAX_DEBOUNCE_MS = 1600

# (inode, mtime_ns, size), or None for a file that no longer exists.
type FileStamp = tuple[int, int, int] | None


def stamp_file(path: str) -> FileStamp:
    """Return the stat stamp used to detect changes missed across restarts."""
    try:
        stat = Path(path).stat()
    except OSError:
        return None
    return (stat.st_ino, stat.st_mtime_ns, stat.st_size)


def coalesce_changes(changes: Iterable[tuple[Change, str]]) -> list[WatchEvent]:
    """Collapse one batch of raw changes into a single event per path.

    Only registered files reach this point, so a file reported as added
    was swapped into place, typically as the second half of a rename.

    Args:
        changes: Raw (change, path) pairs from watchfiles.

    Returns:
        One event per path, sorted by path.
    """
    by_path: dict[str, set[Change]] = {}
    for change, path in changes:
        by_path.setdefault(path, set()).add(change)

    events: list[WatchEvent] = []
    for path in sorted(by_path):
        seen = by_path[path]
        if Change.added in seen:
            kind = ChangeKind.RENAMED
        elif Change.deleted in seen:
            kind = ChangeKind.REMOVED
        else:
            kind = ChangeKind.MODIFIED
        events.append(WatchEvent(kind=kind, path=path))
    return events


@final
class FileWatcher:
    """Registers individual files and streams debounced change events.

    Implements both the PathWatcher and EventSource protocols. Registration
    is idempotent; adding a new file restarts the underlying watch so the
    next batch of events covers it.

    Attributes:
        debounce_ms: Quiet period before a burst of changes is delivered.
        force_polling: Use polling instead of native notifications.
    """

    __slots__ = ("_files", "_restart", "_stamps", "debounce_ms", "force_polling")

    def __init__(
        self,
        *,
        debounce_ms: int = 100,
        force_polling: bool | None = None,
    ) -> None:
        self.debounce_ms = debounce_ms
        self.force_polling = force_polling
        self._files: set[str] = set()
        self._stamps: dict[str, FileStamp] = {}
        self._restart: anyio.Event | None = None

    @property
    def files(self) -> frozenset[str]:
        """Return the absolute paths of all registered files."""
        return frozenset(self._files)

    def watch(self, path: str) -> bool:
        """Register a file for change notification.

        Args:
            path: File path, absolute or relative to the working directory.

        Returns:
            True if the file was newly registered, False if already watched.

        Raises:
            WatchRegistrationError: If the path does not exist.
        """
        candidate = Path(path)
        if not candidate.exists():
            msg = f"Cannot watch '{path}': no such file or directory"
            raise WatchRegistrationError(
                msg, path=path, cause=FileNotFoundError(path)
            )

        absolute = str(candidate.absolute())
        if absolute in self._files:
            return False

        self._files.add(absolute)
        self._stamps[absolute] = stamp_file(absolute)
        if self._restart is not None:
            self._restart.set()
        return True

    def _is_registered(self, _change: Change, changed_path: str) -> bool:
        return changed_path in self._files

    def _missed_changes(self) -> list[WatchEvent]:
        events: list[WatchEvent] = []
        for path in sorted(self._files):
            current = stamp_file(path)
            if current == self._stamps.get(path):
                continue
            self._stamps[path] = current
            kind = ChangeKind.REMOVED if current is None else ChangeKind.MODIFIED
            events.append(WatchEvent(kind=kind, path=path))
        return events

    def _watch_dirs(self) -> list[Path]:
        parents = {Path(file).parent for file in self._files}
        return sorted(parent for parent in parents if parent.is_dir())

    async def events(self) -> AsyncIterator[WatchEvent]:
        """Stream change events for registered files, forever.

        Raises:
            EventStreamError: If watchfiles fails while watching.
        """
        while True:
            self._restart = anyio.Event()
            while missed := self._missed_changes():
                for event in missed:
                    yield event

            dirs = self._watch_dirs()
            if not dirs:
                await self._restart.wait()
                continue

            try:
                async for changes in awatch(
                    *dirs,
                    watch_filter=self._is_registered,
                    debounce=max(MAX_DEBOUNCE_MS, self.debounce_ms),
                    step=self.debounce_ms,
                    stop_event=self._restart,
                    recursive=False,
                    force_polling=self.force_polling,
                ):
                    for event in coalesce_changes(changes):
                        self._stamps[event.path] = stamp_file(event.path)
                        yield event
            except (OSError, RuntimeError) as e:
                msg = f"Error watching files: {e}"
                raise EventStreamError(msg, cause=e) from e
