"""
Dependency file watching.

Each watched file gets a `FileWatcher` backed by a watchdog observer on the
file's parent directory. Observer threads only classify events and hand them
to the asyncio loop; snapshots, comparisons and callbacks all run on the loop.

Two notifications come out of a watcher:
- content-changed: the file was written and its bytes differ from the last
  snapshot (identical rewrites are ignored);
- identity-changed: the file was deleted or renamed away, so the watch target
  itself is no longer valid.
"""

import asyncio
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterator, Optional, Union

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..validation import DependencyMissingError

logger = logging.getLogger(__name__)

DependencyCallback = Callable[[Path], Awaitable[None]]

_CONTENT_EVENT_TYPES = {EVENT_TYPE_MODIFIED, EVENT_TYPE_CREATED, EVENT_TYPE_CLOSED}

# Quiet period before a changed file is re-read; one write emits several events.
CONTENT_SETTLE_DELAY = 0.05


class ChangeKind(str, Enum):
    """Kinds of dependency notifications."""

    CONTENT = "content"
    IDENTITY = "identity"


def _normalize(path: Union[str, bytes, Path]) -> str:
    return os.path.abspath(os.fsdecode(path))


def classify_event(event: FileSystemEvent, path: str) -> Optional[ChangeKind]:
    """
    Map a watchdog event to the kind of change it means for `path`.

    A move whose destination is `path` (the usual atomic save) is a content
    change; a move or delete whose source is `path` is an identity change.
    Events about other files and about directories return None.
    """
    if event.is_directory:
        return None

    src_path = _normalize(event.src_path)

    if event.event_type == EVENT_TYPE_MOVED:
        if src_path == path:
            return ChangeKind.IDENTITY
        if event.dest_path and _normalize(event.dest_path) == path:
            return ChangeKind.CONTENT
        return None

    if src_path != path:
        return None

    if event.event_type == EVENT_TYPE_DELETED:
        return ChangeKind.IDENTITY
    if event.event_type in _CONTENT_EVENT_TYPES:
        return ChangeKind.CONTENT
    return None


async def read_file(path: Path) -> bytes:
    """Read a whole file without blocking the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, path.read_bytes)


class _DependencyEventHandler(FileSystemEventHandler):
    """
    Watchdog handler that forwards relevant events to the owning loop.

    The observer thread enters through `FileSystemEventHandler.dispatch`, which
    calls `on_any_event`; only the classified kind crosses to the loop.
    """

    def __init__(self, path: str, loop: asyncio.AbstractEventLoop,
                 forward: Callable[[ChangeKind], None]):
        super().__init__()
        self.path = path
        self.loop = loop
        self._forward = forward

    def on_any_event(self, event: FileSystemEvent) -> None:
        kind = classify_event(event, self.path)
        if kind is None:
            return

        logger.debug(f"Watchdog event: {event.event_type} on {event.src_path} -> {kind.value}")
        try:
            self.loop.call_soon_threadsafe(self._forward, kind)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping {kind.value} event for {self.path}")


class FileWatcher:
    """
    Watches a single file and reports content and identity changes.

    The watcher keeps the last observed content as its snapshot. Content
    events are handled one at a time: events arriving while a re-read is
    pending or running collapse into a single follow-up re-read, taken once
    the file has been quiet for `settle_delay` seconds. Once closed the
    watcher delivers nothing, and reads that complete after closing are
    discarded.
    """

    def __init__(
        self,
        path: Path,
        snapshot: bytes,
        on_change: DependencyCallback,
        on_identity_change: DependencyCallback,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        observer_factory: Callable[[], Observer] = Observer,
        settle_delay: float = CONTENT_SETTLE_DELAY,
    ):
        self.path = Path(_normalize(path))
        self.snapshot = snapshot
        self.settle_delay = settle_delay
        self.closed = False
        self._on_change = on_change
        self._on_identity_change = on_identity_change
        self._loop = loop or asyncio.get_running_loop()
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self._identity_reported = False
        self._content_pending = False
        self._content_task: Optional[asyncio.Future] = None
        self._tasks: set = set()

    def start(self) -> None:
        """Install the filesystem subscription."""
        handler = _DependencyEventHandler(str(self.path), self._loop, self.dispatch)
        self._observer = self._observer_factory()
        self._observer.schedule(handler, str(self.path.parent), recursive=False)
        self._observer.start()
        logger.debug(f"Observer started for {self.path}")

    def close(self) -> None:
        """Remove the subscription. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        if self._observer is not None:
            # Observer threads are daemons; stop() is enough and never blocks the loop.
            self._observer.stop()
            self._observer = None
        logger.debug(f"Watcher closed for {self.path}")

    def dispatch(self, kind: ChangeKind) -> None:
        """Handle one classified event. Must run on the loop thread."""
        if self.closed:
            logger.debug(f"Ignoring {kind.value} event for closed watcher on {self.path}")
            return

        if kind == ChangeKind.CONTENT:
            self._content_pending = True
            if self._content_task is None:
                self._content_task = self._spawn(self._drain_content_changes())
        elif not self._identity_reported:
            self._identity_reported = True
            self._spawn(self._on_identity_change(self.path))

    async def wait_idle(self) -> None:
        """Wait until every event handled so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _drain_content_changes(self) -> None:
        try:
            while self._content_pending and not self.closed:
                self._content_pending = False
                await asyncio.sleep(self.settle_delay)
                if self._content_pending:
                    # Still being written.
                    continue
                await self._handle_content_change()
        finally:
            self._content_task = None

    async def _handle_content_change(self) -> None:
        try:
            content = await read_file(self.path)
        except OSError as e:
            logger.debug(f"Re-read of {self.path} failed, ignoring change: {e}")
            return

        if self.closed:
            logger.debug(f"Discarding stale read of {self.path}")
            return

        if content == self.snapshot:
            logger.debug(f"Content of {self.path} unchanged, no restart")
            return

        self.snapshot = content
        await self._on_change(self.path)

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Future:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Dependency callback for {self.path} failed: {error}", exc_info=error)


class DependencyWatcher:
    """
    The set of file watchers belonging to one supervisor instance.

    Holds at most one watcher per path; re-watching a path closes the previous
    watcher before the new subscription is installed.
    """

    def __init__(
        self,
        on_change: DependencyCallback,
        on_identity_change: DependencyCallback,
        observer_factory: Callable[[], Observer] = Observer,
        settle_delay: float = CONTENT_SETTLE_DELAY,
    ):
        self.on_change = on_change
        self.on_identity_change = on_identity_change
        self.observer_factory = observer_factory
        self.settle_delay = settle_delay
        self.watchers: Dict[Path, FileWatcher] = {}

    async def watch(self, path: Union[str, Path], required: bool) -> Optional[FileWatcher]:
        """
        Snapshot `path` and start watching it.

        Returns:
            The new watcher, or None when an optional file cannot be read

        Raises:
            DependencyMissingError: If a required file cannot be read
        """
        path = Path(_normalize(path))
        try:
            snapshot = await read_file(path)
        except OSError as e:
            if required:
                raise DependencyMissingError(str(path), e) from e
            logger.debug(f"Optional dependency {path} is not readable, not watching it: {e}")
            return None

        self.unwatch(path)

        watcher = FileWatcher(
            path,
            snapshot,
            self.on_change,
            self.on_identity_change,
            observer_factory=self.observer_factory,
            settle_delay=self.settle_delay,
        )
        watcher.start()
        self.watchers[path] = watcher
        logger.info(f"Watching dependency file: {path}")
        return watcher

    def unwatch(self, path: Union[str, Path]) -> bool:
        """Close the watcher on `path`, if any."""
        watcher = self.watchers.pop(Path(_normalize(path)), None)
        if watcher is None:
            return False
        watcher.close()
        return True

    def close_all(self) -> None:
        for path in list(self.watchers):
            self.unwatch(path)

    def __len__(self) -> int:
        return len(self.watchers)

    def __iter__(self) -> Iterator[Path]:
        return iter(list(self.watchers))
