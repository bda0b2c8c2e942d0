"""
Recursive change watcher for the served root.

A watchdog ``Observer`` runs in its own thread and hands every mutation
event to the event loop, where it surfaces as one ``Change`` from an
async iterator. Changes carry no payload: the consumer reloads the whole
page whatever changed. No debouncing; one filesystem event, one change.
"""

import asyncio
from pathlib import Path
from typing import Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .errors import WatchError

# opened/closed events fire on every read, including our own file serving
MUTATION_EVENTS = frozenset({
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
})


class Change:
    """A payload-less 'something under the root changed' notification."""

    __slots__ = ()

    def __repr__(self):
        return "<Change>"


CHANGE = Change()


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        super().__init__()
        self._loop = loop
        self._queue = queue

    def on_any_event(self, event: FileSystemEvent):
        if event.event_type not in MUTATION_EVENTS:
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, CHANGE)
        except RuntimeError:
            # loop already closed during shutdown
            pass


class ChangeWatcher:
    """Async iterator of ``Change`` events for one directory tree."""

    def __init__(self, directory):
        self.target = Path(directory).resolve()
        self._observer: Optional[Observer] = None
        self._queue: Optional[asyncio.Queue] = None
        self._closed = False

    def start(self) -> "ChangeWatcher":
        if self._closed:
            raise WatchError("Watcher is closed and cannot be restarted")
        if not self.target.exists():
            raise WatchError(f"Watch target does not exist: {self.target}")
        if not self.target.is_dir():
            raise WatchError(f"Watch target is not a directory: {self.target}")

        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._observer = Observer()
        self._observer.schedule(_ChangeHandler(loop, self._queue), str(self.target), recursive=True)
        self._observer.daemon = True
        self._observer.start()
        return self

    def close(self):
        """Stop the observer. Pending and future iteration ends."""
        self._closed = True
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        if self._queue is not None:
            self._queue.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self):
        return self

    async def __anext__(self) -> Change:
        if self._closed or self._queue is None:
            raise StopAsyncIteration
        change = await self._queue.get()
        if change is None or self._closed:
            raise StopAsyncIteration
        return change


def watch(directory) -> ChangeWatcher:
    """
    Start watching ``directory`` recursively and return the change stream.

    Must be called from inside a running event loop. Raises ``WatchError``
    straight away if the target is missing or not a directory.
    """
    return ChangeWatcher(directory).start()
