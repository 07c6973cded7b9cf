"""Watchdog-backed file watching, delivered onto an asyncio loop."""

import asyncio
import errno
import logging
import os
from typing import Callable

from watchdog.events import (
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class _DirectoryHandler(FileSystemEventHandler):
    """Routes events inside one directory to the callbacks of watched files."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        directory: str,
        on_lost: Callable[[str], None],
    ):
        super().__init__()
        self._loop = loop
        self._directory = directory
        self._on_lost = on_lost
        self.files: dict[str, Callable[[], None]] = {}
        self.errors: dict[str, Callable[[OSError], None]] = {}

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            # the emitter stops once its own directory is removed or renamed
            if (
                event.event_type in (EVENT_TYPE_DELETED, EVENT_TYPE_MOVED)
                and os.path.abspath(os.fsdecode(event.src_path)) == self._directory
            ):
                self._loop.call_soon_threadsafe(self._on_lost, self._directory)
            return
        for raw in (event.src_path, getattr(event, "dest_path", "")):
            if not raw:
                continue
            callback = self.files.get(os.path.abspath(os.fsdecode(raw)))
            if callback is not None:
                # watchdog runs handlers on its own thread
                self._loop.call_soon_threadsafe(callback)


class WatchHandle:
    def __init__(self, backend: "WatchdogBackend", directory: str, file_path: str):
        self._backend = backend
        self._directory = directory
        self._file_path = file_path
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._backend._release(self._directory, self._file_path)


class WatchdogBackend:
    """
    One watchdog schedule per directory, shared by every watched file in it.

    Watchdog watches directories, so a file watch is a directory watch
    filtered on the file's absolute path.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, observer=None):
        self._loop = loop
        self._observer = observer or Observer()
        self._started = False
        self._directories: dict[str, tuple[object, _DirectoryHandler]] = {}

    def watch(
        self,
        path: str,
        notify: Callable[[], None],
        on_error: Callable[[OSError], None] | None = None,
    ) -> WatchHandle:
        file_path = os.path.abspath(path)
        directory = os.path.dirname(file_path)

        if not self._started:
            self._observer.start()
            self._started = True

        entry = self._directories.get(directory)
        if entry is None:
            handler = _DirectoryHandler(self._loop, directory, self._lost)
            # raises OSError right away for a missing directory once started
            watch = self._observer.schedule(handler, directory, recursive=False)
            entry = (watch, handler)
            self._directories[directory] = entry
            logger.debug("scheduled directory watch %s", directory)

        entry[1].files[file_path] = notify
        if on_error is not None:
            entry[1].errors[file_path] = on_error
        return WatchHandle(self, directory, file_path)

    def _lost(self, directory: str) -> None:
        """The watched directory itself went away; report it to every file in it."""
        entry = self._directories.pop(directory, None)
        if entry is None:
            return
        watch, handler = entry
        self._observer.unschedule(watch)
        logger.debug("lost directory watch %s", directory)
        for on_error in list(handler.errors.values()):
            on_error(
                FileNotFoundError(errno.ENOENT, "watched directory was removed", directory)
            )

    def _release(self, directory: str, file_path: str) -> None:
        entry = self._directories.get(directory)
        if entry is None:
            return
        watch, handler = entry
        handler.files.pop(file_path, None)
        handler.errors.pop(file_path, None)
        if not handler.files:
            del self._directories[directory]
            self._observer.unschedule(watch)
            logger.debug("unscheduled directory watch %s", directory)

    def close(self) -> None:
        self._directories.clear()
        if self._started:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._started = False
