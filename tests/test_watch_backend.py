from __future__ import annotations

import os

import pytest
from watchdog.events import (
    DirDeletedEvent,
    DirModifiedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from livebundle.watch.backend import WatchdogBackend


class FakeObserver:
    def __init__(self) -> None:
        self.started = False
        self.stopped = False
        self.scheduled: dict[str, object] = {}

    def start(self) -> None:
        self.started = True

    def schedule(self, handler, path, recursive=False):  # type: ignore[no-untyped-def]
        if not os.path.isdir(path):
            raise FileNotFoundError(path)
        self.scheduled[path] = handler
        return path

    def unschedule(self, watch) -> None:  # type: ignore[no-untyped-def]
        del self.scheduled[watch]

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout=None) -> None:  # type: ignore[no-untyped-def]
        pass


class FakeLoop:
    def call_soon_threadsafe(self, callback, *args):  # type: ignore[no-untyped-def]
        callback(*args)


def _backend():  # type: ignore[no-untyped-def]
    observer = FakeObserver()
    return WatchdogBackend(FakeLoop(), observer=observer), observer


def test_files_in_one_directory_share_a_schedule(tmp_path) -> None:  # type: ignore[no-untyped-def]
    backend, observer = _backend()

    first = backend.watch(str(tmp_path / "a.js"), lambda: None)
    second = backend.watch(str(tmp_path / "b.js"), lambda: None)

    assert observer.started
    assert list(observer.scheduled) == [str(tmp_path)]

    first.close()
    assert list(observer.scheduled) == [str(tmp_path)]
    second.close()
    assert observer.scheduled == {}


def test_events_are_routed_to_the_watched_file(tmp_path) -> None:  # type: ignore[no-untyped-def]
    backend, observer = _backend()
    calls = []
    backend.watch(str(tmp_path / "a.js"), lambda: calls.append("a"))
    handler = observer.scheduled[str(tmp_path)]

    handler.dispatch(FileModifiedEvent(str(tmp_path / "a.js")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / "other.js")))
    handler.dispatch(DirModifiedEvent(str(tmp_path)))
    handler.dispatch(FileMovedEvent(str(tmp_path / "a.js.tmp"), str(tmp_path / "a.js")))

    assert calls == ["a", "a"]


def test_missing_directory_raises(tmp_path) -> None:  # type: ignore[no-untyped-def]
    backend, _ = _backend()

    with pytest.raises(OSError):
        backend.watch(str(tmp_path / "gone" / "a.js"), lambda: None)


def test_close_stops_observer(tmp_path) -> None:  # type: ignore[no-untyped-def]
    backend, observer = _backend()
    handle = backend.watch(str(tmp_path / "a.js"), lambda: None)

    backend.close()
    handle.close()

    assert observer.stopped


def test_removed_directory_reports_every_watched_file(tmp_path) -> None:  # type: ignore[no-untyped-def]
    backend, observer = _backend()
    errors = []
    backend.watch(str(tmp_path / "a.js"), lambda: None, lambda e: errors.append(("a", e)))
    backend.watch(str(tmp_path / "b.js"), lambda: None, lambda e: errors.append(("b", e)))
    handler = observer.scheduled[str(tmp_path)]

    handler.dispatch(DirDeletedEvent(str(tmp_path)))

    assert sorted(name for name, _ in errors) == ["a", "b"]
    assert all(isinstance(e, FileNotFoundError) for _, e in errors)
    assert observer.scheduled == {}


def test_removed_subdirectory_is_ignored(tmp_path) -> None:  # type: ignore[no-untyped-def]
    backend, observer = _backend()
    errors = []
    backend.watch(str(tmp_path / "a.js"), lambda: None, errors.append)
    handler = observer.scheduled[str(tmp_path)]

    handler.dispatch(DirDeletedEvent(str(tmp_path / "nested")))

    assert errors == []
    assert list(observer.scheduled) == [str(tmp_path)]
