from __future__ import annotations

import pytest

from livebundle.watch import WatchPool


class FakeHandle:
    def __init__(self, backend: "FakeBackend", path: str) -> None:
        self.backend = backend
        self.path = path
        self.closed = False

    def close(self) -> None:
        self.closed = True
        self.backend.open.pop(self.path, None)


class FakeBackend:
    """Records watches and lets tests fire raw notifications by hand."""

    def __init__(self) -> None:
        self.open: dict[str, object] = {}
        self.handles: list[FakeHandle] = []
        self.failing: set[str] = set()
        self.errors: dict[str, object] = {}
        self.closed = False

    def watch(self, path, notify, on_error=None):  # type: ignore[no-untyped-def]
        if path in self.failing:
            raise FileNotFoundError(path)
        self.open[path] = notify
        self.errors[path] = on_error
        handle = FakeHandle(self, path)
        self.handles.append(handle)
        return handle

    def fire(self, path: str) -> None:
        self.open[path]()

    def lose(self, path: str, error: OSError) -> None:
        self.open.pop(path, None)
        self.errors.pop(path)(error)

    def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000


class Timers:
    """call_later stand-in; run() fires everything scheduled so far."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[float, object, tuple]] = []

    def __call__(self, delay, callback, *args):  # type: ignore[no-untyped-def]
        self.scheduled.append((delay, callback, args))

    def run(self) -> None:
        pending, self.scheduled = self.scheduled, []
        for _, callback, args in pending:
            callback(*args)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> Timers:
    return Timers()


@pytest.fixture
def pool(backend, clock, timers) -> WatchPool:  # type: ignore[no-untyped-def]
    return WatchPool(250, 150, backend=backend, clock=clock, call_later=timers)


@pytest.fixture
def project(tmp_path, monkeypatch):  # type: ignore[no-untyped-def]
    """Work inside tmp_path so node paths stay short and relative."""
    monkeypatch.chdir(tmp_path)

    def write(name: str, content: str) -> str:
        target = tmp_path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return name

    return write
