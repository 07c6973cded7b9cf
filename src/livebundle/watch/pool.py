"""WatchPool - one filesystem watch per path, fanned out to many subscribers."""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class Registration:
    id: int
    callback: Callable[[], Any]


@dataclass
class Subscription:
    last_update: float
    handle: Any = None
    registrations: list[Registration] = field(default_factory=list)


class WatchPool:
    """
    Multiplex file watches.

    Raw notifications for a path pass a debounce window of `watch_delay`
    milliseconds (the timestamp is taken before callbacks run) and are then
    delivered after a further `settle_delay` milliseconds, once per burst.
    """

    def __init__(
        self,
        watch_delay: int = 250,
        settle_delay: int = 150,
        *,
        backend=None,
        clock: Callable[[], float] = time.monotonic,
        call_later: Callable[..., Any] | None = None,
    ):
        self.watch_delay = watch_delay
        self.settle_delay = settle_delay
        self._backend = backend
        self._clock = clock
        self._call_later = call_later
        self._ids = itertools.count(1)
        self._subscriptions: dict[str, Subscription] = {}
        self._on_error: Callable[[str, Exception], Any] = lambda path, error: None

    def on_error(self, handler: Callable[[str, Exception], Any]) -> None:
        self._on_error = handler

    @property
    def backend(self):
        if self._backend is None:
            from .backend import WatchdogBackend

            self._backend = WatchdogBackend(asyncio.get_running_loop())
        return self._backend

    @property
    def pool(self) -> dict[str, Subscription]:
        return self._subscriptions

    @property
    def watchers(self) -> int:
        return sum(1 for s in self._subscriptions.values() if s.handle is not None)

    @property
    def handlers(self) -> int:
        return sum(len(s.registrations) for s in self._subscriptions.values())

    def subscribe(self, path: str, callback: Callable[[], Any]) -> int:
        subscription = self._subscriptions.get(path)
        if subscription is None:
            subscription = Subscription(last_update=self._clock() - self.watch_delay / 1000)
            self._subscriptions[path] = subscription
            try:
                subscription.handle = self.backend.watch(
                    path,
                    lambda: self.notify(path),
                    lambda error: self._lost(path, error),
                )
                logger.debug("watching %s", path)
            except OSError as e:
                self._on_error(path, e)

        registration = Registration(next(self._ids), callback)
        subscription.registrations.append(registration)
        return registration.id

    def unsubscribe(self, path: str, registration_id: int) -> None:
        subscription = self._subscriptions.get(path)
        if subscription is None:
            return
        subscription.registrations = [
            r for r in subscription.registrations if r.id != registration_id
        ]
        if subscription.registrations:
            return

        del self._subscriptions[path]
        if subscription.handle is not None:
            try:
                subscription.handle.close()
            except OSError as e:
                self._on_error(path, e)
        logger.debug("stopped watching %s", path)

    def notify(self, path: str) -> None:
        """Entry point for raw change notifications, on the engine's thread."""
        subscription = self._subscriptions.get(path)
        if subscription is None:
            return
        now = self._clock()
        if (now - subscription.last_update) * 1000 < self.watch_delay:
            return
        subscription.last_update = now
        self._schedule(self.settle_delay / 1000, self._dispatch, path)

    def close(self) -> None:
        for subscription in self._subscriptions.values():
            if subscription.handle is not None:
                subscription.handle.close()
        self._subscriptions.clear()
        if self._backend is not None:
            self._backend.close()

    def _schedule(self, delay: float, callback: Callable, *args) -> None:
        if self._call_later is not None:
            self._call_later(delay, callback, *args)
        else:
            asyncio.get_running_loop().call_later(delay, callback, *args)

    def _dispatch(self, path: str) -> None:
        subscription = self._subscriptions.get(path)
        if subscription is None:
            return
        for registration in list(subscription.registrations):
            try:
                registration.callback()
            except Exception as e:
                logger.exception("watch callback failed for %s", path)
                self._on_error(path, e)

    def _lost(self, path: str, error: OSError) -> None:
        """The backend stopped watching `path`; keep registrations, drop the handle."""
        subscription = self._subscriptions.get(path)
        if subscription is None:
            return
        subscription.handle = None
        logger.debug("lost watch on %s", path)
        self._on_error(path, error)
