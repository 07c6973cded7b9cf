"""Compiler - keeps an assembled artifact in sync with its include tree."""

import asyncio
import logging
import time
from typing import Any, Callable

from .config import CompilerConfig, WriteConfig
from .errors import SyntaxCheckError
from .hooks import check_syntax, render_stub
from .paths import normalize_path
from .render.mapper import relativize_error
from .tree import EVENTS, Chunk, LiveNode, stringify
from .watch import WatchPool

logger = logging.getLogger(__name__)


class Compiler:
    """
    Owns the root LiveNode and the WatchPool shared by the whole tree.

    Every root recalibration is forwarded to the `recalibrate` handler and,
    once `write_to` is configured, writes the compiled artifact no more than
    once per `write_delay` milliseconds.
    """

    def __init__(
        self,
        config: CompilerConfig,
        *,
        pool: WatchPool | None = None,
        watch: bool = True,
        clock: Callable[[], float] = time.monotonic,
        call_later: Callable[..., Any] | None = None,
    ):
        self.config = config
        self._clock = clock
        self._call_later = call_later
        self._handlers: dict[str, Callable] = {event: _noop for event in EVENTS}

        if pool is None and watch:
            pool = WatchPool(config.watch_delay, config.settle_delay)
        self._pool = pool
        if self._pool is not None:
            self._pool.on_error(lambda path, error: self._handlers["error"](path, error))

        root_path = normalize_path(config.root)
        self._root = LiveNode(
            root_path,
            include_tag=config.include_tag,
            pool=self._pool,
            ancestors=frozenset({root_path}),
            handlers={
                "initialized": lambda h: self._handlers["initialized"](h),
                "changed": lambda h: self._handlers["changed"](h),
                "destroyed": lambda h: self._handlers["destroyed"](h),
                "error": lambda p, e: self._handlers["error"](p, e),
                "recalibrate": self._on_recalibration,
            },
        )

        self._write: WriteConfig | None = None
        self._last_write = float("-inf")
        self._pending = False
        self._tasks: set[asyncio.Task] = set()
        if config.write is not None:
            self.write_to(config.write)

    def handle(self, event: str, handler: Callable) -> None:
        if event not in self._handlers:
            raise ValueError(f"{event} event is not supported on Compiler.")
        self._handlers[event] = handler

    def start(self) -> None:
        """Load the whole include tree; the root recalibrates once it is complete."""
        self._root.load()

    def write_to(self, write: WriteConfig) -> None:
        self._write = write

    def destroy(self) -> None:
        self._root.destroy()
        if self._pool is not None:
            self._pool.close()

    @property
    def root(self) -> LiveNode:
        return self._root

    @property
    def pool(self) -> WatchPool | None:
        return self._pool

    @property
    def chunks(self) -> Chunk:
        return self._root.chunks()

    @property
    def compiled(self) -> str:
        return stringify(self.chunks)

    @property
    def output_path(self) -> str | None:
        if self._write is None:
            return None
        return self._write.output_path(self._root.path)

    async def write_artifact(self) -> None:
        """Write the compiled artifact, then syntax check it when relative errors are on."""
        write = self._write
        if write is None:
            return
        output = write.output_path(self._root.path)
        compiled = self.compiled

        try:
            _write_file(output, compiled)
        except OSError as e:
            self._handlers["error"](output, e)
            return
        logger.debug("wrote %s", output)

        if not write.relative_errors or not write.syntax_check:
            return
        try:
            trace = await check_syntax(write.syntax_check, output)
        except OSError as e:
            self._handlers["error"](output, e)
            return
        if trace is None:
            return

        relative = relativize_error(
            trace, compiled, write.artifact_name(self._root.path)
        )
        logger.warning("SYNTAX_ERROR -> %s", output)
        self._handlers["error"](output, SyntaxCheckError(output, relative))
        try:
            _write_file(output, render_stub(write.stub_template, relative))
        except OSError as e:
            self._handlers["error"](output, e)

    def _on_recalibration(self) -> None:
        if self._write is not None:
            self._schedule_write()
        self._handlers["recalibrate"]()

    def _schedule_write(self) -> None:
        delay = self._write.write_delay
        elapsed = (self._clock() - self._last_write) * 1000
        if elapsed < delay:
            if not self._pending:
                self._pending = True
                self._later((delay - elapsed) / 1000, self._deferred_write)
            return

        self._pending = False
        self._last_write = self._clock()
        self._start_write()

    def _deferred_write(self) -> None:
        self._pending = False
        self._schedule_write()

    def _start_write(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # one-shot use outside any loop writes in place
            asyncio.run(self.write_artifact())
            return
        task = loop.create_task(self.write_artifact())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _later(self, delay: float, callback: Callable) -> None:
        if self._call_later is not None:
            self._call_later(delay, callback)
        else:
            asyncio.get_running_loop().call_later(delay, callback)


def _write_file(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8") as file:
        file.write(content)


def _noop(*args) -> None:
    return None
