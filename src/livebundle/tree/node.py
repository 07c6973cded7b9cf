"""LiveNode - one file of the include graph, kept in sync with disk."""

import logging
from dataclasses import dataclass
from typing import Callable

from ..paths import normalize_path, split_path
from ..render.markers import invalid_marker, wrap_content
from .chunks import Chunk
from .scan import IncludePointer, scan_directives

logger = logging.getLogger(__name__)

EVENTS = ("initialized", "changed", "destroyed", "error", "recalibrate")


@dataclass
class ChildEntry:
    node: "LiveNode"
    references: int = 0


class LiveNode:
    """
    A file whose content is re-read on change and whose `include(...)`
    calls are resolved into child nodes.

    Children are shared between call sites of the same target path and
    reference counted; a child is destroyed once no call site points at it
    any more.
    """

    def __init__(
        self,
        path: str,
        *,
        include_tag: str = "include",
        pool=None,
        ancestors: frozenset[str] = frozenset(),
        hierarchy: str | None = None,
        handlers: dict[str, Callable] | None = None,
    ):
        self.path = normalize_path(path)
        self.directory, self.name = split_path(self.path)
        self.include_tag = include_tag
        self.ancestors = frozenset(ancestors) | {self.path}
        self.hierarchy = self.name if hierarchy is None else f"{hierarchy}/{self.name}"
        self.content = ""

        self._pool = pool
        self._watch_id: int | None = None
        self._children: dict[str, ChildEntry] = {}
        self._pointers: list[IncludePointer] = []
        self._initialized = False
        self._destroyed = False
        self._handlers: dict[str, Callable] = {event: _noop for event in EVENTS}
        for event, handler in (handlers or {}).items():
            self.handle(event, handler)

        if self._pool is not None:
            self._watch_id = self._pool.subscribe(self.path, self.reload)

    def handle(self, event: str, handler: Callable) -> None:
        """Bind `handler` for `event`, replacing the previous one."""
        if event not in self._handlers:
            raise ValueError(f"{event} event is not supported on LiveNode.")
        self._handlers[event] = handler

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def pointers(self) -> tuple[IncludePointer, ...]:
        return tuple(self._pointers)

    @property
    def children(self) -> dict[str, "LiveNode"]:
        return {path: entry.node for path, entry in self._children.items()}

    def references(self, path: str) -> int:
        entry = self._children.get(path)
        return entry.references if entry else 0

    def reload(self) -> None:
        """Watch callback: re-read, reconcile and notify the parent."""
        self.load(notify=True)

    def load(self, notify: bool = True) -> None:
        if self._destroyed:
            return
        self._read()
        self._reconcile()
        if notify:
            self._handlers["recalibrate"]()

    def destroy(self) -> None:
        """Tear down this node, its watch subscription and its whole subtree."""
        if self._destroyed:
            return
        self._destroyed = True
        logger.info("DESTROYED -> %s", self.hierarchy)
        self._handlers["destroyed"](self.hierarchy)

        if self._pool is not None and self._watch_id is not None:
            self._pool.unsubscribe(self.path, self._watch_id)
            self._watch_id = None

        self._pointers = []
        for entry in self._children.values():
            entry.node.destroy()
        self._children.clear()

    def chunks(self) -> Chunk:
        """Build this node's chunk tree; children are expanded at their pointer lines."""
        lines: list = self.content.split("\n")
        for pointer in self._pointers:
            nested = self._children[pointer.path].node.chunks()
            nested.line = pointer.line
            nested.indentation = pointer.indentation
            lines[pointer.line - 1] = nested
        return Chunk(path=self.path, line=1, indentation=0, content=lines)

    def _read(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as file:
                raw = file.read()
        except (OSError, UnicodeDecodeError) as e:
            self.content = invalid_marker(self.name, self.path)
            logger.warning("READ_ERROR -> %s", self.hierarchy)
            self._handlers["error"](self.path, e)
            return
        self.content = wrap_content(raw, self.name, self.path)

    def _reconcile(self) -> None:
        scanned = scan_directives(
            self.content, self.include_tag, self.directory, self.ancestors
        )
        for cycle in scanned.cycles:
            logger.warning("%s", cycle)
            self._handlers["error"](self.path, cycle)

        surviving: dict[int, str] = {}
        kept: list[IncludePointer] = []
        for pointer in self._pointers:
            current = scanned.pointers.get(pointer.line)
            if current is not None and current.path == pointer.path:
                surviving[pointer.line] = pointer.path
                kept.append(pointer)
                continue

            entry = self._children[pointer.path]
            entry.references -= 1
            if entry.references < 1 and pointer.path not in scanned.paths:
                entry.node.destroy()
                del self._children[pointer.path]
        self._pointers = kept

        inserted = False
        for line, pointer in scanned.pointers.items():
            if line in surviving:
                continue
            entry = self._children.get(pointer.path)
            if entry is None:
                entry = ChildEntry(self._spawn(pointer.path))
                self._children[pointer.path] = entry
            entry.references += 1
            self._pointers.append(pointer)
            inserted = True

        if inserted:
            self._pointers.sort(key=lambda p: p.line)

        if not self._initialized:
            self._initialized = True
            logger.info("INITIALIZED -> %s", self.hierarchy)
            self._handlers["initialized"](self.hierarchy)
        else:
            logger.info("DETECTED_CHANGES -> %s", self.hierarchy)
            self._handlers["changed"](self.hierarchy)

    def _spawn(self, path: str) -> "LiveNode":
        child = LiveNode(
            path,
            include_tag=self.include_tag,
            pool=self._pool,
            ancestors=self.ancestors,
            hierarchy=self.hierarchy,
            handlers={
                "initialized": lambda h: self._handlers["initialized"](h),
                "changed": lambda h: self._handlers["changed"](h),
                "destroyed": lambda h: self._handlers["destroyed"](h),
                "error": lambda p, e: self._handlers["error"](p, e),
                "recalibrate": lambda: self._handlers["recalibrate"](),
            },
        )
        # the parent's own notification covers the child's first load
        child.load(notify=False)
        return child


def _noop(*args) -> None:
    return None
