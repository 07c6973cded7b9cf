"""Directive scanning: find `include(...)` call sites in raw content."""

from dataclasses import dataclass, field

from ..errors import InclusionCycleError
from ..paths import resolve_path

_FUNC_CHARS = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_."
)
_QUOTE_CHARS = "'\"`"


@dataclass(frozen=True)
class IncludePointer:
    line: int
    path: str
    indentation: int


@dataclass
class ScanResult:
    pointers: dict[int, IncludePointer] = field(default_factory=dict)
    paths: set[str] = field(default_factory=set)
    cycles: list[InclusionCycleError] = field(default_factory=list)


def parse_argument(text: str) -> str:
    """Take everything up to the first ')' and drop quote characters."""
    argument = text.split(")", 1)[0]
    return "".join(char for char in argument if char not in _QUOTE_CHARS).strip()


def is_commented(line_prefix: str) -> bool:
    """Whether a call preceded by `line_prefix` on its own line sits inside a comment."""
    if "//" in line_prefix:
        return True
    opener = line_prefix.rfind("/*")
    return opener > -1 and line_prefix.rfind("*/") < opener


def scan_directives(
    content: str,
    include_tag: str,
    directory: str,
    ancestors: frozenset[str] = frozenset(),
) -> ScanResult:
    """
    Scan `content` for `<include_tag>(path)` calls.

    Line positions are 1-based over `content` and accumulated from the
    newline counts of the pieces between calls. Targets found in
    `ancestors` are not returned as pointers; they are collected in
    `cycles` instead.
    """
    result = ScanResult()
    pieces = content.split(include_tag + "(")

    line_offset = 0
    for left, current in zip(pieces, pieces[1:]):
        newlines = left.count("\n")
        line = line_offset + newlines + 1
        line_offset += newlines

        if ")" not in current:
            continue
        if left and left[-1] in _FUNC_CHARS:
            continue
        path = parse_argument(current)
        if not path:
            continue

        line_prefix = left.rsplit("\n", 1)[-1]
        if is_commented(line_prefix):
            continue

        resolved = resolve_path(path, directory)
        if resolved in ancestors:
            result.cycles.append(InclusionCycleError(resolved, line))
            continue

        result.paths.add(resolved)
        result.pointers[line] = IncludePointer(
            line=line, path=resolved, indentation=len(line_prefix)
        )

    return result
