"""Boundary marker protocol embedded in assembled output."""

from dataclasses import dataclass

START_PREFIX = "//_ START_FILE | "
END_PREFIX = "//_ END_FILE | "
MARKER_SUFFIX = " LINES _//"
SEPARATOR = " | "


@dataclass(frozen=True)
class Boundary:
    kind: str  # "START" or "END"
    name: str
    path: str
    total_lines: int


def count_lines(content: str) -> int:
    """Total lines a wrapped file occupies: its newlines, both markers, one structural line."""
    return content.count("\n") + 3


def start_marker(name: str, path: str, total_lines: int) -> str:
    return f"{START_PREFIX}{name}{SEPARATOR}{path}{SEPARATOR}{total_lines}{MARKER_SUFFIX}"


def end_marker(name: str, path: str, total_lines: int) -> str:
    return f"{END_PREFIX}{name}{SEPARATOR}{path}{SEPARATOR}{total_lines}{MARKER_SUFFIX}"


def wrap_content(content: str, name: str, path: str) -> str:
    total = count_lines(content)
    return (
        start_marker(name, path, total)
        + "\n"
        + content
        + "\n"
        + end_marker(name, path, total)
    )


def invalid_marker(name: str, path: str) -> str:
    return f"//_ INVALID_FILE | {name} | {path} _//\n"


def parse_boundary(line: str) -> Boundary | None:
    """Parse a START/END marker anywhere in `line`, or return None."""
    if MARKER_SUFFIX not in line:
        return None
    if START_PREFIX in line:
        kind, body = "START", line.split(START_PREFIX, 1)[1]
    elif END_PREFIX in line:
        kind, body = "END", line.split(END_PREFIX, 1)[1]
    else:
        return None

    parts = body.split(SEPARATOR)
    if len(parts) < 3:
        return None
    try:
        total_lines = int(parts[2].split(" ")[0])
    except ValueError:
        return None
    return Boundary(kind=kind, name=parts[0], path=parts[1], total_lines=total_lines)
