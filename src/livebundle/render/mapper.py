"""Map assembled line numbers back to the file that produced them."""

import os
import re
from dataclasses import dataclass

from .markers import parse_boundary


@dataclass(frozen=True)
class Location:
    path: str
    relative_line: int
    total_lines: int


def locate(line: int, lines: list[str]) -> Location | None:
    """
    Resolve 1-based `line` of the assembled `lines` to its source file.

    Two cursors walk away from the line at the same pace; the upward one
    looks for a START marker and the downward one for an END marker. The
    first hit wins, with the upward cursor checked first on each step.
    """
    index = line - 1
    if index < 0 or index >= len(lines):
        return None

    distance = 0
    while True:
        up = index - distance
        down = index + distance
        if up < 0 and down >= len(lines):
            return None

        if up >= 0:
            boundary = parse_boundary(lines[up])
            if boundary is not None and boundary.kind == "START":
                return Location(boundary.path, distance, boundary.total_lines)

        if down < len(lines):
            boundary = parse_boundary(lines[down])
            if boundary is not None and boundary.kind == "END":
                return Location(
                    boundary.path,
                    boundary.total_lines - distance - 1,
                    boundary.total_lines,
                )

        distance += 1


def _line_reference(artifact_name: str) -> re.Pattern:
    # the name must start a token or follow a path separator or opening bracket
    return re.compile(rf"(?:^|[\s(/\[]){re.escape(artifact_name)}:(\d+)")


def relativize_error(report: str, assembled: str, artifact_name: str) -> str:
    """
    Rewrite every `<artifact_name>:<line>` token of `report` as
    `[<source path>:<relative line>]`.

    Tokens are whitespace separated and replaced whole; lines that do not
    mention the artifact, and lines that cannot be mapped, are kept as is.
    """
    report = report.replace("\\", "/")
    reference = _line_reference(artifact_name)
    assembled_lines = assembled.split("\n")

    rewritten = []
    for current in report.split("\n"):
        if reference.search(current) is None:
            rewritten.append(current)
            continue

        tokens = current.split(" ")
        for i, token in enumerate(tokens):
            match = reference.search(token)
            if match is None:
                continue
            location = locate(int(match.group(1)), assembled_lines)
            if location is not None:
                resolved = os.path.abspath(location.path).replace("\\", "/")
                tokens[i] = f"[{resolved}:{location.relative_line}]"
        rewritten.append(" ".join(tokens))

    return "\n".join(rewritten)
