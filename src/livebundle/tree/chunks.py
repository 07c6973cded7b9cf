from dataclasses import dataclass, field
from typing import Union


@dataclass
class Chunk:
    """One file's lines, with included files nested at their call sites."""

    path: str
    line: int = 1
    indentation: int = 0
    content: list[Union[str, "Chunk"]] = field(default_factory=list)


def stringify(chunk: Chunk, indentation: int = 0) -> str:
    """Flatten `chunk` into text, indenting nested chunks by their accumulated call-site indentation."""
    rendered = []
    for current in chunk.content:
        if isinstance(current, Chunk):
            rendered.append(stringify(current, indentation + current.indentation))
        else:
            rendered.append(" " * indentation + current)
    return "\n".join(rendered)
