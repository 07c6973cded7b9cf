"""Separator-independent path chunking and resolution."""

SYS_ROOT = "_sys_root"


def path_to_chunks(
    path: str, keep_trailing_slash: bool = False, root_prefix: str = SYS_ROOT
) -> list[str]:
    """
    Split `path` into hierarchy chunks.

    Relative paths gain a leading "." chunk; the empty lead of an absolute
    path is replaced with `root_prefix` so it survives a later join.
    """
    path = path.replace("\\", "/")
    if path == "./":
        return [".", ""]
    if path == "/":
        return [root_prefix]
    if path.endswith("/") and not keep_trailing_slash:
        path = path[:-1]
    if not path.startswith("./") and not path.startswith("/"):
        path = "./" + path
    chunks = path.split("/")
    if not chunks[0]:
        chunks[0] = root_prefix
    return chunks


def chunks_to_path(chunks: list[str], root_prefix: str = SYS_ROOT) -> str:
    if chunks and chunks[0] == root_prefix:
        if len(chunks) == 1:
            return "/"
        chunks = [""] + chunks[1:]
    return "/".join(chunks)


def normalize_path(path: str, keep_trailing_slash: bool = False) -> str:
    return chunks_to_path(path_to_chunks(path, keep_trailing_slash))


def resolve_path(path: str, context: str = "/") -> str:
    """Resolve `path` against the directory `context`, collapsing . and .. chunks."""
    path = path.replace("\\", "/")
    chunks = path_to_chunks(path)
    if path.startswith("/"):
        context_chunks = [SYS_ROOT]
        chunks = chunks[1:] or [""]
    else:
        context_chunks = [
            chunk
            for i, chunk in enumerate(path_to_chunks(context))
            if i == 0 or chunk not in ("", ".")
        ]

    for current in chunks[:-1]:
        if current == "..":
            if len(context_chunks) > 1:
                context_chunks.pop()
        elif current not in (".", ""):
            context_chunks.append(current)

    context_chunks.append(chunks[-1])
    return chunks_to_path(context_chunks)


def split_path(path: str) -> tuple[str, str]:
    """Return (directory, base name) of `path`."""
    chunks = path_to_chunks(path)
    return chunks_to_path(chunks[:-1]), chunks[-1]
