def build(path: str, *, include_tag: str = "include") -> str:
    """Assemble `path` and everything it includes, without watching."""
    from .compiler import Compiler
    from .config import CompilerConfig

    compiler = Compiler(CompilerConfig(root=path, include_tag=include_tag), watch=False)
    compiler.start()
    return compiler.compiled


def locate(assembled: str, line: int):
    """Map `line` of assembled text to its source file, or None."""
    from .render.mapper import locate as _locate

    return _locate(line, assembled.split("\n"))


def relativize(report: str, assembled: str, artifact_name: str) -> str:
    from .render.mapper import relativize_error

    return relativize_error(report, assembled, artifact_name)


__all__ = [
    "build",
    "locate",
    "relativize",
]
