class ConfigError(ValueError):
    """Invalid or missing configuration value."""


class InclusionCycleError(Exception):
    """A directive resolved to a file already present in its ancestor chain."""

    def __init__(self, path: str, line: int):
        self.path = path
        self.line = line
        super().__init__(
            f"Potential infinite inclusion loop detected at {path}:{line}"
        )


class SyntaxCheckError(Exception):
    """The syntax checker rejected a written artifact."""

    def __init__(self, path: str, trace: str):
        self.path = path
        self.trace = trace
        super().__init__(f"Syntax check failed for {path}")
