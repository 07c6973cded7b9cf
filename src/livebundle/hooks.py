"""Post-write syntax checking and run-time error relativization."""

import asyncio
import os
import subprocess
import sys
from typing import Callable, Sequence

import click

from .render.mapper import relativize_error


async def check_syntax(command: Sequence[str], artifact_path: str) -> str | None:
    """
    Run the syntax checker on `artifact_path`.

    Returns the checker's error output when it rejects the file, None when
    it accepts it. Raises OSError when the checker cannot be launched.
    """
    process = await asyncio.create_subprocess_exec(
        *command,
        artifact_path,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode == 0:
        return None
    return (stderr or stdout).decode("utf-8", errors="replace")


def render_stub(template: str, trace: str) -> str:
    """Fill `template` with `trace`, escaped for a JavaScript template literal."""
    escaped = trace.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
    return template.replace("{trace}", escaped)


class RelativeErrorHook:
    """
    Relativizes error reports raised by a running artifact.

    The relativized report goes to `handler` when one is given; otherwise
    it is printed to stderr and the process exits with status 1.
    """

    def __init__(
        self,
        artifact_path: str,
        handler: Callable[[str], object] | None = None,
    ):
        self.artifact_path = artifact_path
        self.artifact_name = os.path.basename(artifact_path)
        self.handler = handler

    def relativize(self, report: str) -> str:
        with open(self.artifact_path, "r", encoding="utf-8") as file:
            assembled = file.read()
        return relativize_error(report, assembled, self.artifact_name)

    def __call__(self, report: str) -> None:
        relative = self.relativize(report)
        if self.handler is not None:
            self.handler(relative)
            return
        click.echo(relative, err=True)
        sys.exit(1)


def run_artifact(
    artifact_path: str,
    runner: Sequence[str] = ("node",),
    hook: RelativeErrorHook | None = None,
) -> int:
    """Run the artifact, passing its error output through `hook` on failure."""
    hook = hook or RelativeErrorHook(artifact_path)
    result = subprocess.run(
        [*runner, artifact_path], stderr=subprocess.PIPE, text=True
    )
    if result.returncode != 0:
        hook(result.stderr)
    return result.returncode
