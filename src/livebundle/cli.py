import asyncio
import logging
import os
import sys

import click
from pyperclip import copy

from .config import load_config
from .errors import ConfigError

SUBCOMMANDS = {"build", "watch", "locate", "relativize", "run"}
GLOBAL_FLAGS = {"--copy", "-c", "--verbose", "-v"}
GLOBAL_VALUE_OPTIONS = {"--write-file", "--config"}


def _find_subcommand(argv):
    """Index of the first subcommand name, stepping over global option values."""
    skip = False
    for index, arg in enumerate(argv[1:], start=1):
        if skip:
            skip = False
        elif arg in SUBCOMMANDS:
            return index
        elif arg in GLOBAL_VALUE_OPTIONS:
            skip = True
    return None


def preprocess_args():
    """
    Let group options follow the subcommand: `livebundle watch app.js -v`
    is rewritten to `livebundle -v watch app.js` before click parses it.
    """
    position = _find_subcommand(sys.argv)
    if position is None:
        return

    hoisted, kept = [], []
    rest = iter(sys.argv[position + 1 :])
    for arg in rest:
        if arg in GLOBAL_FLAGS:
            hoisted.append(arg)
        elif arg in GLOBAL_VALUE_OPTIONS:
            hoisted.append(arg)
            value = next(rest, None)
            if value is not None:
                hoisted.append(value)
        else:
            kept.append(arg)

    if hoisted:
        sys.argv = sys.argv[:position] + hoisted + [sys.argv[position]] + kept


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="[%(asctime)s][%(name)s] %(message)s",
    )


def _load_config(ctx, **overrides):
    try:
        return load_config(ctx.obj.get("config_path"), **overrides)
    except ConfigError as e:
        raise click.UsageError(str(e))


def _echo_event(label: str):
    return lambda hierarchy: click.echo(f"[LIVEBUNDLE] {label} -> {hierarchy}", err=True)


def _echo_error(path, error):
    click.echo(f"ERROR @ {path}: {error}", err=True)


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML config file (defaults to $XDG_CONFIG_HOME/livebundle/config.yaml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c",
    "--copy",
    is_flag=True,
    help="Copy output to clipboard instead of printing to console.",
)
@click.option(
    "--write-file",
    type=click.Path(),
    help="Optional output file path (overrides clipboard/console output).",
)
@click.pass_context
def cli(ctx, config_path, verbose, copy, write_file):
    """
    Livebundle CLI - assemble include() trees and map errors back to sources
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["copy"] = copy
    ctx.obj["write_file"] = write_file
    _configure_logging(verbose)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.result_callback()
@click.pass_context
def process_output(ctx, subcommand_output, *args, **kwargs):
    """
    Write subcommand output to a file, the clipboard, or the console.
    """
    if not subcommand_output:
        return

    write_file = ctx.obj["write_file"]
    if write_file:
        with open(write_file, "w", encoding="utf-8") as f:
            f.write(subcommand_output)
        lines = subcommand_output.count("\n") + 1
        click.echo(f"Wrote {lines} lines to {write_file}")
    elif ctx.obj["copy"]:
        try:
            copy(subcommand_output)
            click.echo("Copied output to clipboard.")
        except Exception as e:
            click.echo(f"Error copying to clipboard: {e}", err=True)
    else:
        click.echo(subcommand_output)


@cli.command("build")
@click.argument("root", required=False)
@click.option("--include-tag", default=None, help="Directive keyword (default: include).")
@click.pass_context
def build_cmd(ctx, root, include_tag):
    """
    Assemble ROOT and its includes once, without watching.
    """
    from .compiler import Compiler

    config = _load_config(ctx, root=root, include_tag=include_tag)
    # build only prints; artifacts on disk belong to `watch`
    config.write = None
    compiler = Compiler(config, watch=False)
    compiler.handle("error", _echo_error)
    compiler.start()
    return compiler.compiled


@cli.command("watch")
@click.argument("root", required=False)
@click.option("--out-dir", default=None, help="Directory to write the artifact to.")
@click.option("--file-name", default=None, help="Artifact file name (default: compiled_<root name>).")
@click.option("--watch-delay", type=int, default=None, help="Watch debounce in milliseconds.")
@click.option("--settle-delay", type=int, default=None, help="Delay before reloading a changed file, in milliseconds.")
@click.option("--write-delay", type=int, default=None, help="Minimum spacing between writes, in milliseconds.")
@click.option("--include-tag", default=None, help="Directive keyword (default: include).")
@click.option(
    "--relative-errors/--no-relative-errors",
    default=None,
    help="Syntax check written artifacts and relativize their error traces.",
)
@click.option("--syntax-check", default=None, help='Syntax check command (default: "node --check").')
@click.pass_context
def watch_cmd(
    ctx,
    root,
    out_dir,
    file_name,
    watch_delay,
    settle_delay,
    write_delay,
    include_tag,
    relative_errors,
    syntax_check,
):
    """
    Keep ROOT assembled while any file of its include tree changes.
    """
    config = _load_config(
        ctx,
        root=root,
        watch_delay=watch_delay,
        settle_delay=settle_delay,
        include_tag=include_tag,
        out_dir=out_dir,
        file_name=file_name,
        write_delay=write_delay,
        relative_errors=relative_errors,
        syntax_check=syntax_check,
    )
    try:
        asyncio.run(_watch(config))
    except KeyboardInterrupt:
        click.echo("Stopped watching.", err=True)


async def _watch(config):
    from .compiler import Compiler

    compiler = Compiler(config)
    compiler.handle("initialized", _echo_event("INITIALIZED"))
    compiler.handle("changed", _echo_event("DETECTED_CHANGES"))
    compiler.handle("destroyed", _echo_event("DESTROYED"))
    compiler.handle("error", _echo_error)
    if compiler.output_path:
        compiler.handle(
            "recalibrate",
            lambda: click.echo(f"[LIVEBUNDLE] RECALIBRATED -> {compiler.output_path}", err=True),
        )
    compiler.start()
    try:
        await asyncio.Event().wait()
    finally:
        compiler.destroy()


@cli.command("locate")
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=int)
def locate_cmd(artifact, line):
    """
    Print the source file and line behind LINE of ARTIFACT.
    """
    from .render.mapper import locate

    with open(artifact, "r", encoding="utf-8") as f:
        lines = f.read().split("\n")
    location = locate(line, lines)
    if location is None:
        raise click.ClickException(f"No file boundary found around line {line}.")
    return f"{location.path}:{location.relative_line}"


@cli.command("relativize")
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False))
@click.argument("report", type=click.File("r"), default="-")
def relativize_cmd(artifact, report):
    """
    Rewrite ARTIFACT line references in REPORT (default: stdin) to source lines.
    """
    from .render.mapper import relativize_error

    with open(artifact, "r", encoding="utf-8") as f:
        assembled = f.read()
    return relativize_error(report.read(), assembled, os.path.basename(artifact))


@cli.command("run")
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False))
@click.option("--runner", default="node", show_default=True, help="Command used to run the artifact.")
def run_cmd(artifact, runner):
    """
    Run ARTIFACT and relativize its error output if it fails.
    """
    from .hooks import run_artifact

    run_artifact(artifact, runner.split())


def main():
    preprocess_args()
    cli()


if __name__ == "__main__":
    main()
