"""CLI entry point for cmdgraph.

Invoked as::

    cmdgraph [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m cmdgraph.cli.main

Commands
--------
run         Run a command through the process engine
records     Run a listing command and show the parsed records
version     Show version information
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from cmdgraph.config import ConfigError, EngineConfig, load_config

console = Console()
err_console = Console(stderr=True)


def _parse_env(pairs: tuple[str, ...], unset: tuple[str, ...]) -> dict[str, str | None]:
    """Turn ``KEY=VALUE`` pairs and names to unset into an override map."""
    environment: dict[str, str | None] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        environment[key] = value
    for key in unset:
        environment[key] = None
    return environment


def _config(ctx: click.Context) -> EngineConfig:
    config: EngineConfig = ctx.obj["config"]
    return config


def _tool_argv(config: EngineConfig, argv: tuple[str, ...]) -> list[str]:
    """Prefix ``argv`` with the configured tool, if there is one."""
    if config.tool_path:
        return [config.tool_path, *argv]
    return list(argv)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="cmdgraph")
@click.option("--config", "config_path", default=None, type=click.Path(), help="YAML configuration file")
@click.option("--tool", "tool_path", default=None, help="External tool to prefix every command with")
@click.option("--verbose", is_flag=True, default=False, help="Echo commands and exit statuses")
@click.option("--debug", is_flag=True, default=False, help="Echo commands, statuses and captured output")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level for library messages",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    tool_path: str | None,
    verbose: bool,
    debug: bool,
    log_level: str,
) -> None:
    """Drive a command-line tool and inspect its output as records."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    changes: dict[str, object] = {}
    if tool_path is not None:
        changes["tool_path"] = tool_path
    if verbose:
        changes["verbose"] = True
    if debug:
        changes["debug"] = True
    ctx.obj = {"config": config.replace(**changes) if changes else config}


# ---------------------------------------------------------------------------
# version command
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from cmdgraph import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]cmdgraph[/bold]", f"v{__version__}")
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    table.add_row("Platform", sys.platform)
    console.print(table)


# ---------------------------------------------------------------------------
# run command
# ---------------------------------------------------------------------------


@cli.command(name="run", context_settings={"ignore_unknown_options": True})
@click.argument("argv", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--pty", is_flag=True, default=False, help="Run the command on a pseudo-terminal")
@click.option("--capture/--no-capture", default=True, help="Capture output instead of passing it through")
@click.option("--allow-failure", is_flag=True, default=False, help="Report a non-zero exit instead of failing")
@click.option("--env", "env_pairs", multiple=True, metavar="KEY=VALUE", help="Set a variable for the command")
@click.option("--unset", "unset_names", multiple=True, metavar="KEY", help="Remove a variable for the command")
@click.pass_context
def run_command(
    ctx: click.Context,
    argv: tuple[str, ...],
    pty: bool,
    capture: bool,
    allow_failure: bool,
    env_pairs: tuple[str, ...],
    unset_names: tuple[str, ...],
) -> None:
    """Run a command through the process engine.

    ARGV is the command and its arguments; put ``--`` before it when it
    has options of its own.

    Examples:

    \b
        cmdgraph run -- ls -l /tmp
        cmdgraph run --pty -- tty
        cmdgraph --tool git run --allow-failure -- status --short
    """
    from cmdgraph.process import ProcessEngine, ProcessError, RunOptions

    config = _config(ctx)
    options = RunOptions(
        return_failure_as_status=True,
        leave_stdout=not capture and not pty,
        leave_stderr=not capture or pty,
        split_stdout=False,
        split_stderr=False,
        pseudo_terminal=pty,
        environment=_parse_env(env_pairs, unset_names),
    )
    try:
        result = ProcessEngine(config).run(_tool_argv(config, argv), options)
    except ProcessError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if isinstance(result.stdout, str) and result.stdout:
        console.print(Panel(result.stdout.rstrip("\n"), title="stdout", expand=False))
    if isinstance(result.stderr, str) and result.stderr:
        err_console.print(Panel(result.stderr.rstrip("\n"), title="stderr", expand=False))

    color = "green" if result.succeeded else "red"
    console.print(f"[bold]Status:[/bold] [{color}]{result.status}[/{color}]")
    if not result.succeeded and not allow_failure:
        sys.exit(result.status)


# ---------------------------------------------------------------------------
# records command
# ---------------------------------------------------------------------------


@cli.command(name="records", context_settings={"ignore_unknown_options": True})
@click.argument("argv", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--name-field", default="Name", show_default=True, help="Label that names each record")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "yaml"], case_sensitive=False),
    default="table",
    help="Output format",
)
@click.option("--output", "-o", default=None, help="Output file path (defaults to stdout)")
@click.pass_context
def records_command(
    ctx: click.Context,
    argv: tuple[str, ...],
    name_field: str,
    output_format: str,
    output: str | None,
) -> None:
    """Run a listing command and show its ``Label: value`` records.

    Records are kept even when the command exits non-zero; the command
    then exits 1 after showing them. Records without NAME_FIELD are
    skipped with a warning.
    """
    from cmdgraph.process import ProcessEngine, ProcessError
    from cmdgraph.records import RecordParseError, RecordSerializer, record_name, split_records, unpack_record

    config = _config(ctx)
    try:
        result = ProcessEngine(config).run(
            _tool_argv(config, argv),
            return_failure_as_status=True,
            split_stdout=False,
        )
    except ProcessError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    records: dict[str, dict[str, str]] = {}
    stdout = result.stdout if isinstance(result.stdout, str) else ""
    for block in split_records(stdout):
        record = unpack_record(block.splitlines())
        try:
            records[record_name(record, name_field)] = record
        except RecordParseError as exc:
            err_console.print(f"[yellow]Warning:[/yellow] skipping record: {exc}")

    serializer = RecordSerializer()
    if output_format == "table":
        labels: list[str] = []
        for record in records.values():
            labels.extend(label for label in record if label not in labels)
        table = Table(title=" ".join(argv), show_lines=True)
        for label in labels:
            table.add_column(label)
        for record in records.values():
            table.add_row(*(record.get(label, "") for label in labels))
        console.print(table)
    else:
        if output_format == "json":
            text = serializer.to_json(records, indent=2)
        else:
            text = serializer.to_yaml(records)
        if output:
            Path(output).write_text(text, encoding="utf-8")
            console.print(f"[green]Records written to[/green] {output}")
        else:
            console.print(Syntax(text, output_format, line_numbers=False))

    console.print(f"\n[bold]{len(records)}[/bold] record(s)")
    if not result.succeeded:
        err_console.print(f"[yellow]Listing exited with status {result.status}[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    cli()
