"""
CLI entry point for easyfix.

This module provides the Typer-based command-line interface for looking
after fixture directories. Choosing the mode a test suite runs in is left to
the suite (EASYFIX_MODE or explicit options); the CLI only inspects and
cleans up what capture mode wrote.

Commands:
    list        List stored fixture records
    show        Show one record
    verify      Check records load and ordinals have no gaps
    clear       Delete stored records
"""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from easyfix import __version__
from easyfix.codec import materialize
from easyfix.errors import EasyfixError
from easyfix.log import setup_logging
from easyfix.schema import OutcomeKind
from easyfix.store import FixtureStore

app = typer.Typer(
    name="easyfix",
    help="Inspect and maintain captured callback fixtures.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

FixtureDir = Annotated[
    Path,
    typer.Argument(
        help="Fixture directory.",
        exists=True,
        file_okay=False,
        resolve_path=True,
    ),
]

NameOption = Annotated[
    Optional[str],
    typer.Option(
        "--name",
        "-n",
        help="Only consider records for this fixture name.",
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output results in JSON format.",
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]easyfix[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """
    easyfix - capture and replay fixtures for callback-style methods.
    """
    setup_logging("DEBUG" if verbose else "WARNING")


@app.command("list")
def list_fixtures(
    fixture_dir: FixtureDir,
    name: NameOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    List stored fixture records.

    Example:
        $ easyfix list tests/fixtures --name Client.fetch
    """
    summaries = FixtureStore(fixture_dir).list_fixtures(name)

    if json_output:
        print(json.dumps([s.model_dump(mode="json") for s in summaries], indent=2))
        return

    if not summaries:
        console.print("[dim]No fixtures found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("#", justify="right")
    table.add_column("Outcome", width=8)
    table.add_column("Recorded")
    table.add_column("Size", justify="right")

    for s in summaries:
        if s.kind is OutcomeKind.RESULT:
            outcome = "[green]result[/green]"
        elif s.kind is OutcomeKind.ERROR:
            outcome = "[red]error[/red]"
        else:
            outcome = "[yellow]corrupt[/yellow]"

        table.add_row(
            s.name,
            str(s.ordinal),
            outcome,
            s.recorded_at.isoformat()[:19] if s.recorded_at else "-",
            f"{s.size_bytes} B",
        )

    console.print(table)


@app.command()
def show(
    fixture_dir: FixtureDir,
    name: Annotated[str, typer.Argument(help="Fixture name.")],
    ordinal: Annotated[int, typer.Argument(help="Call ordinal (1-based).", min=1)],
    json_output: JsonOption = False,
) -> None:
    """
    Show one stored record.

    Example:
        $ easyfix show tests/fixtures Client.fetch 1
    """
    try:
        record = FixtureStore(fixture_dir).get(name, ordinal)
        args = materialize(record.args)
        kwargs = materialize(record.kwargs)
        error, result = record.outcome.to_callback_args()
    except EasyfixError as e:
        if json_output:
            print(json.dumps({"success": False, "error": e.to_dict()}, indent=2))
        else:
            console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(code=1)

    if json_output:
        print(record.model_dump_json(indent=2))
        return

    console.print(f"[bold]{record.name} #{record.ordinal}[/bold]")
    console.print(f"  Recorded: {record.recorded_at.isoformat()[:19]}")
    console.print(f"  Args: {escape(repr(args))}")
    if kwargs:
        console.print(f"  Kwargs: {escape(repr(kwargs))}")

    if record.outcome.kind is OutcomeKind.ERROR:
        console.print(f"  [red]Error:[/red] {escape(repr(error))}")
    else:
        console.print(f"  [green]Result:[/green] {escape(repr(result))}")


@app.command()
def verify(
    fixture_dir: FixtureDir,
    name: NameOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Verify stored records.

    Every record must load and match its file name, and each fixture's
    ordinals must run from 1 without gaps.

    Example:
        $ easyfix verify tests/fixtures
    """
    report = FixtureStore(fixture_dir).verify(name)

    if json_output:
        print(json.dumps(report, indent=2))
    elif report["valid"]:
        total = sum(report["stats"].values())
        console.print(f"[green]✓[/green] {total} records in {len(report['stats'])} fixtures verified")
    else:
        console.print(f"[red]✗[/red] {len(report['errors'])} problems found")
        for error in report["errors"]:
            console.print(f"  [red]•[/red] {escape(error)}")

    if not report["valid"]:
        raise typer.Exit(code=1)


@app.command()
def clear(
    fixture_dir: FixtureDir,
    name: NameOption = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Don't ask for confirmation.",
        ),
    ] = False,
) -> None:
    """
    Delete stored records.

    Example:
        $ easyfix clear tests/fixtures --name Client.fetch --yes
    """
    target = f"fixtures named {name!r}" if name else "all fixtures"
    if not yes:
        typer.confirm(f"Delete {target} in {fixture_dir}?", abort=True)

    deleted = FixtureStore(fixture_dir).clear(name)
    console.print(f"Deleted {deleted} records")


if __name__ == "__main__":
    app()
