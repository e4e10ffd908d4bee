"""Daytrace CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from daytrace.cli.ask import ask_cmd
from daytrace.cli.capture import capture_cmd
from daytrace.cli.export import export_cmd
from daytrace.cli.retention import cleanup_cmd, purge_cmd
from daytrace.cli.search import search_cmd
from daytrace.cli.stats import stats_cmd
from daytrace.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("daytrace")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"daytrace {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="daytrace",
    help=(
        "Daytrace — searchable memory of your screen.\n\n"
        "  daytrace capture  Record, redact and index what is on screen.\n"
        "  daytrace ask      Ask questions about what you did."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Daytrace — searchable memory of your screen."""


app.command("capture")(capture_cmd)
app.command("ask")(ask_cmd)
app.command("search")(search_cmd)
app.command("stats")(stats_cmd)
app.command("export")(export_cmd)
app.command("status")(status_cmd)
app.command("cleanup")(cleanup_cmd)
app.command("purge")(purge_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Daytrace version."""
    typer.echo(f"daytrace {_installed_version()}")


if __name__ == "__main__":
    app()
