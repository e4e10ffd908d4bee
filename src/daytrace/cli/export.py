"""daytrace export — write snapshot metadata to a CSV file.

Usage:
  daytrace export --csv activity.csv
  daytrace export --csv week.csv --day 2024-05-17 --days 7
"""

from __future__ import annotations

from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from daytrace.app import open_stores
from daytrace.cli.common import load_cfg, parse_day
from daytrace.cli.errors import err_no_db
from daytrace.export import export_csv

console = Console()


def export_cmd(
    csv_path: Annotated[
        Path,
        typer.Option("--csv", help="Destination CSV file."),
    ],
    day: Annotated[
        str | None,
        typer.Option("--day", "-d", help="Last day to export (YYYY-MM-DD). Default: everything."),
    ] = None,
    days: Annotated[
        int,
        typer.Option("--days", "-n", min=1, help="Number of days ending at --day."),
    ] = 1,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Directory containing daytrace.yaml."),
    ] = None,
) -> None:
    """Export timestamp, app, window title and category of each snapshot."""
    cfg = load_cfg(config_dir)
    if not cfg.storage.db_path.exists():
        console.print(err_no_db(str(cfg.storage.db_path)))
        raise typer.Exit(1)

    if day is None:
        start, end = datetime.min, datetime.max
    else:
        end = datetime.combine(parse_day(day), time.min) + timedelta(days=1)
        start = end - timedelta(days=days)

    snapshots = open_stores(cfg).repo.list_snapshots(start, end)
    try:
        rows = export_csv(snapshots, csv_path)
    except OSError as exc:
        console.print(
            f"[red]Error:[/] Cannot write '{csv_path}': {exc}\n"
            "  Check the folder exists and is writable, or choose another --csv path."
        )
        raise typer.Exit(1)
    console.print(f"[green]✓[/] Exported {rows} snapshot(s) to {csv_path}")
