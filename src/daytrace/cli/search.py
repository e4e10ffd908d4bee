"""daytrace search — keyword search over captured text, app names and window titles.

Usage:
  daytrace search invoice
  daytrace search "quarterly plan" --limit 10
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from daytrace.app import open_stores
from daytrace.cli.common import load_cfg
from daytrace.cli.errors import err_no_db
from daytrace.db.models import Snapshot

console = Console()

_EXCERPT_CHARS = 80


def search_cmd(
    term: Annotated[str, typer.Argument(help="Text to look for (case-insensitive).")],
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, help="Maximum number of results."),
    ] = 20,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Directory containing daytrace.yaml."),
    ] = None,
) -> None:
    """List snapshots whose text, app or window title contain TERM, newest first."""
    cfg = load_cfg(config_dir)
    term = term.strip()
    if not term:
        console.print("[red]Error:[/] Search term is empty.\n  Use:  daytrace search <text>")
        raise typer.Exit(1)
    if not cfg.storage.db_path.exists():
        console.print(err_no_db(str(cfg.storage.db_path)))
        raise typer.Exit(1)

    hits = open_stores(cfg).repo.search_text(term, limit=limit)
    if not hits:
        console.print(f"No matches found for '{term}'.", markup=False)
        return

    table = Table(title=f"{len(hits)} match(es)")
    table.add_column("Time", no_wrap=True)
    table.add_column("App", style="bold")
    table.add_column("Window")
    table.add_column("Text", style="dim")
    for snap in hits:
        table.add_row(
            f"{snap.captured_at:%Y-%m-%d %H:%M:%S}",
            snap.app_name,
            snap.window_title,
            excerpt(snap, term),
        )
    console.print(table)


def excerpt(snap: Snapshot, term: str, width: int = _EXCERPT_CHARS) -> str:
    """One-line slice of the snapshot text around the first hit of *term*."""
    text = " ".join(snap.ocr_text.split())
    if len(text) <= width:
        return text
    at = text.lower().find(term.lower())
    start = max(0, min(at - width // 4, len(text) - width)) if at >= 0 else 0
    piece = text[start : start + width]
    return ("…" if start else "") + piece + ("…" if start + width < len(text) else "")
