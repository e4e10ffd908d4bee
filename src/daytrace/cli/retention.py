"""daytrace cleanup / purge — image retention and full data removal.

Usage:
  daytrace cleanup              delete images older than retention.days
  daytrace cleanup --days 7
  daytrace purge --yes          delete every snapshot, embedding, report and image
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from daytrace.app import build_retention, open_stores
from daytrace.cli.common import fmt_bytes, load_cfg
from daytrace.cli.errors import err_no_db
from daytrace.retention import RetentionManager

console = Console()


def cleanup_cmd(
    days: Annotated[
        int | None,
        typer.Option("--days", min=1, help="Override retention.days for this run."),
    ] = None,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Directory containing daytrace.yaml."),
    ] = None,
) -> None:
    """Delete stored images older than the retention window. Metadata is kept."""
    cfg = load_cfg(config_dir)
    if not cfg.storage.db_path.exists():
        console.print(err_no_db(str(cfg.storage.db_path)))
        raise typer.Exit(1)

    stores = open_stores(cfg)
    manager = RetentionManager(stores.repo, days=days) if days else build_retention(cfg, stores)
    result = manager.cleanup()

    if not result.cleared:
        console.print(f"  [dim]Nothing older than {manager.days} days.[/]")
        return
    console.print(
        f"[green]✓[/] Deleted {result.deleted_files} image(s), "
        f"reclaimed {fmt_bytes(result.reclaimed_bytes)}, "
        f"cleared {result.cleared} path(s)."
    )


def purge_cmd(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Directory containing daytrace.yaml."),
    ] = None,
) -> None:
    """Delete ALL captured data: snapshots, embeddings, reports and images."""
    cfg = load_cfg(config_dir)
    if not cfg.storage.db_path.exists():
        console.print(err_no_db(str(cfg.storage.db_path)))
        raise typer.Exit(1)

    if not yes:
        confirmed = typer.confirm(
            f"Delete all captured data under {cfg.storage.root}? This cannot be undone.",
            default=False,
        )
        if not confirmed:
            console.print("  [dim]Cancelled.[/]")
            raise typer.Exit(0)

    stores = open_stores(cfg)
    result = build_retention(cfg, stores).purge(stores.vectors, cfg.storage.image_dir)
    console.print(
        f"[green]✓[/] Purged {result.snapshots} snapshot(s), "
        f"{result.embeddings} embedding(s), {result.reports} report(s)."
    )
