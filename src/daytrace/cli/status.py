"""daytrace status — storage location, counts and model configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel

from daytrace.app import open_stores
from daytrace.cli.common import fmt_bytes, load_cfg
from daytrace.config import DaytraceConfig

console = Console()


def status_cmd(
    config_dir: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Directory containing daytrace.yaml."),
    ] = None,
) -> None:
    """Show the database, snapshot and embedding counts, and configured models."""
    cfg = load_cfg(config_dir)
    db_path = cfg.storage.db_path

    _show_config_panel(cfg)

    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No database yet.[/]\n"
                "  Run:  daytrace capture",
                title="[bold]Storage[/]",
                expand=False,
            )
        )
        return

    stores = open_stores(cfg)
    snapshots = stores.repo.count_snapshots()
    embeddings = stores.vectors.count()
    last = stores.repo.last_captured_at()
    image_bytes = _dir_size(cfg.storage.image_dir)

    lines = [
        f"Database:   {db_path} ({fmt_bytes(db_path.stat().st_size)})",
        f"Images:     {cfg.storage.image_dir} ({fmt_bytes(image_bytes)})",
        f"Snapshots:  [bold]{snapshots:,}[/]  |  Embeddings: [bold]{embeddings:,}[/]",
    ]
    if last is not None:
        lines.append(f"Last capture: [dim]{last:%Y-%m-%d %H:%M:%S}[/]")
    else:
        lines.append("[dim]Nothing captured yet.[/]")
    console.print(Panel("\n".join(lines), title="[bold]Storage[/]", expand=False))


def _show_config_panel(cfg: DaytraceConfig) -> None:
    lines = [
        f"Generation: {cfg.generation.model}",
        f"Embedding:  {cfg.embedding.model}",
        f"Retention:  {cfg.retention.days} days",
    ]
    if cfg.privacy.blocked_apps:
        lines.append(f"Blocked:    {', '.join(cfg.privacy.blocked_apps)}")
    console.print(Panel("\n".join(lines), title="[bold]Configuration[/]", expand=False))


def _dir_size(root: Path) -> int:
    if not root.exists():
        return 0
    return sum(p.stat().st_size for p in root.rglob("*") if p.is_file())
