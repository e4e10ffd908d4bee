"""Helpers shared by the daytrace commands."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import typer
from rich.console import Console

from daytrace.cli.errors import err_bad_date, err_config
from daytrace.config import ConfigError, DaytraceConfig, load_config

console = Console()


def load_cfg(config_dir: Path | None) -> DaytraceConfig:
    """Load config or exit 1 with an actionable message."""
    try:
        return load_config(config_dir)
    except (ConfigError, OSError, ValueError) as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)


def parse_day(value: str | None) -> date:
    if value is None:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(err_bad_date(value))
        raise typer.Exit(1)


def parse_instant(value: str | None) -> datetime | date | None:
    """Parse an ISO instant. A bare date is returned as a date."""
    if value is None:
        return None
    try:
        instant = datetime.fromisoformat(value)
    except ValueError:
        console.print(err_bad_date(value))
        raise typer.Exit(1)
    # YYYY-MM-DD or YYYYMMDD carry no time of day
    return instant.date() if len(value.strip()) <= 10 else instant


def fmt_duration(seconds: float) -> str:
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def fmt_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"
