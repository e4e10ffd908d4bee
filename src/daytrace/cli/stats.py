"""daytrace stats — usage report for a day or a trailing range of days.

Usage:
  daytrace stats
  daytrace stats --day 2024-05-17 --save --summarize
  daytrace stats --days 7
"""

from __future__ import annotations

from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from daytrace.app import build_generator, build_reports, open_stores
from daytrace.cli.common import fmt_duration, load_cfg, parse_day
from daytrace.stats.aggregator import Report

console = Console()


def stats_cmd(
    day: Annotated[
        str | None,
        typer.Option("--day", "-d", help="Last day of the report (YYYY-MM-DD, default today)."),
    ] = None,
    days: Annotated[
        int,
        typer.Option("--days", "-n", min=1, help="Number of days ending at --day."),
    ] = 1,
    hourly: Annotated[
        bool,
        typer.Option("--hourly", help="Also show focus per hour (single day only)."),
    ] = False,
    save: Annotated[
        bool,
        typer.Option("--save", help="Store the day's report in the report cache."),
    ] = False,
    summarize: Annotated[
        bool,
        typer.Option("--summarize", help="With --save, add an AI-written summary."),
    ] = False,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Directory containing daytrace.yaml."),
    ] = None,
) -> None:
    """Show time per app, categories and focus score."""
    cfg = load_cfg(config_dir)
    last_day = parse_day(day)
    stores = open_stores(cfg)

    end = datetime.combine(last_day, time.min) + timedelta(days=1)
    start = end - timedelta(days=days)
    report = stores.aggregator.report(start, end)

    if not report.has_data:
        console.print(
            Panel(
                "[dim]No activity recorded in this period.[/]\n"
                "  Run:  daytrace capture",
                title=f"[bold]{_title(report)}[/]",
                expand=False,
            )
        )
    else:
        _show_report(report)
        if hourly and days == 1:
            _show_hourly(stores.aggregator.hourly_focus(last_day))

    if save:
        if days != 1:
            console.print("[yellow]Warning:[/] --save stores single days only; ignored.")
            return
        service = build_reports(cfg, stores, generate=build_generator(cfg) if summarize else None)
        stored = service.daily(last_day, summarize=summarize)
        console.print(f"[green]✓[/] Saved report for {stored.period_start}")
        if summarize:
            console.print(Panel(stored.summary, title="[bold]Summary[/]", expand=False))


def _title(report: Report) -> str:
    last = (report.end - timedelta(days=1)).date()
    first = report.start.date()
    return f"{first}" if first == last else f"{first} → {last}"


def _show_report(report: Report) -> None:
    console.print(
        Panel(
            f"Recorded:  [bold]{fmt_duration(report.total_seconds)}[/]\n"
            f"Focus:     [bold]{report.focus_score:.0f}%[/]\n"
            f"Snapshots: {report.snapshot_count:,}",
            title=f"[bold]{_title(report)}[/]",
            expand=False,
        )
    )

    apps = Table(title="Top apps", show_lines=False)
    apps.add_column("App", style="bold")
    apps.add_column("Time", justify="right")
    apps.add_column("Category", style="dim")
    for usage in report.top_apps:
        apps.add_row(usage.app_name, fmt_duration(usage.seconds), usage.category)
    console.print(apps)

    cats = Table(title="Categories")
    cats.add_column("Category", style="bold")
    cats.add_column("Minutes", justify="right")
    for category, minutes in sorted(report.category_minutes.items(), key=lambda kv: -kv[1]):
        cats.add_row(category, f"{minutes:g}")
    console.print(cats)

    if report.highlights:
        console.print("[bold]Frequent windows[/]")
        for title in report.highlights:
            console.print(f"  • {title}", markup=False)


def _show_hourly(hours: list[tuple[int, float]]) -> None:
    table = Table(title="Focus by hour", box=None, padding=(0, 1))
    table.add_column("Hour", justify="right")
    table.add_column("Focus", justify="right")
    table.add_column("")
    for hour, score in hours:
        if score == 0:
            continue
        table.add_row(f"{hour:02d}:00", f"{score:.0f}%", "█" * int(round(score / 10)))
    console.print(table)
