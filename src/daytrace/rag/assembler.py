"""Prompt assembly: statistical overview plus semantic matches.

The overview is always present, even when it only says that nothing was
recorded, so the model never answers without grounding.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from daytrace.rag.vector_store import SearchResult
from daytrace.stats.aggregator import Report

NO_DATA = "No activity was recorded in any of these periods."
NO_MATCHES = "No semantic matches."

_SYSTEM = (
    "You are a personal activity analyst. Explain what the user has been doing "
    "using only the data below."
)

_INSTRUCTIONS = (
    "INSTRUCTIONS:\n"
    "- Use the STATISTICS section for \"how much\" and \"overall\" questions "
    "(time spent, focus, most used apps).\n"
    "- Use the SEMANTIC MATCHES section for \"what specifically\" questions "
    "(documents, pages, conversations).\n"
    "- If the data does not contain the answer, say so. Do not invent activity.\n"
    "- Be concise."
)


def _fmt_minutes(seconds: float) -> str:
    minutes = seconds / 60.0
    if minutes >= 60:
        return f"{int(minutes // 60)}h {int(minutes % 60)}m"
    return f"{minutes:.0f}m"


def format_period(label: str, report: Report) -> str:
    """Render one non-empty report as an indented block."""
    lines = [
        f"{label} ({report.start:%Y-%m-%d} to {report.end:%Y-%m-%d}):",
        f"  Total time recorded: {report.total_minutes} minutes",
        f"  Focus score: {report.focus_score:.1f}%",
    ]
    if report.top_apps:
        apps = ", ".join(
            f"{u.app_name} ({_fmt_minutes(u.seconds)}, {u.category})" for u in report.top_apps
        )
        lines.append(f"  Top apps: {apps}")
    if report.category_minutes:
        cats = ", ".join(
            f"{c}: {m:g} min"
            for c, m in sorted(report.category_minutes.items(), key=lambda kv: (-kv[1], kv[0]))
        )
        lines.append(f"  Categories: {cats}")
    if report.highlights:
        lines.append(f"  Frequent windows: {'; '.join(report.highlights)}")
    return "\n".join(lines)


def format_overview(periods: Sequence[tuple[str, Report]]) -> str:
    """Render every period that has data; say so explicitly when none do."""
    blocks = [format_period(label, report) for label, report in periods if report.has_data]
    return "\n\n".join(blocks) if blocks else NO_DATA


def format_matches(matches: Sequence[SearchResult]) -> str:
    if not matches:
        return NO_MATCHES
    return "\n".join(f"{i}. {m.text}" for i, m in enumerate(matches, start=1))


def assemble_prompt(
    query: str,
    overview: str,
    matches: Sequence[SearchResult],
    as_of: datetime | None = None,
) -> str:
    """Combine the statistics, the semantic matches and the question into one prompt."""
    header = _SYSTEM
    if as_of is not None:
        header += f"\nCurrent time: {as_of:%Y-%m-%d %H:%M}"
    return (
        f"{header}\n\n"
        f"DATA SOURCE 1: STATISTICS (overall usage)\n{overview}\n\n"
        f"DATA SOURCE 2: SEMANTIC MATCHES (specific details)\n{format_matches(matches)}\n\n"
        f"User question: {query}\n\n"
        f"{_INSTRUCTIONS}"
    )
