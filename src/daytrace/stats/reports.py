"""Daily report cache with an optional AI-written summary."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import date

from daytrace.db.models import StoredReport
from daytrace.db.repository import SnapshotRepository
from daytrace.stats.aggregator import Report, StatsAggregator, day_bounds

logger = logging.getLogger(__name__)

SUMMARY_UNAVAILABLE = "AI summary unavailable."
NO_SUMMARY = "No summary generated."

_SUMMARY_PROMPT = (
    "Summarise this person's computer activity for {day} in two or three sentences. "
    "Mention what they worked on and how focused they were.\n\n"
    "Focus score: {focus:.0f}%\n"
    "Total recorded time: {minutes} minutes\n"
    "Most used apps: {apps}\n"
    "Frequent windows:\n{highlights}\n"
)


def to_stored(report: Report, summary: str) -> StoredReport:
    return StoredReport(
        period_start=report.start.date().isoformat(),
        period_end=report.end.date().isoformat(),
        total_minutes=report.total_minutes,
        focus_score=round(report.focus_score, 1),
        top_apps=json.dumps([u.app_name for u in report.top_apps]),
        category_minutes=json.dumps(report.category_minutes, sort_keys=True),
        highlights=json.dumps(report.highlights),
        summary=summary,
    )


class ReportService:
    """Computes a day's report and keeps the latest version in the report cache.

    Args:
        aggregator: Produces the statistics.
        repo: Snapshot store holding the ``reports`` table.
        generate: Optional text-generation callable used for the summary.
    """

    def __init__(
        self,
        aggregator: StatsAggregator,
        repo: SnapshotRepository,
        generate: Callable[[str], str] | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._repo = repo
        self._generate = generate

    def daily(self, day: date, summarize: bool = False) -> StoredReport:
        """Compute, cache and return the report for *day*.

        A previously cached report for the same day is replaced wholesale.
        """
        report = self._aggregator.report(*day_bounds(day))
        summary = NO_SUMMARY
        if summarize and report.has_data:
            summary = self._summarize(day, report)

        stored = to_stored(report, summary)
        self._repo.upsert_report(stored)
        logger.info("Cached report for %s (%d min)", stored.period_start, stored.total_minutes)
        return self._repo.get_report(stored.period_start) or stored

    def cached(self, day: date) -> StoredReport | None:
        return self._repo.get_report(day.isoformat())

    def _summarize(self, day: date, report: Report) -> str:
        if self._generate is None:
            return SUMMARY_UNAVAILABLE
        prompt = _SUMMARY_PROMPT.format(
            day=day.isoformat(),
            focus=report.focus_score,
            minutes=report.total_minutes,
            apps=", ".join(u.app_name for u in report.top_apps) or "none",
            highlights="\n".join(f"- {h}" for h in report.highlights) or "- none",
        )
        try:
            text = self._generate(prompt).strip()
        except Exception as exc:
            logger.warning("Report summary failed: %s", exc)
            return SUMMARY_UNAVAILABLE
        return text or SUMMARY_UNAVAILABLE
