"""Usage statistics over a time range of snapshots.

Duration is inferred from capture cadence: the gap between two consecutive
snapshots is credited to the earlier snapshot's application, capped so that
time away from the machine is not counted. The final snapshot gets a short
fixed tail.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Protocol

from daytrace.db.models import Snapshot
from daytrace.stats.categories import CategoryClassifier

logger = logging.getLogger(__name__)

TOP_APPS = 5
HIGHLIGHTS = 5


class SnapshotSource(Protocol):
    def list_snapshots(self, start: datetime, end: datetime) -> list[Snapshot]: ...


@dataclass(frozen=True)
class AppUsage:
    app_name: str
    seconds: float
    category: str

    @property
    def minutes(self) -> float:
        return self.seconds / 60.0


@dataclass
class Report:
    """Usage summary for ``[start, end)``."""

    start: datetime
    end: datetime
    total_seconds: float = 0.0
    focus_score: float = 0.0
    top_apps: list[AppUsage] = field(default_factory=list)
    category_minutes: dict[str, float] = field(default_factory=dict)
    highlights: list[str] = field(default_factory=list)
    snapshot_count: int = 0

    @classmethod
    def empty(cls, start: datetime, end: datetime) -> Report:
        return cls(start=start, end=end)

    @property
    def has_data(self) -> bool:
        return self.snapshot_count > 0

    @property
    def total_minutes(self) -> int:
        return int(self.total_seconds // 60)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return ``[midnight, next midnight)`` for *day* in local time."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class StatsAggregator:
    """Builds :class:`Report` objects from the snapshot store.

    Args:
        repo: Anything exposing ``list_snapshots(start, end)``.
        classifier: Supplies focus weights per application.
        max_gap: Upper bound in seconds on the gap credited between snapshots.
        tail_seconds: Seconds credited to the last snapshot of the range.
    """

    def __init__(
        self,
        repo: SnapshotSource,
        classifier: CategoryClassifier | None = None,
        max_gap: float = 60.0,
        tail_seconds: float = 5.0,
    ) -> None:
        self._repo = repo
        self._classifier = classifier or CategoryClassifier()
        self.max_gap = max_gap
        self.tail_seconds = tail_seconds

    def report(self, start: datetime, end: datetime) -> Report:
        """Summarise the snapshots captured in ``[start, end)``."""
        snapshots = self._repo.list_snapshots(start, end)
        return self.summarize(snapshots, start, end)

    def summarize(self, snapshots: list[Snapshot], start: datetime, end: datetime) -> Report:
        if not snapshots:
            return Report.empty(start, end)

        ordered = sorted(snapshots, key=lambda s: s.captured_at)
        durations = self._durations(ordered)

        per_app: dict[str, float] = {}
        app_category: dict[str, str] = {}
        for snap, seconds in zip(ordered, durations):
            per_app[snap.app_name] = per_app.get(snap.app_name, 0.0) + seconds
            app_category[snap.app_name] = snap.category

        total = sum(per_app.values())
        weighted = sum(
            seconds * self._classifier.weight(app, app_category[app])
            for app, seconds in per_app.items()
        )
        focus = (weighted / total) * 100.0 if total > 0 else 0.0

        usage = sorted(
            (AppUsage(app, seconds, app_category[app]) for app, seconds in per_app.items()),
            key=lambda u: (-u.seconds, u.app_name),
        )

        category_seconds: dict[str, float] = {}
        for u in usage:
            category_seconds[u.category] = category_seconds.get(u.category, 0.0) + u.seconds

        titles = Counter(s.window_title.strip() for s in ordered if s.window_title.strip())

        return Report(
            start=start,
            end=end,
            total_seconds=total,
            focus_score=focus,
            top_apps=usage[:TOP_APPS],
            category_minutes={c: round(s / 60.0, 1) for c, s in category_seconds.items()},
            highlights=[title for title, _ in titles.most_common(HIGHLIGHTS)],
            snapshot_count=len(ordered),
        )

    def _durations(self, ordered: list[Snapshot]) -> list[float]:
        durations = []
        for current, nxt in zip(ordered, ordered[1:]):
            gap = (nxt.captured_at - current.captured_at).total_seconds()
            durations.append(min(max(gap, 0.0), self.max_gap))
        durations.append(self.tail_seconds)
        return durations

    def daily(self, day: date) -> Report:
        return self.report(*day_bounds(day))

    def hourly_focus(self, day: date) -> list[tuple[int, float]]:
        """Per-hour focus for *day* as ``(hour, score)`` pairs, 0 through 23.

        Each snapshot contributes its application's weight; the score is the
        mean weight in that hour times 100. Returns an empty list for a day
        without snapshots.
        """
        snapshots = self._repo.list_snapshots(*day_bounds(day))
        if not snapshots:
            return []

        points = [0.0] * 24
        counts = [0] * 24
        for snap in snapshots:
            hour = snap.captured_at.hour
            points[hour] += self._classifier.weight(snap.app_name, snap.category) * 100.0
            counts[hour] += 1
        return [(h, points[h] / counts[h] if counts[h] else 0.0) for h in range(24)]
