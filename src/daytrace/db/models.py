"""Domain models for the daytrace database layer."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime

# Capture instants are naive local time, stored with fixed microsecond
# precision so lexical order in SQLite matches chronological order.
_TIME_SPEC = "microseconds"


def to_db_time(value: datetime) -> str:
    return value.isoformat(sep=" ", timespec=_TIME_SPEC)


def from_db_time(value: str) -> datetime:
    return datetime.fromisoformat(value)


def new_snapshot_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Snapshot:
    captured_at: datetime
    image_path: str = ""
    ocr_text: str = ""
    app_name: str = "Unknown"
    window_title: str = ""
    category: str = "personal"
    display_id: int = 0
    ai_summary: str | None = None
    id: str = field(default_factory=new_snapshot_id)

    def index_text(self) -> str:
        """Text embedded for semantic search: context line plus extracted text."""
        header = f"{self.app_name}: {self.window_title} ({self.captured_at:%Y-%m-%d %H:%M})"
        body = self.ocr_text.strip()
        return f"{header}\n{body}" if body else header


@dataclass
class EmbeddingRecord:
    snapshot_id: str
    text: str
    vector: list[float]
    inserted_at: str | None = None


@dataclass
class StoredReport:
    period_start: str
    period_end: str
    total_minutes: int = 0
    focus_score: float = 0.0
    top_apps: str = "[]"
    category_minutes: str = "{}"
    highlights: str = "[]"
    summary: str = ""
    generated_at: str | None = None

    @property
    def top_apps_list(self) -> list[str]:
        return json.loads(self.top_apps)

    @property
    def category_minutes_dict(self) -> dict[str, float]:
        return json.loads(self.category_minutes)

    @property
    def highlights_list(self) -> list[str]:
        return json.loads(self.highlights)
