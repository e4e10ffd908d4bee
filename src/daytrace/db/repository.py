"""Snapshot store: snapshots, report cache, retention and purge.

Every method opens its own short-lived connection, so a single repository
instance can be shared by the capture workers and the query path.
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime

from daytrace.db.connection import Database
from daytrace.db.models import Snapshot, StoredReport, from_db_time, to_db_time
from daytrace.db.schema import initialize

_SNAPSHOT_COLUMNS = (
    "id, captured_at, image_path, ocr_text, app_name, window_title, "
    "category, display_id, ai_summary"
)


class SnapshotRepository:
    """Data access layer for snapshots and cached reports.

    The schema is migrated on first use; later calls skip the check.
    """

    def __init__(self, db: Database) -> None:
        """Initialise with a database handle.

        Args:
            db: The daytrace Database; connections are opened per operation.
        """
        self._db = db
        self._ready = False
        self._init_lock = threading.Lock()

    @property
    def db(self) -> Database:
        return self._db

    def initialize(self) -> None:
        """Run pending migrations once per repository instance."""
        if self._ready:
            return
        with self._init_lock:
            if self._ready:
                return
            with self._db.session() as conn:
                initialize(conn)
            self._ready = True

    def _session(self):
        self.initialize()
        return self._db.session()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def add_snapshot(self, snapshot: Snapshot) -> None:
        """Insert a new snapshot record.

        Args:
            snapshot: Snapshot dataclass instance to persist.
        """
        with self._session() as conn:
            conn.execute(
                f"INSERT INTO snapshots ({_SNAPSHOT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    snapshot.id,
                    to_db_time(snapshot.captured_at),
                    snapshot.image_path,
                    snapshot.ocr_text,
                    snapshot.app_name,
                    snapshot.window_title,
                    snapshot.category,
                    snapshot.display_id,
                    snapshot.ai_summary,
                ),
            )
            conn.commit()

    def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        """Return a snapshot by ID, or None if not found."""
        with self._session() as conn:
            row = conn.execute(
                f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots WHERE id = ?", (snapshot_id,)
            ).fetchone()
        return _row_to_snapshot(row) if row else None

    def list_snapshots(self, start: datetime, end: datetime) -> list[Snapshot]:
        """Return snapshots captured in ``[start, end)``, oldest first.

        Args:
            start: Inclusive lower bound.
            end: Exclusive upper bound.

        Returns:
            List of Snapshot instances (may be empty).
        """
        with self._session() as conn:
            rows = conn.execute(
                f"""
                SELECT {_SNAPSHOT_COLUMNS} FROM snapshots
                WHERE captured_at >= ? AND captured_at < ?
                ORDER BY captured_at, rowid
                """,
                (to_db_time(start), to_db_time(end)),
            ).fetchall()
        return [_row_to_snapshot(r) for r in rows]

    def search_text(self, term: str, limit: int = 50) -> list[Snapshot]:
        """Return snapshots whose text, app name or window title contain *term*.

        Matching is a case-insensitive substring test (ASCII case folding, as
        SQLite's LIKE does). Newest first.

        Args:
            term: Literal text to look for; ``%`` and ``_`` are not wildcards.
            limit: Maximum number of snapshots returned.
        """
        pattern = "%" + _escape_like(term) + "%"
        with self._session() as conn:
            rows = conn.execute(
                f"""
                SELECT {_SNAPSHOT_COLUMNS} FROM snapshots
                WHERE ocr_text LIKE ? ESCAPE '\\'
                   OR app_name LIKE ? ESCAPE '\\'
                   OR window_title LIKE ? ESCAPE '\\'
                ORDER BY captured_at DESC, rowid DESC
                LIMIT ?
                """,
                (pattern, pattern, pattern, limit),
            ).fetchall()
        return [_row_to_snapshot(r) for r in rows]

    def count_snapshots(self) -> int:
        with self._session() as conn:
            return conn.execute("SELECT COUNT(*) FROM snapshots").fetchone()[0]

    def last_captured_at(self) -> datetime | None:
        """Return the most recent capture instant, or None for an empty store."""
        with self._session() as conn:
            row = conn.execute("SELECT MAX(captured_at) FROM snapshots").fetchone()
        return from_db_time(row[0]) if row[0] else None

    def list_expired_images(self, cutoff: datetime) -> list[tuple[str, str]]:
        """Return ``(id, image_path)`` for snapshots older than *cutoff* that still hold an image."""
        with self._session() as conn:
            rows = conn.execute(
                "SELECT id, image_path FROM snapshots WHERE captured_at < ? AND image_path != ''",
                (to_db_time(cutoff),),
            ).fetchall()
        return [(r["id"], r["image_path"]) for r in rows]

    def clear_image_paths(self, snapshot_ids: list[str]) -> int:
        """Blank the image path of each snapshot in *snapshot_ids*. Returns rows updated."""
        if not snapshot_ids:
            return 0
        placeholders = ",".join("?" * len(snapshot_ids))
        with self._session() as conn:
            cur = conn.execute(
                f"UPDATE snapshots SET image_path = '' WHERE id IN ({placeholders})",
                snapshot_ids,
            )
            conn.commit()
            return cur.rowcount

    def delete_all_snapshots(self) -> int:
        """Delete every snapshot. Returns the number of rows deleted."""
        with self._session() as conn:
            cur = conn.execute("DELETE FROM snapshots")
            conn.commit()
            return cur.rowcount

    # ------------------------------------------------------------------
    # Report cache
    # ------------------------------------------------------------------

    def upsert_report(self, report: StoredReport) -> None:
        """Insert or wholesale-replace the cached report for ``report.period_start``."""
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO reports (
                    period_start, period_end, total_minutes, focus_score,
                    top_apps, category_minutes, highlights, summary
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(period_start) DO UPDATE SET
                    period_end = excluded.period_end,
                    total_minutes = excluded.total_minutes,
                    focus_score = excluded.focus_score,
                    top_apps = excluded.top_apps,
                    category_minutes = excluded.category_minutes,
                    highlights = excluded.highlights,
                    summary = excluded.summary,
                    generated_at = datetime('now')
                """,
                (
                    report.period_start,
                    report.period_end,
                    report.total_minutes,
                    report.focus_score,
                    report.top_apps,
                    report.category_minutes,
                    report.highlights,
                    report.summary,
                ),
            )
            conn.commit()

    def get_report(self, period_start: str) -> StoredReport | None:
        """Return the cached report keyed by *period_start* (``YYYY-MM-DD``), or None."""
        with self._session() as conn:
            row = conn.execute(
                """
                SELECT period_start, period_end, total_minutes, focus_score, top_apps,
                       category_minutes, highlights, summary, generated_at
                FROM reports WHERE period_start = ?
                """,
                (period_start,),
            ).fetchone()
        return _row_to_report(row) if row else None

    def delete_all_reports(self) -> int:
        with self._session() as conn:
            cur = conn.execute("DELETE FROM reports")
            conn.commit()
            return cur.rowcount


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_snapshot(row: sqlite3.Row) -> Snapshot:
    return Snapshot(
        id=row["id"],
        captured_at=from_db_time(row["captured_at"]),
        image_path=row["image_path"],
        ocr_text=row["ocr_text"],
        app_name=row["app_name"],
        window_title=row["window_title"],
        category=row["category"],
        display_id=row["display_id"],
        ai_summary=row["ai_summary"],
    )


def _row_to_report(row: sqlite3.Row) -> StoredReport:
    return StoredReport(
        period_start=row["period_start"],
        period_end=row["period_end"],
        total_minutes=row["total_minutes"],
        focus_score=row["focus_score"],
        top_apps=row["top_apps"],
        category_minutes=row["category_minutes"],
        highlights=row["highlights"],
        summary=row["summary"],
        generated_at=row["generated_at"],
    )
