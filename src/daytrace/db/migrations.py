"""Forward-only migration runner for the daytrace schema.

The embeddings table is NOT migration-managed — VectorStore.initialize()
creates it on first use.
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS snapshots (
    id              TEXT PRIMARY KEY,
    captured_at     TEXT NOT NULL,
    image_path      TEXT NOT NULL DEFAULT '',
    ocr_text        TEXT NOT NULL DEFAULT '',
    app_name        TEXT NOT NULL DEFAULT 'Unknown',
    window_title    TEXT NOT NULL DEFAULT '',
    category        TEXT NOT NULL DEFAULT 'personal',
    display_id      INTEGER NOT NULL DEFAULT 0,
    ai_summary      TEXT
);

CREATE INDEX IF NOT EXISTS idx_snapshots_captured_at ON snapshots (captured_at);

CREATE TABLE IF NOT EXISTS reports (
    period_start      TEXT PRIMARY KEY,
    period_end        TEXT NOT NULL,
    total_minutes     INTEGER NOT NULL DEFAULT 0,
    focus_score       REAL NOT NULL DEFAULT 0,
    top_apps          TEXT NOT NULL DEFAULT '[]',
    category_minutes  TEXT NOT NULL DEFAULT '{}',
    highlights        TEXT NOT NULL DEFAULT '[]',
    summary           TEXT NOT NULL DEFAULT '',
    generated_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
