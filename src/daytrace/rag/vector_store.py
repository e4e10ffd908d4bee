"""Persistent embedding store with brute-force cosine search.

Vectors live in the ``embeddings`` table of the daytrace database, serialized
as packed float32 with sqlite-vec. Search scans the most recent ``window``
records in NumPy, which is fast enough for the few thousand snapshots a day
produces.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import sqlite_vec

from daytrace.db.connection import Database
from daytrace.errors import VectorStoreError

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS embeddings (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    snapshot_id TEXT NOT NULL UNIQUE,
    text        TEXT NOT NULL DEFAULT '',
    embedding   BLOB NOT NULL,
    inserted_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""


@dataclass(frozen=True)
class SearchResult:
    snapshot_id: str
    text: str
    score: float


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine similarity of *a* and *b*.

    Returns 0.0 when the vectors differ in length, are empty, or either has
    zero norm.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.ndim != 1 or va.shape != vb.shape or va.size == 0:
        return 0.0
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def _decode(blob: bytes | None) -> np.ndarray | None:
    if not blob or len(blob) % 4:
        return None
    vector = np.frombuffer(blob, dtype=np.float32)
    if not np.all(np.isfinite(vector)):
        return None
    return vector


class VectorStore:
    """Upsert and search snapshot embeddings.

    Args:
        db: The daytrace Database; a connection is opened per operation.
        window: Number of most recently inserted records scanned per search.
    """

    def __init__(self, db: Database, window: int = 1000) -> None:
        self._db = db
        self.window = window
        self._ready = False
        self._init_lock = threading.Lock()
        self._write_lock = threading.Lock()

    def initialize(self) -> None:
        """Create the embeddings table. Safe to call repeatedly and concurrently.

        Raises:
            VectorStoreError: If the database cannot be opened.
        """
        if self._ready:
            return
        with self._init_lock:
            if self._ready:
                return
            try:
                with self._db.session() as conn:
                    conn.execute(_CREATE_TABLE)
                    conn.commit()
            except (sqlite3.Error, OSError) as exc:
                raise VectorStoreError(f"Cannot open vector store at {self._db.db_path}: {exc}") from exc
            self._ready = True

    def upsert(self, snapshot_id: str, text: str, vector: Sequence[float]) -> None:
        """Insert or replace the embedding for *snapshot_id*.

        A replacement is stored as a fresh insertion (it moves to the most
        recent end of the search window).

        Raises:
            VectorStoreError: If the vector is empty or the write fails.
        """
        if len(vector) == 0:
            raise VectorStoreError(f"Refusing to store an empty vector for {snapshot_id}")
        self.initialize()
        blob = sqlite_vec.serialize_float32([float(v) for v in vector])
        with self._write_lock:
            try:
                with self._db.session() as conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO embeddings (snapshot_id, text, embedding) "
                        "VALUES (?, ?, ?)",
                        (snapshot_id, text, blob),
                    )
                    conn.commit()
            except sqlite3.Error as exc:
                raise VectorStoreError(f"Failed to store embedding for {snapshot_id}: {exc}") from exc

    def search(self, query_vector: Sequence[float], k: int = 10) -> list[SearchResult]:
        """Return up to *k* records most similar to *query_vector*, best first.

        Only the ``window`` most recent records are considered. Records whose
        stored vector cannot be decoded or has a different dimension are
        skipped. Equal scores keep insertion order (earlier first).
        """
        if k <= 0:
            return []
        self.initialize()
        query = np.asarray(query_vector, dtype=np.float32)
        if query.ndim != 1 or query.size == 0:
            return []

        with self._db.session() as conn:
            rows = conn.execute(
                "SELECT snapshot_id, text, embedding FROM embeddings ORDER BY id DESC LIMIT ?",
                (self.window,),
            ).fetchall()

        scored: list[SearchResult] = []
        skipped = 0
        for row in reversed(rows):  # ascending insertion order
            vector = _decode(row["embedding"])
            if vector is None or vector.shape != query.shape:
                skipped += 1
                continue
            scored.append(
                SearchResult(
                    snapshot_id=row["snapshot_id"],
                    text=row["text"],
                    score=cosine_similarity(query, vector),
                )
            )
        if skipped:
            logger.debug("Skipped %d unusable embedding(s) during search", skipped)

        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:k]

    def count(self) -> int:
        self.initialize()
        with self._db.session() as conn:
            return conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]

    def delete(self, snapshot_id: str) -> bool:
        """Remove the embedding for *snapshot_id*. Returns True if one existed."""
        self.initialize()
        with self._write_lock, self._db.session() as conn:
            cur = conn.execute("DELETE FROM embeddings WHERE snapshot_id = ?", (snapshot_id,))
            conn.commit()
            return cur.rowcount > 0

    def delete_all(self) -> int:
        """Remove every embedding. Returns the number of records deleted."""
        self.initialize()
        with self._write_lock, self._db.session() as conn:
            cur = conn.execute("DELETE FROM embeddings")
            conn.commit()
            return cur.rowcount
