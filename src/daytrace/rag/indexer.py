"""Turn stored snapshots into embedding records."""

from __future__ import annotations

import logging

from daytrace.db.models import Snapshot
from daytrace.outcome import Outcome
from daytrace.rag.embedder import Embedder
from daytrace.rag.vector_store import VectorStore

logger = logging.getLogger(__name__)


class SnapshotIndexer:
    """Embeds a snapshot's context line and text, then upserts it.

    Indexing is best-effort: failures are logged and reported as a degraded
    outcome, never raised, so the snapshot itself stays stored.
    """

    def __init__(self, embedder: Embedder, store: VectorStore) -> None:
        self._embedder = embedder
        self._store = store

    def index(self, snapshot: Snapshot) -> Outcome[str]:
        if not snapshot.ocr_text.strip():
            return Outcome.absent()

        text = snapshot.index_text()
        try:
            vector = self._embedder.embed(text)
            self._store.upsert(snapshot.id, text, vector)
        except Exception as exc:
            logger.warning("Indexing snapshot %s failed: %s", snapshot.id, exc)
            return Outcome.degraded(None, exc)

        logger.debug("Indexed snapshot %s (%d dims)", snapshot.id, len(vector))
        return Outcome.ok(snapshot.id)
