"""Age-based image cleanup and full data purge.

Cleanup deletes old frame images but keeps the snapshot rows, so reports for
past days still work once the pictures are gone.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from daytrace.db.repository import SnapshotRepository
from daytrace.rag.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    deleted_files: int = 0
    reclaimed_bytes: int = 0
    cleared: int = 0


@dataclass
class PurgeResult:
    snapshots: int = 0
    embeddings: int = 0
    reports: int = 0
    image_dir_removed: bool = False


class RetentionManager:
    """Deletes images older than ``days`` and purges everything on request."""

    def __init__(self, repo: SnapshotRepository, days: int = 30) -> None:
        if days < 1:
            raise ValueError(f"days must be >= 1, got {days}")
        self._repo = repo
        self.days = days

    def cutoff(self, now: datetime | None = None) -> datetime:
        return (now or datetime.now()) - timedelta(days=self.days)

    def cleanup(self, now: datetime | None = None) -> CleanupResult:
        """Delete expired images and clear their paths in the store.

        A file that is already gone still has its path cleared. A file that
        cannot be deleted keeps its path and is retried on the next run.
        """
        result = CleanupResult()
        expired = self._repo.list_expired_images(self.cutoff(now))
        if not expired:
            logger.info("Retention: nothing older than %d days", self.days)
            return result

        processed: list[str] = []
        for snapshot_id, image_path in expired:
            path = Path(image_path)
            if path.exists():
                try:
                    size = path.stat().st_size
                    path.unlink()
                except OSError as exc:
                    logger.warning("Retention: could not delete %s: %s", path, exc)
                    continue
                result.deleted_files += 1
                result.reclaimed_bytes += size
            processed.append(snapshot_id)
            _remove_if_empty(path.parent)

        result.cleared = self._repo.clear_image_paths(processed)
        logger.info(
            "Retention: deleted %d file(s), reclaimed %d bytes, cleared %d path(s)",
            result.deleted_files,
            result.reclaimed_bytes,
            result.cleared,
        )
        return result

    def purge(self, store: VectorStore | None, image_dir: Path | None) -> PurgeResult:
        """Delete every snapshot, report and embedding, and the image tree."""
        result = PurgeResult()
        if store is not None:
            result.embeddings = store.delete_all()
        result.snapshots = self._repo.delete_all_snapshots()
        result.reports = self._repo.delete_all_reports()
        if image_dir is not None and Path(image_dir).exists():
            shutil.rmtree(image_dir)
            result.image_dir_removed = True
        logger.info(
            "Purged %d snapshot(s), %d embedding(s), %d report(s)",
            result.snapshots,
            result.embeddings,
            result.reports,
        )
        return result


def _remove_if_empty(folder: Path) -> None:
    try:
        if folder.is_dir() and not any(folder.iterdir()):
            folder.rmdir()
    except OSError as exc:
        logger.debug("Retention: keeping folder %s: %s", folder, exc)
