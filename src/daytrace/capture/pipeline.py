"""Capture pipeline: per-display loops feeding a pool of write-path workers.

Only the change detector runs on a capture loop's thread. Every kept frame
is handed to a worker that runs the chain

    window lookup → blocklist → redact → save image → extract text → scrub
    → insert snapshot → embed and index

Chains for different frames run concurrently. Enrichment failures (redaction,
extraction, embedding) degrade the snapshot; they never stop capture.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from daytrace.capture.detector import ChangeDetector, Decision
from daytrace.capture.frames import Frame, FrameSource
from daytrace.capture.images import ImageStore
from daytrace.capture.metadata import UnknownWindowProvider, WindowProvider, lookup_window
from daytrace.capture.ocr import TextExtractor
from daytrace.capture.redactor import AppBlocklist, PrivacyRedactor, scrub
from daytrace.db.models import Snapshot
from daytrace.db.repository import SnapshotRepository
from daytrace.outcome import Status
from daytrace.rag.indexer import SnapshotIndexer
from daytrace.stats.categories import CategoryClassifier

logger = logging.getLogger(__name__)


@dataclass
class PipelineCounters:
    seen: int = 0
    kept: int = 0
    stored: int = 0
    blocked: int = 0
    failed: int = 0


class CapturePipeline:
    """Turns kept frames into stored, redacted, indexed snapshots.

    Args:
        detector: Keep/extract decisions per display.
        redactor: Blacks out sensitive text before anything is written.
        extractor: Text extraction on the redacted image.
        images: Where redacted frames are written.
        repo: Snapshot store.
        indexer: Optional; embeds and indexes snapshots with text.
        classifier: Assigns each snapshot a category.
        window_provider: Supplies the active application and window title.
        blocklist: Applications that are never captured.
        workers: Size of the worker pool.
    """

    def __init__(
        self,
        detector: ChangeDetector,
        redactor: PrivacyRedactor,
        extractor: TextExtractor,
        images: ImageStore,
        repo: SnapshotRepository,
        indexer: SnapshotIndexer | None = None,
        classifier: CategoryClassifier | None = None,
        window_provider: WindowProvider | None = None,
        blocklist: AppBlocklist | None = None,
        workers: int = 2,
    ) -> None:
        self.detector = detector
        self._redactor = redactor
        self._extractor = extractor
        self._images = images
        self._repo = repo
        self._indexer = indexer
        self._classifier = classifier or CategoryClassifier()
        self._windows = window_provider or UnknownWindowProvider()
        self._blocklist = blocklist or AppBlocklist()
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="daytrace-write")
        self._counter_lock = threading.Lock()
        self.counters = PipelineCounters()

    def _count(self, name: str) -> None:
        with self._counter_lock:
            setattr(self.counters, name, getattr(self.counters, name) + 1)

    def handle(self, frame: Frame) -> Future[Snapshot | None] | None:
        """Evaluate *frame*; if kept, schedule its write chain.

        Returns:
            The Future of the write chain, or None if the frame was discarded.
        """
        self._count("seen")
        decision = self.detector.observe(frame)
        if not decision.keep:
            return None
        self._count("kept")
        return self._pool.submit(self.process, frame, decision)

    def process(self, frame: Frame, decision: Decision) -> Snapshot | None:
        """Run the write chain for one kept frame. Returns the stored snapshot."""
        window = lookup_window(self._windows, frame.captured_at)
        if window.app_name in self._blocklist:
            self._count("blocked")
            logger.debug("Skipping frame from blocked app %s", window.app_name)
            return None

        redaction = self._redactor.redact(frame.pixels)
        pixels = redaction.value if redaction.value is not None else frame.pixels

        image_path = ""
        try:
            image_path = str(self._images.save(pixels, frame.captured_at, frame.display_id))
        except OSError as exc:
            logger.warning("Could not write frame image: %s", exc)

        text = ""
        if decision.force_extract:
            extraction = self._extractor.extract(pixels)
            if extraction.status is Status.OK and extraction.value:
                text = scrub(extraction.value)

        snapshot = Snapshot(
            captured_at=frame.captured_at,
            image_path=image_path,
            ocr_text=text,
            app_name=window.app_name,
            window_title=window.window_title,
            category=self._classifier.categorize(window.app_name, window.window_title),
            display_id=frame.display_id,
        )
        try:
            self._repo.add_snapshot(snapshot)
        except (sqlite3.Error, OSError) as exc:
            self._count("failed")
            logger.warning("Dropping frame, snapshot store unavailable: %s", exc)
            if image_path:
                Path(image_path).unlink(missing_ok=True)
            return None
        self._count("stored")

        if self._indexer is not None and text:
            self._indexer.index(snapshot)

        logger.debug(
            "Stored snapshot %s (display %d, redaction=%s, text=%d chars)",
            snapshot.id,
            frame.display_id,
            redaction.status.value,
            len(text),
        )
        return snapshot

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)


class CaptureLoop:
    """Grabs frames from one display and feeds them to the pipeline."""

    def __init__(
        self,
        source: FrameSource,
        pipeline: CapturePipeline,
        display_id: int,
        poll_interval: float = 1.0,
    ) -> None:
        self._source = source
        self._pipeline = pipeline
        self.display_id = display_id
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"daytrace-capture-{self.display_id}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        logger.info("Capture loop started for display %d", self.display_id)
        while not self._stop.is_set():
            self.tick()
            self._stop.wait(self.poll_interval)
        logger.info("Capture loop stopped for display %d", self.display_id)

    def tick(self) -> Future[Snapshot | None] | None:
        """Grab and handle one frame. Grab errors are retried on the next tick."""
        try:
            frame = self._source.grab(self.display_id)
        except Exception as exc:
            logger.debug("Display %d: grab failed (%s)", self.display_id, exc)
            return None
        return self._pipeline.handle(frame)


class CaptureService:
    """Owns one capture loop per display and the shared pipeline."""

    def __init__(self, source: FrameSource, pipeline: CapturePipeline, poll_interval: float = 1.0) -> None:
        self._source = source
        self._pipeline = pipeline
        self.poll_interval = poll_interval
        self._loops: list[CaptureLoop] = []

    @property
    def loops(self) -> list[CaptureLoop]:
        return list(self._loops)

    def start(self) -> list[int]:
        """Start a loop per available display. Returns the display ids."""
        if self._loops:
            return [loop.display_id for loop in self._loops]
        displays = self._source.displays()
        if not displays:
            logger.warning("No displays available for capture")
        for display_id in displays:
            self._pipeline.detector.reset(display_id)
            loop = CaptureLoop(self._source, self._pipeline, display_id, self.poll_interval)
            loop.start()
            self._loops.append(loop)
        return displays

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop every loop and wait for in-flight write chains."""
        for loop in self._loops:
            loop.stop()
        for loop in self._loops:
            loop.join(timeout)
        self._loops.clear()
        self._pipeline.shutdown(wait=True)
