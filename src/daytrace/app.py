"""Component wiring: builds the stores, capture pipeline and query path from config.

Components are created once per process and passed explicitly to whoever
needs them; nothing here is a module-level singleton.
"""

from __future__ import annotations

from dataclasses import dataclass

from daytrace.capture.detector import ChangeDetector
from daytrace.capture.frames import FrameSource, MssFrameSource
from daytrace.capture.images import ImageStore
from daytrace.capture.metadata import WindowProvider
from daytrace.capture.ocr import DoctrTextDetector, TextDetector, TextExtractor
from daytrace.capture.pipeline import CapturePipeline, CaptureService
from daytrace.capture.redactor import AppBlocklist, PrivacyRedactor
from daytrace.config import DaytraceConfig
from daytrace.db.connection import Database
from daytrace.db.repository import SnapshotRepository
from daytrace.rag.embedder import Embedder, LiteLLMEmbedder
from daytrace.rag.indexer import SnapshotIndexer
from daytrace.rag.orchestrator import Generate, LiteLLMGenerator, RetrievalOrchestrator
from daytrace.rag.vector_store import VectorStore
from daytrace.retention import RetentionManager
from daytrace.stats.aggregator import StatsAggregator
from daytrace.stats.categories import CategoryClassifier
from daytrace.stats.reports import ReportService


@dataclass
class Stores:
    """Shared persistence handles."""

    db: Database
    repo: SnapshotRepository
    vectors: VectorStore
    classifier: CategoryClassifier
    aggregator: StatsAggregator


def open_stores(cfg: DaytraceConfig) -> Stores:
    db = Database(cfg.storage.db_path)
    repo = SnapshotRepository(db)
    classifier = CategoryClassifier(cfg.stats.category_cache)
    return Stores(
        db=db,
        repo=repo,
        vectors=VectorStore(db, window=cfg.retrieval.window),
        classifier=classifier,
        aggregator=StatsAggregator(
            repo,
            classifier,
            max_gap=cfg.stats.max_gap,
            tail_seconds=cfg.stats.tail_seconds,
        ),
    )


def build_embedder(cfg: DaytraceConfig) -> LiteLLMEmbedder:
    return LiteLLMEmbedder(cfg.embedding)


def build_generator(cfg: DaytraceConfig) -> LiteLLMGenerator:
    return LiteLLMGenerator(cfg.generation)


def build_orchestrator(
    cfg: DaytraceConfig,
    stores: Stores,
    embedder: Embedder | None = None,
    generate: Generate | None = None,
) -> RetrievalOrchestrator:
    return RetrievalOrchestrator(
        aggregator=stores.aggregator,
        embedder=embedder if embedder is not None else build_embedder(cfg),
        store=stores.vectors,
        generate=generate if generate is not None else build_generator(cfg),
        k=cfg.retrieval.top_k,
        embed_timeout=cfg.embedding.timeout,
        generation_timeout=cfg.generation.timeout,
    )


def build_reports(cfg: DaytraceConfig, stores: Stores, generate: Generate | None = None) -> ReportService:
    return ReportService(stores.aggregator, stores.repo, generate=generate)


def build_retention(cfg: DaytraceConfig, stores: Stores) -> RetentionManager:
    return RetentionManager(stores.repo, days=cfg.retention.days)


def build_pipeline(
    cfg: DaytraceConfig,
    stores: Stores,
    text_detector: TextDetector | None = None,
    embedder: Embedder | None = None,
    window_provider: WindowProvider | None = None,
) -> CapturePipeline:
    c = cfg.capture
    detector = text_detector if text_detector is not None else DoctrTextDetector()
    return CapturePipeline(
        detector=ChangeDetector(
            similarity_threshold=c.similarity_threshold,
            major_change_threshold=c.major_change_threshold,
            extraction_interval=c.extraction_interval,
            min_frame_interval=c.min_frame_interval,
        ),
        redactor=PrivacyRedactor(detector, margin=cfg.privacy.redaction_margin),
        extractor=TextExtractor(detector),
        images=ImageStore(cfg.storage.image_dir, c.image_format, c.image_quality),
        repo=stores.repo,
        indexer=SnapshotIndexer(
            embedder if embedder is not None else build_embedder(cfg), stores.vectors
        ),
        classifier=stores.classifier,
        window_provider=window_provider,
        blocklist=AppBlocklist(cfg.privacy.blocked_apps),
        workers=c.workers,
    )


def build_capture_service(
    cfg: DaytraceConfig,
    pipeline: CapturePipeline,
    source: FrameSource | None = None,
) -> CaptureService:
    return CaptureService(
        source if source is not None else MssFrameSource(cfg.capture.primary_monitor_only),
        pipeline,
        poll_interval=cfg.capture.poll_interval,
    )
