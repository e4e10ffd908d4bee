"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime

import numpy as np
import pytest

from daytrace.capture.ocr import TextObservation
from daytrace.db.connection import Database
from daytrace.db.models import Snapshot
from daytrace.db.repository import SnapshotRepository
from daytrace.rag.vector_store import VectorStore
from daytrace.stats.aggregator import StatsAggregator
from daytrace.stats.categories import CategoryClassifier


class FakeTextDetector:
    """Returns canned observations; records every image it was given."""

    def __init__(self, observations=None, error: Exception | None = None):
        self.observations = list(observations or [])
        self.error = error
        self.calls: list[np.ndarray] = []

    def detect(self, image):
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return list(self.observations)


class FakeEmbedder:
    """Deterministic bag-of-characters embedder with a fixed dimension."""

    model = "fake/embedder"

    def __init__(self, dims: int = 8, error: Exception | None = None):
        self.dims = dims
        self.error = error
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        vec = [0.0] * self.dims
        for ch in text.lower():
            vec[ord(ch) % self.dims] += 1.0
        return vec


class FakeGenerator:
    """Echoes a fixed answer and keeps the prompts it received."""

    def __init__(self, answer: str = "You mostly coded today."):
        self.answer = answer
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


@pytest.fixture
def db(tmp_path) -> Database:
    return Database(tmp_path / "daytrace.db")


@pytest.fixture
def repo(db) -> SnapshotRepository:
    repo = SnapshotRepository(db)
    repo.initialize()
    return repo


@pytest.fixture
def vectors(db) -> VectorStore:
    store = VectorStore(db)
    store.initialize()
    return store


@pytest.fixture
def classifier() -> CategoryClassifier:
    return CategoryClassifier()


@pytest.fixture
def aggregator(repo, classifier) -> StatsAggregator:
    return StatsAggregator(repo, classifier)


@pytest.fixture
def fake_detector():
    return FakeTextDetector


@pytest.fixture
def fake_embedder():
    return FakeEmbedder


@pytest.fixture
def fake_generator():
    return FakeGenerator


@pytest.fixture
def observation():
    def _make(text: str, box=(0.1, 0.1, 0.5, 0.2)) -> TextObservation:
        return TextObservation(text=text, box=box)

    return _make


@pytest.fixture
def snapshot():
    def _make(
        at: datetime,
        app: str = "Code",
        title: str = "main.py",
        text: str = "",
        category: str = "core",
        **kwargs,
    ) -> Snapshot:
        return Snapshot(
            captured_at=at,
            app_name=app,
            window_title=title,
            ocr_text=text,
            category=category,
            **kwargs,
        )

    return _make


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Isolate CLI runs: no global config, data under tmp_path/data.

    Returns the data directory; pass ``--config tmp_path`` to commands.
    """
    monkeypatch.setattr("daytrace.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for var in ("DAYTRACE_GENERATION_MODEL", "DAYTRACE_EMBEDDING_MODEL"):
        monkeypatch.delenv(var, raising=False)
    data_dir = tmp_path / "data"
    monkeypatch.setenv("DAYTRACE_DATA_DIR", str(data_dir))
    return data_dir
