"""Tests for the retrieval orchestrator and the LiteLLM generator."""

from __future__ import annotations

import threading
from datetime import date, datetime, timedelta
from unittest.mock import patch

import litellm
import pytest

from daytrace.config import GenerationCfg
from daytrace.errors import GenerationError
from daytrace.rag.assembler import NO_DATA, NO_MATCHES
from daytrace.rag.orchestrator import LiteLLMGenerator, RetrievalOrchestrator

NOW = datetime(2024, 5, 17, 18, 0)


class _SlowEmbedder:
    model = "slow/embedder"

    def __init__(self):
        self.release = threading.Event()

    def embed(self, text):
        self.release.wait(5)
        return [1.0, 0.0]


@pytest.fixture
def orchestrator(aggregator, vectors, fake_embedder, fake_generator):
    def _make(embedder=None, generate=None, **kwargs):
        return RetrievalOrchestrator(
            aggregator,
            embedder if embedder is not None else fake_embedder(),
            vectors,
            generate if generate is not None else fake_generator(),
            **kwargs,
        )

    return _make


# ------------------------------------------------------------------
# Overview
# ------------------------------------------------------------------


def test_overview_periods(orchestrator, repo, snapshot):
    repo.add_snapshot(snapshot(NOW - timedelta(hours=2)))
    repo.add_snapshot(snapshot(NOW - timedelta(days=1)))
    repo.add_snapshot(snapshot(NOW - timedelta(days=5)))
    repo.add_snapshot(snapshot(NOW - timedelta(days=9)))

    periods = dict(orchestrator().overview_periods(NOW))

    assert list(periods) == ["Today", "Yesterday", "Last 7 days"]
    assert periods["Today"].snapshot_count == 1
    assert periods["Yesterday"].snapshot_count == 1
    assert periods["Last 7 days"].snapshot_count == 3
    assert periods["Last 7 days"].start == datetime(2024, 5, 11)
    assert periods["Last 7 days"].end == datetime(2024, 5, 18)


# ------------------------------------------------------------------
# answer()
# ------------------------------------------------------------------


def test_answer_with_empty_corpus(orchestrator, fake_generator):
    generate = fake_generator("Nothing was recorded.")
    answer = orchestrator(generate=generate).answer("What did I do today?", as_of=NOW)

    assert answer == "Nothing was recorded."
    (prompt,) = generate.prompts
    assert NO_DATA in prompt
    assert NO_MATCHES in prompt
    assert "User question: What did I do today?" in prompt


def test_answer_includes_stats_and_matches(
    orchestrator, repo, vectors, snapshot, fake_embedder, fake_generator
):
    embedder = fake_embedder()
    snap = snapshot(NOW - timedelta(minutes=30), app="Safari", title="Pricing", text="pricing tiers")
    repo.add_snapshot(snap)
    vectors.upsert(snap.id, snap.index_text(), embedder.embed(snap.index_text()))
    generate = fake_generator()

    orchestrator(embedder=embedder, generate=generate).answer("pricing tiers", as_of=NOW)

    prompt = generate.prompts[0]
    assert "Today (2024-05-17 to 2024-05-18):" in prompt
    assert "1. Safari: Pricing (2024-05-17 17:30)\npricing tiers" in prompt


def test_answer_accepts_date(orchestrator, repo, snapshot, fake_generator):
    repo.add_snapshot(snapshot(datetime(2024, 5, 17, 23, 30)))
    generate = fake_generator()
    orchestrator(generate=generate).answer("today?", as_of=date(2024, 5, 17))
    assert "Today (2024-05-17" in generate.prompts[0]


def test_embedding_timeout_falls_back_to_statistics(orchestrator, repo, snapshot, fake_generator):
    repo.add_snapshot(snapshot(NOW - timedelta(hours=1)))
    slow = _SlowEmbedder()
    generate = fake_generator("Mostly coding.")
    try:
        answer = orchestrator(embedder=slow, generate=generate, embed_timeout=0.05).answer(
            "what did I do?", as_of=NOW
        )
    finally:
        slow.release.set()

    assert answer == "Mostly coding."
    prompt = generate.prompts[0]
    assert "Today (2024-05-17" in prompt
    assert NO_MATCHES in prompt


def test_repeated_embedding_timeouts_still_answer(orchestrator, fake_generator):
    slow = _SlowEmbedder()
    orch = orchestrator(
        embedder=slow,
        generate=fake_generator("ok"),
        embed_timeout=0.05,
        generation_timeout=1.0,
    )
    try:
        answers = [orch.answer("what did I do?", as_of=NOW) for _ in range(6)]
    finally:
        slow.release.set()

    assert answers == ["ok"] * 6


def test_embedding_error_falls_back(orchestrator, fake_embedder, fake_generator):
    generate = fake_generator()
    orchestrator(embedder=fake_embedder(error=RuntimeError("down")), generate=generate).answer(
        "q", as_of=NOW
    )
    assert NO_MATCHES in generate.prompts[0]


def test_generation_timeout_raises(orchestrator):
    release = threading.Event()

    def _hang(prompt):
        release.wait(5)
        return "too late"

    try:
        with pytest.raises(GenerationError, match=r"timed out after 0\.05s"):
            orchestrator(generate=_hang, generation_timeout=0.05).answer("q", as_of=NOW)
    finally:
        release.set()


def test_generation_error_passes_through(orchestrator):
    def _fail(prompt):
        raise GenerationError("Model 'x' was not found.")

    with pytest.raises(GenerationError, match="not found"):
        orchestrator(generate=_fail).answer("q", as_of=NOW)


def test_unexpected_generation_error_wrapped(orchestrator):
    def _fail(prompt):
        raise ValueError("bad response")

    with pytest.raises(GenerationError, match="bad response"):
        orchestrator(generate=_fail).answer("q", as_of=NOW)


def test_answer_does_not_write(orchestrator, repo, vectors, fake_generator):
    orchestrator(generate=fake_generator()).answer("q", as_of=NOW)
    assert repo.count_snapshots() == 0
    assert vectors.count() == 0


# ------------------------------------------------------------------
# LiteLLMGenerator
# ------------------------------------------------------------------

COMPLETE = "daytrace.rag.orchestrator.llm_client.complete"


def test_generator_returns_text():
    with patch(COMPLETE, return_value="answer") as mock_complete:
        assert LiteLLMGenerator(GenerationCfg(max_tokens=64, timeout=9))("prompt") == "answer"

    cfg, prompt = mock_complete.call_args.args
    assert prompt == "prompt"
    assert cfg.max_tokens == 64
    assert cfg.timeout == 9


def test_generator_missing_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(GenerationError, match="OPENAI_API_KEY"):
        LiteLLMGenerator(GenerationCfg(model="openai/gpt-4o-mini"))("prompt")


@pytest.mark.parametrize(
    ("error", "match"),
    [
        (
            litellm.NotFoundError(message="no such model", model="llama9", llm_provider="ollama"),
            "not found",
        ),
        (
            litellm.Timeout(message="slow", model="llama3", llm_provider="ollama"),
            "timed out",
        ),
        (
            litellm.APIConnectionError(message="refused", llm_provider="ollama", model="llama3"),
            "ollama serve",
        ),
    ],
)
def test_generator_maps_provider_errors(error, match):
    with patch(COMPLETE, side_effect=error):
        with pytest.raises(GenerationError, match=match):
            LiteLLMGenerator(GenerationCfg(model="ollama/llama3"))("prompt")


def test_generator_auth_error(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-wrong")
    error = litellm.AuthenticationError(message="bad key", llm_provider="openai", model="gpt-4o")
    with patch(COMPLETE, side_effect=error):
        with pytest.raises(GenerationError, match="Authentication failed"):
            LiteLLMGenerator(GenerationCfg(model="openai/gpt-4o"))("prompt")
