"""Answer questions about past activity: statistics + semantic retrieval + generation.

Pipeline for ``answer(query, as_of)``:
  1. Overview from the stats aggregator for today, yesterday and the last 7 days.
  2. Embed the query (time-bounded). On failure continue with statistics only.
  3. Search the vector store for the k nearest snapshots.
  4. Assemble one prompt with both data sources.
  5. Generate (time-bounded) and return the text verbatim.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import date, datetime, time, timedelta

import litellm

from daytrace.config import GenerationCfg
from daytrace.errors import GenerationError
from daytrace.rag import llm_client
from daytrace.rag.assembler import assemble_prompt, format_overview
from daytrace.rag.embedder import Embedder
from daytrace.rag.vector_store import SearchResult, VectorStore
from daytrace.stats.aggregator import Report, StatsAggregator

logger = logging.getLogger(__name__)

Generate = Callable[[str], str]


def _run_detached(fn: Callable[[str], object], arg: str, name: str) -> Future:
    """Run ``fn(arg)`` on a new daemon thread and return its future.

    A call that outlives its timeout keeps running on its own thread until
    the provider returns; nothing else waits on it.
    """
    future: Future = Future()

    def _target() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn(arg))
        except Exception as exc:
            future.set_exception(exc)

    threading.Thread(target=_target, name=name, daemon=True).start()
    return future


class LiteLLMGenerator:
    """Text generation through LiteLLM.

    Configuration problems (missing API key, unknown model, unreachable
    endpoint) are raised as :class:`GenerationError` with the fix spelled out.
    """

    def __init__(self, cfg: GenerationCfg | None = None) -> None:
        self.cfg = cfg or GenerationCfg()
        self.model = self.cfg.model

    def __call__(self, prompt: str) -> str:
        try:
            llm_client.validate_api_key(self.model)
        except EnvironmentError as exc:
            raise GenerationError(str(exc)) from exc

        try:
            return llm_client.complete(self.cfg, prompt)
        except litellm.AuthenticationError as exc:
            raise GenerationError(
                f"Authentication failed for '{self.model}'. Check the provider's API key "
                "environment variable."
            ) from exc
        except litellm.NotFoundError as exc:
            raise GenerationError(
                f"Model '{self.model}' was not found. Set generation.model in daytrace.yaml "
                "or DAYTRACE_GENERATION_MODEL to a model your provider serves."
            ) from exc
        except litellm.Timeout as exc:
            raise GenerationError(f"Generation with '{self.model}' timed out.") from exc
        except litellm.APIConnectionError as exc:
            hint = " Is 'ollama serve' running?" if llm_client.provider_of(self.model).startswith("ollama") else ""
            raise GenerationError(f"Cannot reach the endpoint for '{self.model}'.{hint}") from exc


class RetrievalOrchestrator:
    """Read-only question answering over the snapshot and vector stores.

    Args:
        aggregator: Statistics for the overview.
        embedder: Embeds the query; optional at answer time.
        store: Vector store searched with the query vector.
        generate: Text-generation callable ``prompt -> text``.
        k: Number of semantic matches in the prompt.
        embed_timeout: Seconds allowed for the query embedding.
        generation_timeout: Seconds allowed for generation.
    """

    def __init__(
        self,
        aggregator: StatsAggregator,
        embedder: Embedder | None,
        store: VectorStore | None,
        generate: Generate,
        k: int = 10,
        embed_timeout: float = 10.0,
        generation_timeout: float = 60.0,
    ) -> None:
        self._aggregator = aggregator
        self._embedder = embedder
        self._store = store
        self._generate = generate
        self.k = k
        self.embed_timeout = embed_timeout
        self.generation_timeout = generation_timeout

    def overview_periods(self, as_of: datetime) -> list[tuple[str, Report]]:
        day = datetime.combine(as_of.date(), time.min)
        tomorrow = day + timedelta(days=1)
        return [
            ("Today", self._aggregator.report(day, tomorrow)),
            ("Yesterday", self._aggregator.report(day - timedelta(days=1), day)),
            ("Last 7 days", self._aggregator.report(day - timedelta(days=6), tomorrow)),
        ]

    def overview(self, as_of: datetime) -> str:
        return format_overview(self.overview_periods(as_of))

    def semantic_matches(self, query: str) -> list[SearchResult]:
        """Embed *query* and search. Any failure or timeout yields no matches."""
        if self._embedder is None or self._store is None:
            return []
        future = _run_detached(self._embedder.embed, query, "daytrace-embed")
        try:
            vector = future.result(timeout=self.embed_timeout)
        except FutureTimeout:
            logger.warning("Query embedding timed out after %.1fs; using statistics only", self.embed_timeout)
            return []
        except Exception as exc:
            logger.warning("Query embedding failed (%s); using statistics only", exc)
            return []

        try:
            return self._store.search(vector, k=self.k)
        except Exception as exc:
            logger.warning("Vector search failed (%s); using statistics only", exc)
            return []

    def answer(self, query: str, as_of: datetime | date | None = None) -> str:
        """Answer *query* about activity up to *as_of* (default: now).

        Raises:
            GenerationError: If generation times out or is misconfigured.
        """
        if as_of is None:
            as_of = datetime.now()
        elif not isinstance(as_of, datetime):
            as_of = datetime.combine(as_of, time.max)

        overview = self.overview(as_of)
        matches = self.semantic_matches(query)
        logger.info("Answering with %d semantic match(es)", len(matches))
        prompt = assemble_prompt(query, overview, matches, as_of=as_of)

        future = _run_detached(self._generate, prompt, "daytrace-generate")
        try:
            return future.result(timeout=self.generation_timeout)
        except FutureTimeout as exc:
            raise GenerationError(
                f"Generation timed out after {self.generation_timeout:g}s. "
                "Raise generation.timeout in daytrace.yaml or use a faster model."
            ) from exc
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(f"Generation failed: {exc}") from exc
