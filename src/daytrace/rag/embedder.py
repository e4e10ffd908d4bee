"""Text embedders with a fixed output dimensionality."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from daytrace.config import EmbeddingCfg
from daytrace.errors import EmbeddingError
from daytrace.rag import llm_client

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    model: str

    def embed(self, text: str) -> list[float]: ...


class LiteLLMEmbedder:
    """Embeds text through LiteLLM.

    The first vector returned fixes the dimensionality for the lifetime of
    the instance; a later vector of a different length is an error.

    Args:
        cfg: The ``embedding:`` section (model and per-request timeout).
    """

    def __init__(self, cfg: EmbeddingCfg | None = None) -> None:
        self.cfg = cfg or EmbeddingCfg()
        self.model = self.cfg.model
        self._dimensions: int | None = None
        self._lock = threading.Lock()

    @property
    def dimensions(self) -> int | None:
        return self._dimensions

    def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*.

        Raises:
            EmbeddingError: If the provider fails or returns an unexpected vector.
        """
        try:
            vector = llm_client.embed(self.cfg, text)
        except Exception as exc:
            raise EmbeddingError(f"Embedding with '{self.model}' failed: {exc}") from exc

        vector = [float(v) for v in vector]
        if not vector:
            raise EmbeddingError(f"Embedding model '{self.model}' returned an empty vector")

        with self._lock:
            if self._dimensions is None:
                self._dimensions = len(vector)
                logger.debug("Embedding model %s: %d dimensions", self.model, len(vector))
            elif len(vector) != self._dimensions:
                raise EmbeddingError(
                    f"Embedding model '{self.model}' returned {len(vector)} dimensions, "
                    f"expected {self._dimensions}"
                )
        return vector
