"""Exception types shared across the capture and query paths."""

from __future__ import annotations


class DaytraceError(Exception):
    """Base class for daytrace errors."""


class EmbeddingError(DaytraceError):
    """The embedding capability failed or returned an unusable vector."""


class VectorStoreError(DaytraceError):
    """The vector store could not be opened or written."""


class GenerationError(DaytraceError):
    """The text-generation step failed; the message is shown to the user."""
