"""Tagged results for optional enrichment steps.

Redaction, text extraction and embedding never stop the capture path. Each
returns an :class:`Outcome` and the pipeline branches on its status:

  ok        the step ran and produced ``value``
  degraded  the step failed; ``value`` is the fallback and ``error`` says why
  absent    the step ran (or was skipped) and produced nothing
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class Status(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    ABSENT = "absent"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    status: Status
    value: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T) -> Outcome[T]:
        return cls(Status.OK, value)

    @classmethod
    def degraded(cls, value: T | None, error: str | BaseException) -> Outcome[T]:
        return cls(Status.DEGRADED, value, str(error) or type(error).__name__)

    @classmethod
    def absent(cls, value: T | None = None) -> Outcome[T]:
        return cls(Status.ABSENT, value)

    @property
    def is_ok(self) -> bool:
        return self.status is Status.OK
