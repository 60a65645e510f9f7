"""Typed result for operations that may succeed, degrade, or fail.

Mandatory dependencies (the store, the geocoder) turn an operation into a
``FAILED`` outcome; optional enrichment (Wikipedia, the language model) only
downgrades it to ``DEGRADED``.  Callers branch on ``status`` instead of
catching exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class Status(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    status: Status
    value: T | None = None
    error: Exception | None = None
    reason: str | None = None

    @classmethod
    def ok(cls, value: T) -> Outcome[T]:
        return cls(Status.OK, value=value)

    @classmethod
    def degraded(cls, value: T, reason: str) -> Outcome[T]:
        return cls(Status.DEGRADED, value=value, reason=reason)

    @classmethod
    def failed(cls, error: Exception) -> Outcome[T]:
        return cls(Status.FAILED, error=error, reason=str(error))

    @property
    def succeeded(self) -> bool:
        return self.status is not Status.FAILED

    @property
    def is_degraded(self) -> bool:
        return self.status is Status.DEGRADED
