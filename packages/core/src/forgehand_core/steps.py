"""Result type for best-effort steps.

A best-effort step must not abort the run. Instead of swallowing its error
inside control flow, it returns a StepResult holding either the real value or
the documented fallback together with the error that forced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StepResult(Generic[T]):
    value: T
    error: Exception | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, value: T) -> StepResult[T]:
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: Exception) -> StepResult[T]:
        return cls(value=value, error=error)
