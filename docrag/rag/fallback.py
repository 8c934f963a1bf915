"""
Success-with-fallback outcome for LLM-backed helpers.

Helpers compute an ``Outcome`` internally and hand callers ``outcome.value``;
when the provider call failed the value is the documented safe default and
``error`` records why.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value produced by a helper, plus the error that forced a fallback."""

    value: T
    error: Optional[BaseException] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: BaseException) -> "Outcome[T]":
        return cls(value=value, error=error)
