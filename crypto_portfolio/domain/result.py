"""Lightweight success/failure outcome used across the domain layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class ResultError(RuntimeError):
    """Raised when the value of a failed result is accessed."""


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation that may fail with a human readable message."""

    is_success: bool
    value: T | None = None
    error: str = ""

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(True, value, "")

    @classmethod
    def fail(cls, error: str) -> "Result[T]":
        return cls(False, None, error)

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    def unwrap(self) -> T:
        if not self.is_success:
            raise ResultError(self.error)
        return self.value  # type: ignore[return-value]

    def __bool__(self) -> bool:
        return self.is_success


__all__ = ["Result", "ResultError"]
