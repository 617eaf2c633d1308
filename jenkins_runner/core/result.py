"""
Outcome of a Jenkins call that may legitimately find nothing.

``Ok`` carries the value, ``Absent`` marks an expected absence (Jenkins said
404, or the element is not there yet) and ``Failed`` carries the error that a
caller would otherwise have raised. Polling code branches on these with
``match`` instead of catching exceptions.
"""
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Absent:
    reason: str | None = None

    def unwrap(self) -> None:
        return None


@dataclass(frozen=True)
class Failed:
    error: Exception

    def unwrap(self) -> None:
        raise self.error


Result = Ok[T] | Absent | Failed
