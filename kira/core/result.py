"""Result type for explicit error handling.

Fallible operations in kira return ``Ok(value)`` or ``Err(error)`` instead of
raising. Callers branch with pattern matching:

    match repo.current_branch():
        case Ok(branch):
            print(f"on {branch}")
        case Err(error):
            print(f"git failed: {error.message}")

Exceptions are only caught at I/O boundaries (subprocess, file reads, YAML)
and converted into ``Err`` values there.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result carrying ``value``."""

    value: T

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the contained value."""
        return Ok(f(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed result carrying ``error``."""

    error: E

    def map(self, f: Callable[[T], U]) -> Err[E]:
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Ok[T] | Err[E]
