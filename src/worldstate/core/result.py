"""
Result[T] envelope for I/O steps of the minute pipeline.

Storage, index and provider calls return ``Ok(value)`` or ``Err(error)``
instead of raising, so the orchestrator can look at the error kind and
decide whether to abort the tick or log and carry on. The payload of an
``Err`` is always an exception, normally one of :mod:`worldstate.core.errors`.

Usage:
    match await state.read_global_state():
        case Ok(None):
            ...  # first tick ever
        case Ok(previous):
            ...
        case Err(error):
            log.error("state.read.error", **error.to_dict())
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from worldstate.core.errors import WorldStateError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    >>> Ok(10).map(lambda x: x * 2).unwrap()
    20
    """

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Ok(f(self.value))

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    >>> Err(ValueError("boom")).unwrap_or(0)
    0
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Re-raise the wrapped error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Err(self.error)

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, WorldStateError):
            return {"ok": False, "error": self.error.to_dict()}
        return {"ok": False, "error": {"error_type": type(self.error).__name__, "message": str(self.error)}}


Result = Ok[T] | Err[T]


def collect_results(results: Iterable[Result[T]]) -> Result[list[T]]:
    """
    All values in input order, or the first ``Err``.

    Used after ``asyncio.gather`` of the per-symbol state writes: every
    write has settled by then, only the first failure is reported.

    >>> collect_results([Ok(1), Ok(2)]).unwrap()
    [1, 2]
    >>> str(collect_results([Ok(1), Err(ValueError("a")), Err(ValueError("b"))]).error)
    'a'
    """
    values: list[T] = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err():
                return result
    return Ok(values)


__all__ = ["Result", "Ok", "Err", "collect_results"]
