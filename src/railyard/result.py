"""Result monad for explicit error handling.

A ``Result`` is either a ``Success`` carrying a value or a ``Failure``
carrying an error. Failures are ordinary values, so every combinator below
simply passes a ``Failure`` through untouched; only the functions given to
``Success`` are ever called.

Exceptions raised by the functions passed to ``map``/``flat_map`` are not
caught here. Converting exceptions into failures is the job of
``railyard.dead_end.DeadEnd``.
"""

from __future__ import annotations

import dataclasses
import typing
from typing import TYPE_CHECKING, Any, Never, TypeGuard

from railyard.errors import InvalidStateError, InvariantViolationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[T]:
    """A successful outcome."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    @property
    def error(self) -> Never:
        """Always raises: a success has no error."""
        raise InvalidStateError(
            "Success has no error", hint="Check is_success before reading .error"
        )

    def map[U](self, f: Callable[[T], U]) -> Success[U]:
        """Apply ``f`` to the value."""
        return Success(f(self.value))

    def flat_map[U, E](self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain a dependent computation that itself returns a ``Result``."""
        return f(self.value)

    def map_failure(self, g: Callable[[Any], Any]) -> Success[T]:  # noqa: ARG002
        """Return self; there is no error to translate."""
        return self

    async def flat_map_async[U, E](
        self, f: Callable[[T], Awaitable[Result[U, E]]]
    ) -> Result[U, E]:
        """Chain an asynchronous computation that returns a ``Result``."""
        return await f(self.value)

    def fold[R](
        self,
        on_failure: Callable[[Any], R],  # noqa: ARG002
        on_success: Callable[[T], R],
    ) -> R:
        """Reduce to a single value through the success branch."""
        return on_success(self.value)


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[E]:
    """A failed outcome, containing the error."""

    error: E

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    @property
    def value(self) -> Never:
        """Always raises: a failure has no value."""
        raise InvalidStateError(
            "Failure has no value", hint="Check is_success before reading .value"
        )

    def map(self, f: Callable[[Any], Any]) -> Failure[E]:  # noqa: ARG002
        """Pass the failure through; ``f`` is never called."""
        return self

    def flat_map(self, f: Callable[[Any], Any]) -> Failure[E]:  # noqa: ARG002
        """Pass the failure through; ``f`` is never called."""
        return self

    def map_failure[E2](self, g: Callable[[E], E2]) -> Failure[E2]:
        """Translate the error into another error domain."""
        return Failure(g(self.error))

    async def flat_map_async(self, f: Callable[[Any], Any]) -> Failure[E]:  # noqa: ARG002
        """Resolve immediately to this failure without calling ``f``."""
        return self

    def fold[R](
        self,
        on_failure: Callable[[E], R],
        on_success: Callable[[Any], R],  # noqa: ARG002
    ) -> R:
        """Reduce to a single value through the failure branch."""
        return on_failure(self.error)


Result = Success[TSuccess] | Failure[TFailure]


def success[T](value: T) -> Success[T]:
    """Build a successful result."""
    return Success(value)


def failure[E](error: E) -> Failure[E]:
    """Build a failed result."""
    return Failure(error)


def is_result(obj: object) -> TypeGuard[Result[Any, Any]]:
    """Return True when ``obj`` is a ``Success`` or a ``Failure``."""
    return isinstance(obj, Success | Failure)


def ensure_result(obj: object, stage_name: str) -> Result[Any, Any]:
    """Return ``obj`` if it is a ``Result``, else raise naming the stage.

    Raises:
        InvariantViolationError: If ``obj`` is neither Success nor Failure.
    """
    if not is_result(obj):
        raise InvariantViolationError(
            f"Stage returned {type(obj).__name__}; expected Success|Failure.",
            stage_name=stage_name,
        )
    return obj


__all__ = [
    "Failure",
    "Result",
    "Success",
    "ensure_result",
    "failure",
    "is_result",
    "success",
]
