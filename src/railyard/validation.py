"""Accumulating validation.

``ValidationResult`` is the counterpart of ``Result`` for independent checks:
where ``Result.flat_map`` stops at the first failure, ``combine`` keeps going
and reports every error message, in the order the checks were given.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import dataclasses
import typing
from typing import TYPE_CHECKING, Any, Never

from railyard.errors import InvalidStateError

if TYPE_CHECKING:
    from collections.abc import Callable

TValid = typing.TypeVar("TValid")


@dataclasses.dataclass(frozen=True, slots=True)
class Valid[T]:
    """A value that passed validation."""

    value: T

    @property
    def is_valid(self) -> bool:
        return True

    @property
    def errors(self) -> Never:
        """Always raises: a valid result has no errors."""
        raise InvalidStateError("Valid does not contain errors")

    def map[U](self, f: Callable[[T], U]) -> Valid[U]:
        return Valid(f(self.value))


@dataclasses.dataclass(frozen=True, slots=True)
class Invalid:
    """A non-empty, ordered tuple of validation messages."""

    errors: tuple[str, ...]

    def __post_init__(self) -> None:
        """Freeze the messages and reject an empty list."""
        raw = self.errors
        frozen = (raw,) if isinstance(raw, str) else tuple(raw)
        if not frozen:
            raise ValueError("Invalid requires at least one error message")
        object.__setattr__(self, "errors", frozen)

    @property
    def is_valid(self) -> bool:
        return False

    @property
    def value(self) -> Never:
        """Always raises: an invalid result has no value."""
        raise InvalidStateError("Invalid does not contain a value")

    def map(self, f: Callable[[Any], Any]) -> Invalid:  # noqa: ARG002
        return self


ValidationResult = Valid[TValid] | Invalid


def valid[T](value: T) -> Valid[T]:
    """Build a passing validation."""
    return Valid(value)


def invalid(errors: str | Iterable[str]) -> Invalid:
    """Build a failing validation from one message or several."""
    if isinstance(errors, str):
        return Invalid((errors,))
    return Invalid(tuple(errors))


def combine[T](results: Sequence[Valid[T] | Invalid]) -> Valid[T] | Invalid:
    """Combine independent validations without short-circuiting.

    All messages of every ``Invalid`` entry are concatenated in input order.
    When there are none, the first entry is returned as the combined
    ``Valid``; the other entries are assumed to validate the same subject and
    their values are discarded.

    Raises:
        ValueError: If ``results`` is empty.
    """
    if not results:
        raise ValueError("combine() requires at least one validation result")

    all_errors = [
        message
        for result in results
        if isinstance(result, Invalid)
        for message in result.errors
    ]
    if all_errors:
        return Invalid(tuple(all_errors))
    first = results[0]
    return Valid(first.value)


__all__ = ["Invalid", "Valid", "ValidationResult", "combine", "invalid", "valid"]
