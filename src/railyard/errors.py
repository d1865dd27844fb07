"""Exception hierarchy for Railyard.

Domain failures never appear here: they travel as values inside ``Failure``.
These exceptions signal misuse of the library itself (reading the wrong side
of a union, a stage breaking its contract) or invalid configuration.
"""

from __future__ import annotations


class RailyardError(Exception):
    """Base exception for all Railyard errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        """Return the message, followed by the hint when one is attached."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class InvalidStateError(RailyardError):
    """The absent side of a two-variant value was read.

    Raised for ``Success.error``, ``Failure.value``, ``Valid.errors`` and
    ``Invalid.value``. Always a programming error, never a domain failure.
    """


class InvariantViolationError(RailyardError):
    """A pipeline stage broke a library contract.

    Used for impossible states that indicate a mis-composed pipeline, e.g. a
    ``flat_map`` function that returned something other than a ``Result``.
    """

    def __init__(
        self,
        message: str,
        *,
        stage_name: str | None = None,
        hint: str | None = None,
    ) -> None:
        self.stage_name = stage_name
        msg = message if stage_name is None else f"[{stage_name}] {message}"
        super().__init__(msg, hint=hint)


class ConfigurationError(RailyardError):
    """Configuration validation or resolution failed."""
