"""Opt-in timing and counters for pipelines and dead-end calls.

Telemetry is off unless reporters are attached: ``TelemetryContext()`` hands
back one shared disabled context whose scopes cost nothing. With reporters,
every ``ctx(name)`` scope is timed and reported under its dotted path, where
nested scopes (a ``DeadEnd`` call inside a pipeline stage) extend the path of
the enclosing one.
"""

from collections import deque
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import time
from types import TracebackType
from typing import Any, Protocol, Self, runtime_checkable

log = logging.getLogger(__name__)

# Enclosing scope names; each asyncio task sees its own copy
_active_scopes: ContextVar[tuple[str, ...]] = ContextVar(
    "railyard_active_scopes",
    default=(),
)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Anything that accepts scope timings and counter increments."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _DisabledTelemetry:
    """Stateless stand-in used when no reporter is attached."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        _: type[BaseException] | None,
        __: BaseException | None,
        ___: TracebackType | None,
    ) -> None:
        return None

    @property
    def is_enabled(self) -> bool:
        return False

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _ReportingTelemetry:
    """Times scopes and forwards counters to a fixed set of reporters."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    def __call__(
        self, name: str, **metadata: Any
    ) -> AbstractContextManager["_ReportingTelemetry"]:
        if not name or not isinstance(name, str):
            raise ValueError("Scope name must be a non-empty string")
        return self._timed(name, metadata)

    @contextmanager
    def _timed(
        self, name: str, metadata: dict[str, Any]
    ) -> Iterator["_ReportingTelemetry"]:
        enclosing = _active_scopes.get()
        token = _active_scopes.set((*enclosing, name))
        start = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - start
            _active_scopes.reset(token)
            self._send(
                "record_timing",
                ".".join((*enclosing, name)),
                elapsed,
                {"depth": len(enclosing), **metadata},
            )

    @property
    def is_enabled(self) -> bool:
        return True

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        """Report a counter increment under the current scope path."""
        path = ".".join((*_active_scopes.get(), name))
        self._send("record_metric", path, increment, {"metric_type": "counter", **metadata})

    def _send(self, method: str, scope: str, value: Any, metadata: dict[str, Any]) -> None:
        # A broken reporter must never fail the pipeline it observes
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(scope, value, **metadata)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed on %s: %s",
                    type(reporter).__name__,
                    scope,
                    e,
                    exc_info=True,
                )


_DISABLED = _DisabledTelemetry()

type TelemetryContextProtocol = _ReportingTelemetry | _DisabledTelemetry


def TelemetryContext(  # noqa: N802
    *reporters: TelemetryReporter, enabled: bool | None = None
) -> TelemetryContextProtocol:
    """Return a telemetry context for the given reporters.

    Args:
        *reporters: Destinations for timings and counters.
        enabled: Defaults to "on when reporters are given". ``False`` always
            yields the disabled context; ``True`` without reporters attaches
            a fresh ``InMemoryReporter``, reachable through ``.reporters``.
    """
    is_on = bool(reporters) if enabled is None else enabled
    if not is_on:
        return _DISABLED
    return _ReportingTelemetry(*(reporters or (InMemoryReporter(),)))


class InMemoryReporter:
    """Reporter that keeps the most recent entries per scope in memory."""

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def _bucket(self, store: dict[str, deque[Any]], scope: str) -> deque[Any]:
        return store.setdefault(scope, deque(maxlen=self.max_entries))

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self._bucket(self.timings, scope).append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self._bucket(self.metrics, scope).append((value, metadata))


__all__ = [
    "InMemoryReporter",
    "TelemetryContext",
    "TelemetryContextProtocol",
    "TelemetryReporter",
]
