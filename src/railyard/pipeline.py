"""Fluent railway pipelines over ``Result``.

Two variants share the same transition rules:

- ``Pipeline`` wraps a pending or resolved ``Result`` and runs on asyncio.
  Stages are deferred: nothing runs until the pipeline is awaited (directly,
  through ``build()``, or a terminal fold). Each pipeline resolves at most
  once, so awaiting it twice, or branching two pipelines off a shared prefix,
  does not re-run earlier stages.
- ``SyncPipeline`` wraps an already-resolved ``Result`` and evaluates each
  stage eagerly.

Once a pipeline holds a ``Failure``, every ``validate``/``map``/``flat_map``/
``flat_map_async``/``peek``/``filter`` stage is skipped and the first error
travels to the end unchanged. ``recover`` is the only way back to success.

Exceptions raised by stage functions are not caught here; wrap risky work in
``railyard.dead_end.DeadEnd`` and chain it with ``flat_map_async``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Self, cast

from railyard.errors import InvariantViolationError
from railyard.result import Failure, Success, ensure_result
from railyard.telemetry import TelemetryContext
from railyard.validation import Invalid, Valid

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Generator

    from railyard.result import Result
    from railyard.telemetry import TelemetryContextProtocol
    from railyard.validation import ValidationResult

log = logging.getLogger(__name__)


def _consume_exception(fut: asyncio.Future[Any]) -> None:
    """Mark a shared resolution's exception as retrieved once it settles."""
    if not fut.cancelled():
        fut.exception()


def _stage_name(kind: str, fn: object) -> str:
    name = getattr(fn, "__qualname__", None) or type(fn).__name__
    return f"{kind}:{name}"


def _apply_validation[T, E](
    current: Result[T, E],
    validator: Callable[[T], ValidationResult[T]],
    error_mapper: Callable[[str], E],
    stage_name: str,
) -> Result[T, E]:
    if isinstance(current, Failure):
        return current
    outcome = validator(current.value)
    if isinstance(outcome, Invalid):
        return Failure(error_mapper(outcome.errors[0]))
    if isinstance(outcome, Valid):
        return Success(outcome.value)
    raise InvariantViolationError(
        f"Validator returned {type(outcome).__name__}; expected Valid|Invalid.",
        stage_name=stage_name,
    )


class Pipeline[T, E]:
    """Asynchronous railway pipeline.

    Build one with ``use``/``success``, ``failure``, ``from_result`` or
    ``from_awaitable``; every combinator returns a new pipeline. A
    ``telemetry`` context given to a constructor is inherited by every stage
    chained from it, and each executed stage is timed under
    ``pipeline.stage``.

    Example:
        result = await (
            Pipeline.use(request, telemetry=dead_end.telemetry)
            .validate(validate_request, AppError.from_message)
            .map(canonicalize)
            .flat_map_async(save_user)
            .build()
        )
    """

    __slots__ = ("_outcome", "_pending", "_telemetry", "_thunk")

    def __init__(
        self,
        thunk: Callable[[], Awaitable[Result[T, E]]] | None = None,
        *,
        outcome: Result[T, E] | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Prefer the named constructors; this is the low-level entry point."""
        if (thunk is None) == (outcome is None):
            raise ValueError("Provide exactly one of thunk or outcome")
        self._thunk = thunk
        self._outcome = outcome
        self._pending: asyncio.Future[Result[T, E]] | None = None
        self._telemetry = telemetry if telemetry is not None else TelemetryContext()

    # --- Constructors ---

    @classmethod
    def use(
        cls, value: T, *, telemetry: TelemetryContextProtocol | None = None
    ) -> Pipeline[T, E]:
        """Start a pipeline from a successful value."""
        return cls(outcome=Success(value), telemetry=telemetry)

    success = use

    @classmethod
    def failure(
        cls, error: E, *, telemetry: TelemetryContextProtocol | None = None
    ) -> Pipeline[T, E]:
        """Start a pipeline that is already failed."""
        return cls(outcome=Failure(error), telemetry=telemetry)

    @classmethod
    def from_result(
        cls, result: Result[T, E], *, telemetry: TelemetryContextProtocol | None = None
    ) -> Pipeline[T, E]:
        """Start a pipeline from an existing ``Result``."""
        return cls(outcome=ensure_result(result, "from_result"), telemetry=telemetry)

    @classmethod
    def from_awaitable(
        cls,
        awaitable: Awaitable[Result[T, E]],
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> Pipeline[T, E]:
        """Start a pipeline from an awaitable that resolves to a ``Result``."""

        async def _await() -> Result[T, E]:
            return await awaitable

        return cls(_await, telemetry=telemetry)

    # --- Resolution ---

    async def _resolve(self) -> Result[T, E]:
        if self._outcome is not None:
            return self._outcome
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._run())
            self._pending.add_done_callback(_consume_exception)
        # Callers share one task; cancelling a caller must not cancel it
        return await asyncio.shield(self._pending)

    async def _run(self) -> Result[T, E]:
        # Only reached while unresolved, which implies a thunk was given
        thunk = cast("Callable[[], Awaitable[Result[T, E]]]", self._thunk)
        outcome = ensure_result(await thunk(), "resolve")
        self._outcome = outcome
        return outcome

    def _chain[U, E2](
        self,
        stage_name: str,
        step: Callable[[Result[T, E]], Result[U, E2]],
    ) -> Pipeline[U, E2]:
        parent = self

        async def _thunk() -> Result[U, E2]:
            current = await parent._resolve()
            with parent._telemetry("pipeline.stage", stage=stage_name):
                return step(current)

        return Pipeline(_thunk, telemetry=self._telemetry)

    def _chain_async[U, E2](
        self,
        stage_name: str,
        step: Callable[[Result[T, E]], Awaitable[Result[U, E2]]],
    ) -> Pipeline[U, E2]:
        parent = self

        async def _thunk() -> Result[U, E2]:
            current = await parent._resolve()
            with parent._telemetry("pipeline.stage", stage=stage_name):
                return await step(current)

        return Pipeline(_thunk, telemetry=self._telemetry)

    # --- Stages ---

    def validate(
        self,
        validator: Callable[[T], ValidationResult[T]],
        error_mapper: Callable[[str], E],
    ) -> Pipeline[T, E]:
        """Fail with ``error_mapper(first_message)`` when the validator says Invalid."""
        name = _stage_name("validate", validator)
        return self._chain(
            name, lambda res: _apply_validation(res, validator, error_mapper, name)
        )

    def map[U](self, f: Callable[[T], U]) -> Pipeline[U, E]:
        return self._chain(_stage_name("map", f), lambda res: res.map(f))

    def flat_map[U](self, f: Callable[[T], Result[U, E]]) -> Pipeline[U, E]:
        name = _stage_name("flat_map", f)

        def _step(res: Result[T, E]) -> Result[U, E]:
            if isinstance(res, Failure):
                return res
            return ensure_result(f(res.value), name)

        return self._chain(name, _step)

    def flat_map_async[U](
        self, f: Callable[[T], Awaitable[Result[U, E]]]
    ) -> Pipeline[U, E]:
        name = _stage_name("flat_map_async", f)

        async def _step(res: Result[T, E]) -> Result[U, E]:
            if isinstance(res, Failure):
                return res
            return ensure_result(await f(res.value), name)

        return self._chain_async(name, _step)

    def peek(self, action: Callable[[T], object]) -> Pipeline[T, E]:
        """Run ``action`` on the success value without changing it."""

        def _step(res: Result[T, E]) -> Result[T, E]:
            if isinstance(res, Success):
                action(res.value)
            return res

        return self._chain(_stage_name("peek", action), _step)

    def peek_async(self, action: Callable[[T], Awaitable[object]]) -> Pipeline[T, E]:
        """Await ``action`` on the success value without changing it."""

        async def _step(res: Result[T, E]) -> Result[T, E]:
            if isinstance(res, Success):
                await action(res.value)
            return res

        return self._chain_async(_stage_name("peek_async", action), _step)

    def filter(self, predicate: Callable[[T], bool], error_if_false: E) -> Pipeline[T, E]:
        def _step(res: Result[T, E]) -> Result[T, E]:
            if isinstance(res, Success) and not predicate(res.value):
                return Failure(error_if_false)
            return res

        return self._chain(_stage_name("filter", predicate), _step)

    def recover(self, f: Callable[[E], T]) -> Pipeline[T, E]:
        """Turn a failure back into a success with ``f(error)``."""

        def _step(res: Result[T, E]) -> Result[T, E]:
            if isinstance(res, Failure):
                return Success(f(res.error))
            return res

        return self._chain(_stage_name("recover", f), _step)

    def on_success(self, action: Callable[[T], object]) -> Pipeline[T, E]:
        return self.peek(action)

    def on_failure(self, action: Callable[[E], object]) -> Pipeline[T, E]:
        def _step(res: Result[T, E]) -> Result[T, E]:
            if isinstance(res, Failure):
                action(res.error)
            return res

        return self._chain(_stage_name("on_failure", action), _step)

    # --- Terminals ---

    async def build(self) -> Result[T, E]:
        """Resolve the pipeline and return its ``Result``."""
        return await self._resolve()

    async def fold_async[R](
        self, on_failure: Callable[[E], R], on_success: Callable[[T], R]
    ) -> R:
        """Resolve the pipeline and reduce it to a single value."""
        return (await self._resolve()).fold(on_failure, on_success)

    async def then_accept(self, consumer: Callable[[Result[T, E]], object]) -> None:
        """Resolve the pipeline and hand the final ``Result`` to ``consumer``."""
        consumer(await self._resolve())

    def __await__(self) -> Generator[Any, None, Result[T, E]]:
        return self._resolve().__await__()

    def __repr__(self) -> str:
        state = "pending" if self._outcome is None else repr(self._outcome)
        return f"Pipeline({state})"


class SyncPipeline[T, E]:
    """Synchronous railway pipeline over an eagerly evaluated ``Result``."""

    __slots__ = ("_result",)

    def __init__(self, result: Result[T, E]) -> None:
        self._result = ensure_result(result, "from_result")

    @classmethod
    def use(cls, value: T) -> SyncPipeline[T, E]:
        return cls(Success(value))

    success = use

    @classmethod
    def failure(cls, error: E) -> SyncPipeline[T, E]:
        return cls(Failure(error))

    @classmethod
    def from_result(cls, result: Result[T, E]) -> SyncPipeline[T, E]:
        return cls(result)

    def validate(
        self,
        validator: Callable[[T], ValidationResult[T]],
        error_mapper: Callable[[str], E],
    ) -> SyncPipeline[T, E]:
        if isinstance(self._result, Failure):
            return self
        name = _stage_name("validate", validator)
        return SyncPipeline(
            _apply_validation(self._result, validator, error_mapper, name)
        )

    def map[U](self, f: Callable[[T], U]) -> SyncPipeline[U, E]:
        if isinstance(self._result, Failure):
            return SyncPipeline(self._result)
        return SyncPipeline(self._result.map(f))

    def flat_map[U](self, f: Callable[[T], Result[U, E]]) -> SyncPipeline[U, E]:
        if isinstance(self._result, Failure):
            return SyncPipeline(self._result)
        return SyncPipeline(
            ensure_result(f(self._result.value), _stage_name("flat_map", f))
        )

    def peek(self, action: Callable[[T], object]) -> Self:
        if isinstance(self._result, Success):
            action(self._result.value)
        return self

    def filter(self, predicate: Callable[[T], bool], error_if_false: E) -> SyncPipeline[T, E]:
        if isinstance(self._result, Success) and not predicate(self._result.value):
            return SyncPipeline(Failure(error_if_false))
        return self

    def recover(self, f: Callable[[E], T]) -> SyncPipeline[T, E]:
        if isinstance(self._result, Failure):
            return SyncPipeline(Success(f(self._result.error)))
        return self

    def on_success(self, action: Callable[[T], object]) -> Self:
        return self.peek(action)

    def on_failure(self, action: Callable[[E], object]) -> Self:
        if isinstance(self._result, Failure):
            action(self._result.error)
        return self

    def fold[R](self, on_failure: Callable[[E], R], on_success: Callable[[T], R]) -> R:
        return self._result.fold(on_failure, on_success)

    def build(self) -> Result[T, E]:
        return self._result

    def __repr__(self) -> str:
        return f"SyncPipeline({self._result!r})"


__all__ = ["Pipeline", "SyncPipeline"]
