"""Dead-end execution: side effects at an explicit exception boundary.

A dead-end operation acts on the value flowing through a pipeline (writes a
row, sends an email) but cannot change it. ``DeadEnd`` runs such operations,
and plain transforms, on an injected ``TaskRunner``, and guarantees for every
call:

- exactly one structured log record, tagged ``status=success`` or
  ``status=failure``, with ``duration_ms`` and the input;
- any ``Exception`` raised by the operation is converted through the caller's
  ``error_mapper`` into a ``Failure``; it is never re-raised.

There are no retries: each call makes a single attempt.
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import TYPE_CHECKING, Any

from railyard.config import FrozenConfig, resolve_config
from railyard.result import Failure, Success, is_result
from railyard.runners import ThreadTaskRunner
from railyard.structured_log import (
    DURATION_MS,
    ERROR,
    INPUT,
    NULL_LOGGER,
    OUTPUT,
    STATUS,
    STATUS_FAILURE,
    STATUS_SUCCESS,
    LoggingStructuredLogger,
)
from railyard.telemetry import TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Callable

    from railyard.result import Result
    from railyard.runners import TaskRunner
    from railyard.structured_log import StructuredLogger
    from railyard.telemetry import TelemetryContextProtocol, TelemetryReporter

log = logging.getLogger(__name__)

DEFAULT_EVENT_NAME = "unknown_event"


def _elapsed_ms(start: float) -> int:
    return int((perf_counter() - start) * 1000)


def describe_exception(exc: BaseException) -> str:
    """Return the exception message, or its type name when the message is empty."""
    return str(exc) or type(exc).__name__


class DeadEnd:
    """Runs effects and transforms with timing, logging and fault capture.

    Args:
        runner: Task-execution resource the operations are dispatched to.
        logger: Default structured sink; a per-call ``logger`` wins over it.
        telemetry: Telemetry context; calls are timed under
            ``dead_end.<event_name>``. Disabled when omitted.
    """

    def __init__(
        self,
        runner: TaskRunner,
        logger: StructuredLogger | None = None,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._runner = runner
        self._logger = logger
        self._telemetry = telemetry if telemetry is not None else TelemetryContext()

    @property
    def telemetry(self) -> TelemetryContextProtocol:
        """Context shared with pipelines that should report alongside this executor."""
        return self._telemetry

    @property
    def runner(self) -> TaskRunner:
        return self._runner

    async def run_effect[T, E](
        self,
        input: T,  # noqa: A002
        effect: Callable[[T], object],
        error_mapper: Callable[[Exception], E],
        event_name: str = DEFAULT_EVENT_NAME,
        logger: StructuredLogger | None = None,
    ) -> Result[T, E]:
        """Run ``effect(input)`` for its side effect only.

        Returns:
            ``Success(input)`` holding the very same object on completion, or
            ``Failure(error_mapper(exc))`` if ``effect`` raised.
        """

        def _call() -> Result[T, E]:
            effect(input)
            return Success(input)

        return await self._dispatch(
            _call,
            context={INPUT: input},
            error_mapper=error_mapper,
            event_name=event_name,
            logger=logger,
            report_output=False,
        )

    async def run_transform[In, Out, E](
        self,
        input: In,  # noqa: A002
        transform: Callable[[In], Result[Out, E] | Out],
        error_mapper: Callable[[Exception], E],
        event_name: str = DEFAULT_EVENT_NAME,
        logger: StructuredLogger | None = None,
    ) -> Result[Out, E]:
        """Run ``transform(input)`` and wrap what it produces.

        A plain return value becomes ``Success(value)``; a returned ``Result``
        is passed through as is (a returned ``Failure`` is logged as a
        failure). A raised exception becomes ``Failure(error_mapper(exc))``.
        """
        return await self._dispatch(
            lambda: transform(input),
            context={INPUT: input},
            error_mapper=error_mapper,
            event_name=event_name,
            logger=logger,
            report_output=True,
        )

    async def run_task[Out, E](
        self,
        task: Callable[[], Result[Out, E] | Out],
        error_mapper: Callable[[Exception], E],
        event_name: str = DEFAULT_EVENT_NAME,
        logger: StructuredLogger | None = None,
    ) -> Result[Out, E]:
        """Run a zero-argument ``task`` under the same contract as transforms."""
        return await self._dispatch(
            task,
            context={},
            error_mapper=error_mapper,
            event_name=event_name,
            logger=logger,
            report_output=True,
        )

    def shutdown(self, *, wait: bool = True) -> None:
        """Shut down the runner when it supports it."""
        shutdown = getattr(self._runner, "shutdown", None)
        if callable(shutdown):
            shutdown(wait=wait)

    async def _dispatch[Out, E](
        self,
        call: Callable[[], Any],
        *,
        context: dict[str, Any],
        error_mapper: Callable[[Exception], E],
        event_name: str,
        logger: StructuredLogger | None,
        report_output: bool,
    ) -> Result[Out, E]:
        sink = next(
            (s for s in (logger, self._logger) if s is not None), NULL_LOGGER
        )

        def _invoke() -> Result[Out, E]:
            start = perf_counter()
            try:
                produced = call()
            except Exception as exc:
                duration_ms = _elapsed_ms(start)
                log.debug("Dead-end '%s' raised %s", event_name, type(exc).__name__)
                sink.log(
                    event_name,
                    {
                        STATUS: STATUS_FAILURE,
                        DURATION_MS: duration_ms,
                        **context,
                        ERROR: describe_exception(exc),
                    },
                )
                return Failure(error_mapper(exc))

            duration_ms = _elapsed_ms(start)
            result = produced if is_result(produced) else Success(produced)
            if isinstance(result, Failure):
                sink.log(
                    event_name,
                    {
                        STATUS: STATUS_FAILURE,
                        DURATION_MS: duration_ms,
                        **context,
                        ERROR: str(result.error),
                    },
                )
            else:
                record = {STATUS: STATUS_SUCCESS, DURATION_MS: duration_ms, **context}
                if report_output:
                    record[OUTPUT] = result.value
                sink.log(event_name, record)
            return result

        with self._telemetry(f"dead_end.{event_name}"):
            result = await self._runner.run(_invoke)
        if isinstance(result, Failure):
            self._telemetry.count("dead_end.failure", event=event_name)
        return result


def create_dead_end(
    config: FrozenConfig | None = None,
    *,
    logger: StructuredLogger | None = None,
    reporters: tuple[TelemetryReporter, ...] = (),
) -> DeadEnd:
    """Create a ``DeadEnd`` backed by a thread pool.

    If no configuration is provided it is resolved from the environment. This
    is the only place where ambient configuration is resolved.

    Args:
        config: Optional resolved configuration.
        logger: Structured sink; defaults to a ``LoggingStructuredLogger``
            named after ``config.event_logger_name``.
        reporters: Telemetry reporters used when telemetry is enabled.
    """
    final_config = config if config is not None else resolve_config()
    runner = ThreadTaskRunner(
        final_config.max_workers,
        thread_name_prefix=final_config.thread_name_prefix,
    )
    sink = (
        logger
        if logger is not None
        else LoggingStructuredLogger(final_config.event_logger_name)
    )
    telemetry = TelemetryContext(*reporters, enabled=final_config.telemetry_enabled)
    return DeadEnd(runner, sink, telemetry=telemetry)


__all__ = ["DEFAULT_EVENT_NAME", "DeadEnd", "create_dead_end", "describe_exception"]
