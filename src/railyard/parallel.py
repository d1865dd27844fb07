"""Fail-slow fan-out / fan-in over independent async tasks.

Every task receives the same input and all of them run to completion, even
when some fail early. Results are then reassembled in submission order, no
matter which task finished first:

- no failures: ``Success([out_0, out_1, ...])``
- any failures: ``Failure(error_combiner([err_i, err_j, ...]))``, with the
  errors in submission order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from railyard.result import Failure, Success, ensure_result

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from railyard.config import FrozenConfig
    from railyard.result import Result

log = logging.getLogger(__name__)


def _effective_bound(
    max_concurrency: int | None, config: FrozenConfig | None
) -> int | None:
    if max_concurrency is None and config is not None:
        return config.parallel_concurrency or None
    return max_concurrency


async def _fan_out[In, E](
    input: In,  # noqa: A002
    tasks: Sequence[Callable[[In], Awaitable[Result[Any, E]]]],
    error_combiner: Callable[[list[E]], E],
    max_concurrency: int | None,
) -> Result[list[Any], E]:
    if max_concurrency is not None and max_concurrency < 0:
        raise ValueError(f"max_concurrency must be >= 0, got {max_concurrency}")
    if not tasks:
        return Success([])

    sem = asyncio.Semaphore(max_concurrency) if max_concurrency else None
    log.debug(
        "Fanning out %d task(s) concurrency=%s",
        len(tasks),
        max_concurrency or "unbounded",
    )

    async def _run_one(task: Callable[[In], Awaitable[Result[Any, E]]]) -> Any:
        if sem is None:
            return await task(input)
        async with sem:
            return await task(input)

    # Collect *all* outcomes before raising so no sibling is left running
    # with an unobserved exception.
    futures = [asyncio.ensure_future(_run_one(task)) for task in tasks]
    outcomes = await asyncio.gather(*futures, return_exceptions=True)
    for item in outcomes:
        if isinstance(item, asyncio.CancelledError):
            raise item
    for item in outcomes:
        if isinstance(item, BaseException):
            # Deterministic: prefer lowest task index, not "first to fail".
            raise item

    successes: list[Any] = []
    errors: list[E] = []
    for idx, item in enumerate(outcomes):
        result = ensure_result(item, f"parallel_task[{idx}]")
        if isinstance(result, Failure):
            errors.append(result.error)
        else:
            successes.append(result.value)

    if errors:
        log.debug("%d of %d parallel task(s) failed", len(errors), len(tasks))
        return Failure(error_combiner(errors))
    return Success(successes)


async def run_in_parallel[In, E](
    input: In,  # noqa: A002
    tasks: Sequence[Callable[[In], Awaitable[Result[Any, E]]]],
    error_combiner: Callable[[list[E]], E],
    *,
    max_concurrency: int | None = None,
    config: FrozenConfig | None = None,
) -> Result[list[Any], E]:
    """Run heterogeneous tasks concurrently and aggregate their results.

    Each task may produce a different payload type; the combined success
    list is typed ``list[Any]``.

    Args:
        input: Value passed to every task.
        tasks: Task functions, in submission order.
        error_combiner: Reduces the ordered list of errors to one error.
        max_concurrency: Upper bound on tasks in flight. ``None`` or ``0``
            means unbounded.
        config: Resolved configuration; its ``parallel_concurrency`` applies
            when ``max_concurrency`` is not given (``0`` is unbounded there
            too).

    Raises:
        BaseException: Whatever the lowest-index task raised, if any task
            raised instead of returning a ``Result``.
    """
    return await _fan_out(
        input, list(tasks), error_combiner, _effective_bound(max_concurrency, config)
    )


async def run_in_parallel_typed[In, Out, E](
    input: In,  # noqa: A002
    tasks: Sequence[Callable[[In], Awaitable[Result[Out, E]]]],
    error_combiner: Callable[[list[E]], E],
    *,
    max_concurrency: int | None = None,
    config: FrozenConfig | None = None,
) -> Result[list[Out], E]:
    """Homogeneous variant of ``run_in_parallel``: every task yields ``Out``."""
    return await _fan_out(
        input, list(tasks), error_combiner, _effective_bound(max_concurrency, config)
    )


__all__ = ["run_in_parallel", "run_in_parallel_typed"]
