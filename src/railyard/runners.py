"""Task-execution resources for side-effecting work.

A runner accepts a zero-argument callable and returns its eventual result.
``DeadEnd`` dispatches every effect through one, so blocking work never runs
on the event loop that drives the pipeline.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
import logging
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

log = logging.getLogger(__name__)


@runtime_checkable
class TaskRunner(Protocol):
    """Duck-typed protocol for task runners.

    Implementations must be safe for concurrent submission from several
    pipelines at once.
    """

    async def run[R](self, fn: Callable[[], R]) -> R: ...  # noqa: D102


class ThreadTaskRunner:
    """Run callables on a thread pool via ``loop.run_in_executor``.

    Either owns a ``ThreadPoolExecutor`` built from ``max_workers`` and
    ``thread_name_prefix``, or wraps an externally owned ``executor`` which
    ``shutdown`` then leaves untouched.
    """

    def __init__(
        self,
        max_workers: int | None = None,
        *,
        thread_name_prefix: str = "railyard",
        executor: Executor | None = None,
    ) -> None:
        if executor is not None and max_workers is not None:
            raise ValueError("Pass either max_workers or executor, not both")
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._owns_executor = executor is None
        self._executor: Executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )

    async def run[R](self, fn: Callable[[], R]) -> R:
        """Run ``fn`` on the pool and await its result."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn)

    def shutdown(self, *, wait: bool = True) -> None:
        """Shut down the owned pool; a borrowed executor is left running."""
        if self._owns_executor:
            log.debug("Shutting down thread pool (wait=%s)", wait)
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        _: type[BaseException] | None,
        __: BaseException | None,
        ___: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True)


class InlineTaskRunner:
    """Run callables synchronously on the calling thread.

    Useful in tests and in single-threaded tools where ordering matters more
    than keeping the loop free.
    """

    async def run[R](self, fn: Callable[[], R]) -> R:
        return fn()


__all__ = ["InlineTaskRunner", "TaskRunner", "ThreadTaskRunner"]
