"""Test helpers (small, reusable task doubles).

Keep this file tiny and purpose-built: it exists so parallel and pipeline
tests don't each grow their own one-off async task factories.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from railyard.result import Failure, Result, Success


@dataclass
class TaskLog:
    """Shared journal of which scripted tasks started and finished."""

    started: list[str] = field(default_factory=list)
    finished: list[str] = field(default_factory=list)


def succeed(
    suffix: str, *, delay: float = 0.0, journal: TaskLog | None = None
) -> Callable[[str], Awaitable[Result[str, str]]]:
    """Task that succeeds with ``input + suffix`` after ``delay`` seconds."""

    async def _task(value: str) -> Result[str, str]:
        if journal is not None:
            journal.started.append(suffix)
        await asyncio.sleep(delay)
        if journal is not None:
            journal.finished.append(suffix)
        return Success(value + suffix)

    return _task


def fail(
    error: str, *, delay: float = 0.0, journal: TaskLog | None = None
) -> Callable[[str], Awaitable[Result[str, str]]]:
    """Task that fails with ``error`` after ``delay`` seconds."""

    async def _task(value: str) -> Result[str, str]:
        _ = value
        if journal is not None:
            journal.started.append(error)
        await asyncio.sleep(delay)
        if journal is not None:
            journal.finished.append(error)
        return Failure(error)

    return _task


def raises(
    exc: BaseException, *, delay: float = 0.0, journal: TaskLog | None = None
) -> Callable[[str], Awaitable[Result[str, str]]]:
    """Task that raises ``exc`` instead of returning a Result."""

    async def _task(value: str) -> Result[str, str]:
        _ = value
        await asyncio.sleep(delay)
        if journal is not None:
            journal.finished.append(type(exc).__name__)
        raise exc

    return _task
