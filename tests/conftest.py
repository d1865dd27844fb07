"""Pytest configuration and fixtures.

Provides environment isolation, shared test doubles and logging quieting.
Fixtures marked autouse apply to every test.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os
from typing import Any

import pytest

from railyard.dead_end import DeadEnd
from railyard.runners import InlineTaskRunner

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class RecordingLogger:
    """Structured sink that keeps every event for assertions."""

    records: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def log(self, event_name: str, context: Any) -> None:
        self.records.append((event_name, dict(context)))

    @property
    def statuses(self) -> list[str]:
        return [ctx["status"] for _, ctx in self.records]

    def only(self) -> tuple[str, dict[str, Any]]:
        """Return the single recorded event, failing if there is not exactly one."""
        assert len(self.records) == 1, f"expected 1 record, got {self.records!r}"
        return self.records[0]


@dataclass
class CallCounter:
    """Callable wrapper that counts invocations of ``fn``."""

    fn: Any = None
    calls: int = 0
    seen: list[Any] = field(default_factory=list)

    def __call__(self, *args: Any) -> Any:
        self.calls += 1
        self.seen.extend(args)
        return self.fn(*args) if self.fn is not None else None


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def inline_dead_end(recording_logger: RecordingLogger) -> DeadEnd:
    """DeadEnd running effects on the calling thread, logging to a recorder."""
    return DeadEnd(InlineTaskRunner(), recording_logger)


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_railyard_env(request, monkeypatch):
    """Clear RAILYARD_* variables so settings never leak between tests.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("RAILYARD_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("asyncio").setLevel(logging.WARNING)
