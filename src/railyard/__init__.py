"""Railyard: railway-oriented error handling for Python.

Public API:
    - Result: Success / Failure outcome algebra
    - ValidationResult: Valid / Invalid with error accumulation via combine()
    - Pipeline / SyncPipeline: fluent, short-circuiting composition
    - DeadEnd: side effects with timing, structured logging and fault capture
    - run_in_parallel(): fail-slow fan-out with ordered aggregation
"""

from __future__ import annotations

import logging

from railyard.config import FrozenConfig, Settings, resolve_config
from railyard.dead_end import DeadEnd, create_dead_end
from railyard.errors import (
    ConfigurationError,
    InvalidStateError,
    InvariantViolationError,
    RailyardError,
)
from railyard.parallel import run_in_parallel, run_in_parallel_typed
from railyard.pipeline import Pipeline, SyncPipeline
from railyard.result import Failure, Result, Success, failure, is_result, success
from railyard.runners import InlineTaskRunner, TaskRunner, ThreadTaskRunner
from railyard.structured_log import (
    LoggingStructuredLogger,
    NullStructuredLogger,
    StructuredLogger,
)
from railyard.telemetry import InMemoryReporter, TelemetryContext, TelemetryReporter
from railyard.validation import (
    Invalid,
    Valid,
    ValidationResult,
    combine,
    invalid,
    valid,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("railyard")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("railyard").addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Outcome
    "Result",
    "Success",
    "Failure",
    "success",
    "failure",
    "is_result",
    # Validation
    "ValidationResult",
    "Valid",
    "Invalid",
    "valid",
    "invalid",
    "combine",
    # Composition
    "Pipeline",
    "SyncPipeline",
    "run_in_parallel",
    "run_in_parallel_typed",
    # Effects
    "DeadEnd",
    "create_dead_end",
    "TaskRunner",
    "ThreadTaskRunner",
    "InlineTaskRunner",
    "StructuredLogger",
    "LoggingStructuredLogger",
    "NullStructuredLogger",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    "InMemoryReporter",
    # Configuration
    "FrozenConfig",
    "Settings",
    "resolve_config",
    # Errors
    "RailyardError",
    "InvalidStateError",
    "InvariantViolationError",
    "ConfigurationError",
]
