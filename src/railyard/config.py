"""Configuration: resolve once, freeze, then flow.

Values come from three layers, highest precedence first:

1. ``overrides`` passed to ``resolve_config``
2. ``RAILYARD_*`` environment variables (a project ``.env`` is loaded first)
3. ``Settings`` defaults

Everything is validated through the pydantic ``Settings`` schema and handed
out as an immutable ``FrozenConfig``.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import TYPE_CHECKING, Any

import dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from railyard.errors import ConfigurationError
from railyard.structured_log import DEFAULT_EVENT_LOGGER

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)

ENV_PREFIX = "RAILYARD_"


class Settings(BaseModel):
    """Pydantic schema for configuration fields, defaults and constraints."""

    # Worker pool backing DeadEnd effects
    max_workers: int = Field(default=4, ge=1)
    thread_name_prefix: str = Field(default="railyard", min_length=1)
    # Structured event sink
    event_logger_name: str = Field(default=DEFAULT_EVENT_LOGGER, min_length=1)
    # Fan-out bound for run_in_parallel; 0 means unbounded
    parallel_concurrency: int = Field(default=0, ge=0)
    telemetry_enabled: bool = Field(default=False)

    model_config = {"extra": "forbid"}

    @field_validator("thread_name_prefix", "event_logger_name", mode="before")
    @classmethod
    def strip_names(cls, v: Any) -> Any:
        """Trim surrounding whitespace on name fields."""
        if isinstance(v, str):
            return v.strip()
        return v


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration payload."""

    max_workers: int
    thread_name_prefix: str
    event_logger_name: str
    parallel_concurrency: int
    telemetry_enabled: bool


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``RAILYARD_<FIELD>`` values for known fields."""
    layer: dict[str, Any] = {}
    for name in Settings.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            layer[name] = raw
    # RAILYARD_TELEMETRY=1 is a short alias for RAILYARD_TELEMETRY_ENABLED
    if "telemetry_enabled" not in layer and f"{ENV_PREFIX}TELEMETRY" in environ:
        layer["telemetry_enabled"] = environ[f"{ENV_PREFIX}TELEMETRY"] == "1"
    return layer


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> FrozenConfig:
    """Resolve configuration into a ``FrozenConfig``.

    Args:
        overrides: Programmatic values; these win over everything else.
        environ: Environment mapping to read instead of ``os.environ``. When
            given, no ``.env`` file is loaded.

    Raises:
        ConfigurationError: If any layer holds an invalid value.
    """
    if environ is None:
        dotenv.load_dotenv()
        environ = os.environ

    merged = {**_env_layer(environ), **dict(overrides or {})}
    try:
        settings = Settings(**merged)
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) for err in e.errors()
        )
        raise ConfigurationError(
            f"Invalid configuration for field(s): {fields}",
            hint=f"Check overrides or {ENV_PREFIX}* environment variables.",
        ) from e

    cfg = FrozenConfig(**settings.model_dump())
    log.debug("Resolved configuration: %s", cfg)
    return cfg


__all__ = ["ENV_PREFIX", "FrozenConfig", "Settings", "resolve_config"]
