from __future__ import annotations

import logging

import pytest

from railyard.telemetry import InMemoryReporter, TelemetryContext

pytestmark = pytest.mark.unit


def test_context_without_reporters_is_shared_and_disabled() -> None:
    ctx = TelemetryContext()

    assert ctx.is_enabled is False
    assert ctx is TelemetryContext()
    with ctx("anything", key="value") as inner:
        inner.count("c")


def test_environment_alone_does_not_enable_telemetry(monkeypatch) -> None:
    monkeypatch.setenv("RAILYARD_TELEMETRY", "1")
    assert TelemetryContext().is_enabled is False


def test_reporters_enable_context_unless_switched_off() -> None:
    reporter = InMemoryReporter()

    assert TelemetryContext(reporter).is_enabled is True
    assert TelemetryContext(reporter, enabled=False).is_enabled is False


def test_enabled_without_reporters_exposes_its_own_reporter() -> None:
    ctx = TelemetryContext(enabled=True)

    with ctx("work"):
        pass

    (reporter,) = ctx.reporters
    assert "work" in reporter.timings


def test_nested_scopes_report_dotted_paths() -> None:
    reporter = InMemoryReporter()
    tele = TelemetryContext(reporter)

    with tele("outer"), tele("inner", stage="map"):
        tele.count("items", 3)

    (outer_duration, outer_meta), = reporter.timings["outer"]
    (_, inner_meta), = reporter.timings["outer.inner"]
    assert outer_duration >= 0
    assert outer_meta == {"depth": 0}
    assert inner_meta == {"depth": 1, "stage": "map"}
    assert list(reporter.metrics["outer.inner.items"]) == [
        (3, {"metric_type": "counter"})
    ]


def test_count_outside_any_scope_uses_bare_name() -> None:
    reporter = InMemoryReporter()
    TelemetryContext(reporter).count("hits", event="x")

    assert list(reporter.metrics["hits"]) == [
        (1, {"metric_type": "counter", "event": "x"})
    ]


def test_empty_scope_name_is_rejected() -> None:
    tele = TelemetryContext(InMemoryReporter())
    with pytest.raises(ValueError):
        tele("")


def test_failing_reporter_is_logged_not_raised(caplog) -> None:
    class Broken:
        def record_timing(self, *args, **kwargs) -> None:
            raise RuntimeError("reporter down")

        def record_metric(self, *args, **kwargs) -> None:
            raise RuntimeError("reporter down")

    good = InMemoryReporter()
    tele = TelemetryContext(Broken(), good)

    with caplog.at_level(logging.ERROR, logger="railyard.telemetry"), tele("scope"):
        pass

    assert "scope" in good.timings
    assert any("Broken" in r.getMessage() for r in caplog.records)


def test_in_memory_reporter_keeps_most_recent_entries() -> None:
    reporter = InMemoryReporter(max_entries_per_scope=2)
    for i in range(5):
        reporter.record_metric("m", i)

    assert [value for value, _ in reporter.metrics["m"]] == [3, 4]
