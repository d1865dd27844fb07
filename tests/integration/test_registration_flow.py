"""End-to-end registration flow built from the public API.

Validation accumulates every field error; the happy path runs two dead-end
effects on a thread pool, fans out to independent follow-ups and folds into
a response payload.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, replace

import pytest

from railyard import (
    DeadEnd,
    Pipeline,
    ValidationResult,
    combine,
    create_dead_end,
    failure,
    invalid,
    resolve_config,
    run_in_parallel,
    success,
    valid,
)
from tests.conftest import RecordingLogger

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@dataclass(frozen=True)
class Registration:
    email: str
    name: str
    password: str
    age: int


MESSAGES = {
    "empty_email": "Email must not be empty.",
    "invalid_email": "Email format is invalid.",
    "short_name": "Name is too short.",
    "short_password": "Password is too short.",
    "underage": "Must be an adult.",
}


def _not_empty(value: str, message: str) -> ValidationResult[None]:
    return invalid(message) if not value.strip() else valid(None)


def _min_length(value: str, size: int, message: str) -> ValidationResult[None]:
    return invalid(message) if len(value) < size else valid(None)


def _email_format(value: str, message: str) -> ValidationResult[None]:
    if value and ("@" not in value or "." not in value):
        return invalid(message)
    return valid(None)


def _min_age(age: int, minimum: int, message: str) -> ValidationResult[None]:
    return invalid(message) if age < minimum else valid(None)


def validate_registration(r: Registration) -> ValidationResult[Registration]:
    return combine(
        [
            _not_empty(r.email, MESSAGES["empty_email"]),
            _email_format(r.email, MESSAGES["invalid_email"]),
            _min_length(r.name, 3, MESSAGES["short_name"]),
            _min_length(r.password, 8, MESSAGES["short_password"]),
            _min_age(r.age, 18, MESSAGES["underage"]),
        ]
    ).map(lambda _: r)


def _checked(r: Registration):
    outcome = validate_registration(r)
    if outcome.is_valid:
        return success(outcome.value)
    return failure(", ".join(outcome.errors))


def _canonical(r: Registration) -> Registration:
    return replace(r, email=r.email.strip().lower())


@dataclass
class Outbox:
    saved: list[str]
    sent: list[str]

    def save(self, r: Registration) -> None:
        self.saved.append(r.email)

    def send(self, r: Registration) -> None:
        if "fail" in r.email:
            raise RuntimeError("SMTP error")
        self.sent.append(r.email)


def register(dead_end: DeadEnd, outbox: Outbox, request: Registration):
    async def activation_code(r: Registration):
        return await dead_end.run_transform(
            r,
            lambda req: f"{req.name[:2].upper()}-0001",
            lambda _: "Activation code error",
            "generate_activation_code",
        )

    async def profile_id(r: Registration):
        return success(f"user:{r.email}")

    return (
        Pipeline.use(request)
        .flat_map(_checked)
        .map(_canonical)
        .flat_map_async(
            lambda r: dead_end.run_effect(r, outbox.save, lambda _: "DB error", "update_db")
        )
        .flat_map_async(
            lambda r: dead_end.run_effect(
                r, outbox.send, lambda _: "SendEmail error", "send_email"
            )
        )
        .flat_map_async(
            lambda r: run_in_parallel(r, [activation_code, profile_id], ", ".join)
        )
        .fold_async(
            lambda err: {"status": 400, "error": err},
            lambda parts: {"status": 201, "code": parts[0], "id": parts[1]},
        )
    )


@pytest.fixture
def threaded_dead_end(recording_logger: RecordingLogger) -> Iterator[DeadEnd]:
    cfg = resolve_config({"max_workers": 2, "thread_name_prefix": "flow"}, environ={})
    dead_end = create_dead_end(cfg, logger=recording_logger)
    yield dead_end
    dead_end.shutdown()


def test_invalid_registration_reports_every_field_in_order() -> None:
    result = validate_registration(Registration("", "Al", "123", 15))

    assert not result.is_valid
    assert result.errors == (
        MESSAGES["empty_email"],
        MESSAGES["short_name"],
        MESSAGES["short_password"],
        MESSAGES["underage"],
    )


async def test_successful_registration(
    threaded_dead_end: DeadEnd, recording_logger: RecordingLogger
) -> None:
    outbox = Outbox([], [])
    request = Registration("  Ada@Example.ORG ", "Ada", "superpassword", 36)

    response = await register(threaded_dead_end, outbox, request)

    assert response == {"status": 201, "code": "AD-0001", "id": "user:ada@example.org"}
    assert outbox.saved == ["ada@example.org"]
    assert outbox.sent == ["ada@example.org"]
    assert [event for event, _ in recording_logger.records] == [
        "update_db",
        "send_email",
        "generate_activation_code",
    ]
    assert set(recording_logger.statuses) == {"success"}


async def test_validation_failure_skips_every_effect(
    threaded_dead_end: DeadEnd, recording_logger: RecordingLogger
) -> None:
    outbox = Outbox([], [])

    response = await register(
        threaded_dead_end, outbox, Registration("", "Al", "123", 15)
    )

    assert response["status"] == 400
    assert response["error"].split(", ") == [
        MESSAGES["empty_email"],
        MESSAGES["short_name"],
        MESSAGES["short_password"],
        MESSAGES["underage"],
    ]
    assert outbox.saved == []
    assert recording_logger.records == []


async def test_email_fault_becomes_failure_response(
    threaded_dead_end: DeadEnd, recording_logger: RecordingLogger
) -> None:
    outbox = Outbox([], [])

    response = await register(
        threaded_dead_end, outbox, Registration("fail@example.org", "Ada", "superpassword", 36)
    )

    assert response == {"status": 400, "error": "SendEmail error"}
    assert outbox.saved == ["fail@example.org"]
    assert recording_logger.statuses == ["success", "failure"]
    _, email_ctx = recording_logger.records[1]
    assert email_ctx["error"] == "SMTP error"
