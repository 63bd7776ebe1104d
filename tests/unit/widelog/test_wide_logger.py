"""Tests for the WideLogger facade and the default instance."""

from __future__ import annotations

import asyncio

import widelog
from widelog.backends.memory import InMemoryBackend
from widelog.logger import WideLogger, get_wide_logger
from widelog.metrics import get_metrics
from widelog.sampling import SamplingPolicy

from tests.utils.widelog import FailingBackend, RecordingBackend, make_event


def test_run_and_current(wide_logger) -> None:
    event = make_event()

    assert wide_logger.current() is None
    assert wide_logger.run(event, lambda: wide_logger.current()) is event


def test_set_set_details_and_track(wide_logger) -> None:
    event = make_event()

    with wide_logger.scope(event):
        wide_logger.set("user_id", "user-123")
        wide_logger.set({"operation_type": "write", "resource_type": "order"})
        wide_logger.set_details({"amount": 9999}, currency="EUR")
        wide_logger.track_sub_operation(50)

    assert event.user_id == "user-123"
    assert event.operation_type == "write"
    assert event.resource_type == "order"
    assert event.details == {"amount": 9999, "currency": "EUR"}
    assert event.query_count == 1
    assert event.query_time_ms == 50


def test_emit_without_active_event_is_noop(wide_logger, recording_backend) -> None:
    assert wide_logger.emit("orphan") is None
    assert recording_backend.calls == []


def test_emit_writes_reason_back_and_forwards_payload(wide_logger, recording_backend) -> None:
    event = make_event()

    decision = wide_logger.run(event, wide_logger.emit, "test_event")

    assert decision == (True, "full_sample")
    assert event.sampling_reason == "full_sample"
    level, message, fields = recording_backend.calls[0]
    assert (level, message) == ("info", "test_event")
    assert fields["request_id"] == "test-123"
    assert fields["sampling_reason"] == "full_sample"
    assert "started_at" not in fields


def test_dropped_event_still_records_reason(recording_backend) -> None:
    logger = WideLogger(recording_backend, SamplingPolicy(rate=0.0), rng=lambda: 0.5)
    event = make_event(status_code=200)

    decision = logger.run(event, logger.emit, "quiet")

    assert decision == (False, "sampled_out")
    assert event.sampling_reason == "sampled_out"
    assert recording_backend.calls == []
    assert get_metrics().dropped_total == 1


def test_emit_uses_error_level_for_5xx(wide_logger, recording_backend) -> None:
    event = make_event(status_code=500)

    wide_logger.run(event, wide_logger.emit, "boom")

    assert recording_backend.levels() == ["error"]


def test_emit_isolates_backend_failure_and_calls_hook() -> None:
    failures = []
    backend = FailingBackend("info")
    logger = WideLogger(
        backend,
        SamplingPolicy(rate=1.0),
        on_error=lambda exc, name, payload: failures.append(name),
    )

    decision = logger.run(make_event(), logger.emit, "evt")

    assert decision.emit is True
    assert backend.levels() == ["info"]
    assert failures == ["evt"]


def test_arun_keeps_event_across_awaits(wide_logger, recording_backend) -> None:
    event = make_event()

    async def _handler():
        wide_logger.set(user_id="u-1")
        await asyncio.sleep(0)
        wide_logger.emit("async_event")

    asyncio.run(wide_logger.arun(event, _handler))

    assert recording_backend.calls[0][2]["user_id"] == "u-1"


def test_from_settings_binds_service_and_env(widelog_settings) -> None:
    backend = RecordingBackend()

    logger = WideLogger.from_settings(widelog_settings, backend=backend)
    logger.run(make_event(), logger.emit, "evt")

    assert backend.children, "expected a child backend scoped to the service"
    _, _, fields = backend.calls[0]
    assert fields["service"] == "widelog-unit-tests"
    assert fields["env"] == "test"
    assert logger.policy.rate == 1.0


def test_configure_rebuilds_default_logger(widelog_settings) -> None:
    backend = InMemoryBackend()

    configured = widelog.configure(widelog_settings, backend=backend)

    assert get_wide_logger() is configured
    configured.run(make_event(), configured.emit, "configured_event")
    assert backend.messages() == ["configured_event"]
    assert backend.records[0]["service"] == "widelog-unit-tests"


def test_default_logger_bootstraps_lazily_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("WIDELOG_BACKEND", "memory")
    monkeypatch.setenv("WIDELOG_SERVICE_NAME", "lazy")

    logger = get_wide_logger()

    assert isinstance(logger, WideLogger)
    assert isinstance(logger.backend, InMemoryBackend)
    assert logger.backend.bindings["service"] == "lazy"
    assert get_wide_logger() is logger


def test_emit_with_string_status_code_never_raises(wide_logger, recording_backend) -> None:
    event = make_event()

    def _handler():
        widelog.update(status_code="503", response_time_ms="slow")
        return wide_logger.emit("evt")

    decision = wide_logger.run(event, _handler)

    assert decision == (True, "error_status")
    assert recording_backend.levels() == ["error"]
