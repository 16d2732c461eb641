from typing import Any

import pytest

from faultline.guards import guard, reported

from conftest import RecordingSink


def test_reported_logs_and_suppresses(make_handler) -> None:
    handler = make_handler(notify_sinks=True)
    calls: list[tuple[str, str, Any]] = []
    handler.add_sink(RecordingSink("A", calls))
    reached_after = False

    with reported(handler):
        raise ValueError("nope")
    reached_after = True

    assert reached_after is True
    assert calls[0][1] == "error"
    assert "ValueError: nope" in calls[0][2]


def test_reported_reraise_logs_then_raises(make_handler) -> None:
    handler = make_handler(notify_sinks=True)
    calls: list[tuple[str, str, Any]] = []
    handler.add_sink(RecordingSink("A", calls))

    with pytest.raises(RuntimeError, match="kaboom"):
        with reported(handler, reraise=True):
            raise RuntimeError("kaboom")

    # It should still have reported the failure before re-raising
    assert len(calls) == 1


def test_reported_emergency_level(make_handler) -> None:
    handler = make_handler(notify_sinks=True)
    calls: list[tuple[str, str, Any]] = []
    handler.add_sink(RecordingSink("A", calls))

    with reported(handler, is_emergency=True):
        raise ValueError("nope")

    assert calls[0][1] == "emergency"


def test_reported_success_reports_nothing(make_handler) -> None:
    handler = make_handler(notify_sinks=True)
    calls: list[tuple[str, str, Any]] = []
    handler.add_sink(RecordingSink("A", calls))

    with reported(handler):
        pass

    assert calls == []


def test_reported_does_not_swallow_keyboard_interrupt(make_handler) -> None:
    handler = make_handler(notify_sinks=True)

    with pytest.raises(KeyboardInterrupt):
        with reported(handler):
            raise KeyboardInterrupt


def test_guard_success_returns_value(make_handler) -> None:
    handler = make_handler(notify_sinks=True)
    calls: list[tuple[str, str, Any]] = []
    handler.add_sink(RecordingSink("A", calls))

    assert guard(handler, lambda: 123, default=None) == 123
    assert calls == []


def test_guard_failure_returns_default(make_handler) -> None:
    handler = make_handler(notify_sinks=True)
    calls: list[tuple[str, str, Any]] = []
    handler.add_sink(RecordingSink("A", calls))

    def boom() -> int:
        raise ValueError("nope")

    assert guard(handler, boom, default=999) == 999
    assert len(calls) == 1


def test_guard_failure_reraise(make_handler) -> None:
    handler = make_handler()

    def boom() -> int:
        raise RuntimeError("kaboom")

    with pytest.raises(RuntimeError, match="kaboom"):
        guard(handler, boom, reraise=True)
