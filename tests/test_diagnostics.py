"""Tests for the diagnostic dedupe buffer."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from route_bidding_tracker.refresh.diagnostics import DiagnosticBuffer

START = datetime(2024, 2, 15, 12, 0, tzinfo=UTC)


def test_warnings_dedupe_within_window() -> None:
    buffer = DiagnosticBuffer(max_events=10, dedupe_window_seconds=30)
    for offset in (0, 5, 10):
        buffer.add(
            severity="WARN",
            code="unknown_route_status",
            message="Route r1 has unknown status 'ARCHIVED'",
            dedupe_key="unknown_route_status:r1:ARCHIVED",
            ts=START + timedelta(seconds=offset),
        )

    (event,) = buffer.snapshot()
    assert event.count == 3
    assert event.ts == START
    assert event.last_seen == START + timedelta(seconds=10)


def test_new_entry_after_window_elapses() -> None:
    buffer = DiagnosticBuffer(max_events=10, dedupe_window_seconds=5)
    buffer.add(severity="ERROR", code="route_fetch_failed", message="down", dedupe_key="k", ts=START)
    buffer.add(
        severity="ERROR",
        code="route_fetch_failed",
        message="down",
        dedupe_key="k",
        ts=START + timedelta(seconds=6),
    )
    assert [event.count for event in buffer.snapshot()] == [1, 1]
    assert buffer.count_matching(code="route_fetch_failed") == 2


def test_info_and_critical_are_never_collapsed() -> None:
    buffer = DiagnosticBuffer()
    buffer.add(severity="INFO", code="loop_started", message="started", dedupe_key="same", ts=START)
    buffer.add(severity="INFO", code="loop_started", message="started", dedupe_key="same", ts=START)
    buffer.add(severity="CRITICAL", code="x", message="boom", dedupe_key="same", ts=START)
    buffer.add(severity="CRITICAL", code="x", message="boom", dedupe_key="same", ts=START)

    events = buffer.snapshot()
    assert len(events) == 4
    assert all(event.dedupe_key is None for event in events)
    assert buffer.count_matching(severity="CRITICAL") == 2


def test_buffer_is_bounded_and_newest_first_snapshot() -> None:
    buffer = DiagnosticBuffer(max_events=3)
    for index in range(5):
        buffer.add(
            severity="WARN",
            code="c",
            message=f"event {index}",
            dedupe_key=f"k{index}",
            ts=START + timedelta(seconds=index),
        )

    assert [event.message for event in buffer.snapshot()] == ["event 2", "event 3", "event 4"]
    assert buffer.snapshot(newest_first=True)[0].message == "event 4"


def test_evicted_key_starts_fresh_entry() -> None:
    buffer = DiagnosticBuffer(max_events=1, dedupe_window_seconds=300)
    buffer.add(severity="WARN", code="c", message="a", dedupe_key="a", ts=START)
    buffer.add(severity="WARN", code="c", message="b", dedupe_key="b", ts=START)
    buffer.add(severity="WARN", code="c", message="a", dedupe_key="a", ts=START)

    (event,) = buffer.snapshot()
    assert event.message == "a"
    assert event.count == 1
