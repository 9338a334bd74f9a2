"""Bounded diagnostic feed with repeat-deduplication.

Data-contract problems such as an unknown route status recur on every tick
for as long as the offending record is visible; the buffer collapses those
repeats so the side channel stays readable.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from ..clock import ensure_utc

Severity = Literal["INFO", "WARN", "ERROR", "CRITICAL"]


@dataclass(slots=True)
class DiagnosticEvent:
    """One diagnostic entry with optional dedupe metadata."""

    ts: datetime
    severity: Severity
    message: str
    code: str
    count: int = 1
    last_seen: datetime | None = None
    dedupe_key: str | None = None

    def __post_init__(self) -> None:
        self.ts = ensure_utc(self.ts)
        self.last_seen = self.ts if self.last_seen is None else ensure_utc(self.last_seen)


class DiagnosticBuffer:
    """Keep recent diagnostics and collapse repeated warning/error lines."""

    def __init__(
        self,
        *,
        max_events: int = 80,
        dedupe_window_seconds: int = 300,
    ) -> None:
        self.max_events = max_events
        self.dedupe_window_seconds = dedupe_window_seconds
        self._events: list[DiagnosticEvent] = []
        self._dedupe_index: dict[str, DiagnosticEvent] = {}
        self._lock = threading.Lock()

    def add(
        self,
        *,
        severity: Severity,
        code: str,
        message: str,
        dedupe_key: str | None = None,
        ts: datetime | None = None,
    ) -> DiagnosticEvent:
        now = ensure_utc(ts or datetime.now(UTC))
        should_dedupe = severity in {"WARN", "ERROR"} and dedupe_key is not None

        with self._lock:
            if should_dedupe:
                existing = self._dedupe_index.get(dedupe_key)
                if existing and existing.last_seen is not None:
                    age_seconds = (now - existing.last_seen).total_seconds()
                    if age_seconds <= self.dedupe_window_seconds:
                        existing.count += 1
                        existing.last_seen = now
                        return existing

            event = DiagnosticEvent(
                ts=now,
                severity=severity,
                message=message,
                code=code,
                dedupe_key=dedupe_key if should_dedupe else None,
            )
            self._events.append(event)
            if should_dedupe and dedupe_key is not None:
                self._dedupe_index[dedupe_key] = event

            while len(self._events) > self.max_events:
                dropped = self._events.pop(0)
                if dropped.dedupe_key and self._dedupe_index.get(dropped.dedupe_key) is dropped:
                    self._dedupe_index.pop(dropped.dedupe_key, None)
            return event

    def snapshot(self, *, newest_first: bool = False) -> list[DiagnosticEvent]:
        """Return a copy of tracked events in display order."""
        with self._lock:
            items = list(self._events)
        if newest_first:
            items.reverse()
        return items

    def count_matching(
        self,
        *,
        severity: Severity | None = None,
        code: str | None = None,
    ) -> int:
        """Count events, weighted by dedupe counts."""
        total = 0
        for event in self.snapshot():
            if severity is not None and event.severity != severity:
                continue
            if code is not None and event.code != code:
                continue
            total += event.count
        return total
