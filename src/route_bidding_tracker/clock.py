"""Clock source: current time on demand and fixed-interval tick subscriptions."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime

TickCallback = Callable[[datetime], None]


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    return value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)


class TickSubscription(ABC):
    """Handle returned by ``Clock.subscribe``; cancelling stops further ticks."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """True once ``cancel`` has been called."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivering ticks. Idempotent."""


class Clock(ABC):
    """Base contract for time sources used by the refresh loop."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current UTC time."""

    @abstractmethod
    def subscribe(self, interval_ms: int, callback: TickCallback) -> TickSubscription:
        """Invoke ``callback(now)`` every ``interval_ms`` until cancelled."""


class _ThreadTickSubscription(TickSubscription):
    """Runs ticks on a daemon thread against a fixed monotonic schedule."""

    def __init__(
        self,
        *,
        interval_ms: int,
        callback: TickCallback,
        now_provider: Callable[[], datetime],
        monotonic: Callable[[], float],
        logger: logging.Logger,
    ) -> None:
        self._interval = interval_ms / 1000.0
        self._callback = callback
        self._now_provider = now_provider
        self._monotonic = monotonic
        self._logger = logger
        self._cancel_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f"clock-tick-{interval_ms}ms",
            daemon=True,
        )
        self._thread.start()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=self._interval + 1.0)

    def _run(self) -> None:
        origin = self._monotonic()
        tick_index = 1
        while True:
            # Deadlines are multiples of the interval from a fixed origin so
            # per-tick scheduling error never accumulates.
            deadline = origin + tick_index * self._interval
            remaining = deadline - self._monotonic()
            if self._cancel_event.wait(timeout=max(remaining, 0.0)):
                return
            try:
                self._callback(self._now_provider())
            except Exception:
                self._logger.exception("Clock tick callback failed")

            elapsed = self._monotonic() - origin
            next_index = int(elapsed // self._interval) + 1
            if next_index > tick_index + 1:
                self._logger.debug(
                    "Clock skipped %d tick(s) after slow callback",
                    next_index - tick_index - 1,
                )
            tick_index = max(tick_index + 1, next_index)


class SystemClock(Clock):
    """Wall-clock time source backed by threads and the monotonic clock."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        now_provider: Callable[[], datetime] | None = None,
        monotonic: Callable[[], float] | None = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._now_provider = now_provider or (lambda: datetime.now(UTC))
        self._monotonic = monotonic or time.monotonic

    def now(self) -> datetime:
        return ensure_utc(self._now_provider())

    def subscribe(self, interval_ms: int, callback: TickCallback) -> TickSubscription:
        if interval_ms <= 0:
            raise ValueError(f"Tick interval must be > 0 ms, got {interval_ms}.")
        return _ThreadTickSubscription(
            interval_ms=interval_ms,
            callback=callback,
            now_provider=self.now,
            monotonic=self._monotonic,
            logger=self._logger,
        )
