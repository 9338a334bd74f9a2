"""Periodic re-evaluation of route countdowns for one display bucket."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Any

from ..clock import Clock, TickSubscription, ensure_utc
from ..exceptions import JournalError, RefreshLoopStateError, UnknownRouteStatusError
from ..journal import JournalWriter
from ..redaction import sanitize_text
from ..routes.models import Bucket, Route
from ..routes.view import view
from .diagnostics import DiagnosticBuffer
from .models import LoopState, RefreshFailure, RouteSnapshot

RoutesProvider = Callable[[], Iterable[Route]]
UpdateCallback = Callable[[RouteSnapshot], None]
ErrorCallback = Callable[[RefreshFailure], None]


@dataclass(frozen=True, slots=True)
class _LoopRun:
    generation: int
    routes_provider: RoutesProvider
    bucket: Bucket
    on_update: UpdateCallback
    on_error: ErrorCallback | None


class RouteRefreshLoop:
    """Deliver a fresh route snapshot immediately and then on every clock tick.

    State machine: ``idle -> running -> idle``. Ticks never overlap: a tick
    that fires while the previous one is still computing is skipped and
    counted in ``skipped_ticks``. Every start/stop bumps a generation counter,
    and a tick only delivers if its generation is still current. ``stop()``
    called from another thread waits for an in-flight tick, so nothing is
    delivered after it returns. A ``start()`` made from inside a callback has
    its initial snapshot delivered as soon as that callback's tick finishes.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        logger: logging.Logger,
        diagnostics: DiagnosticBuffer | None = None,
        journal: JournalWriter | None = None,
        currency_symbol: str = "$",
        display_tz: tzinfo = UTC,
    ) -> None:
        self.clock = clock
        self.logger = logger
        self.diagnostics = diagnostics
        self.journal = journal
        self.currency_symbol = currency_symbol
        self.display_tz = display_tz
        self.skipped_ticks = 0
        self._state: LoopState = "idle"
        self._generation = 0
        self._run: _LoopRun | None = None
        self._subscription: TickSubscription | None = None
        self._tick_index = 0
        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._tick_owner: int | None = None
        self._pending_initial: int | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == "running"

    def start(
        self,
        routes_provider: RoutesProvider,
        bucket: Bucket,
        tick_interval_ms: int,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Deliver one snapshot now, then one per tick until ``stop()``."""
        if tick_interval_ms <= 0:
            raise ValueError(f"tick_interval_ms must be > 0, got {tick_interval_ms}.")
        if bucket not in ("active", "past"):
            raise ValueError(f"Unknown bucket {bucket!r}; expected 'active' or 'past'.")

        with self._state_lock:
            if self._state == "running":
                raise RefreshLoopStateError("Refresh loop is already running; stop it first.")
            self._generation += 1
            run = _LoopRun(
                generation=self._generation,
                routes_provider=routes_provider,
                bucket=bucket,
                on_update=on_update,
                on_error=on_error,
            )
            self._run = run
            self._state = "running"
            self._tick_index = 0
            self.skipped_ticks = 0

        self.logger.info(
            "Route refresh loop started (bucket=%s, interval_ms=%d)",
            bucket,
            tick_interval_ms,
        )
        # A start() issued from inside a callback finds the tick lock held; the
        # initial snapshot then runs as soon as the outer tick releases it.
        with self._state_lock:
            self._pending_initial = run.generation
        self._drain_pending_initial()

        subscription = self.clock.subscribe(
            tick_interval_ms,
            lambda now: self._tick(run.generation, now),
        )
        with self._state_lock:
            if self._active_run(run.generation) is not None:
                self._subscription = subscription
                return
        # stop() ran during the initial snapshot.
        subscription.cancel()

    def stop(self) -> None:
        """Cancel ticking. Idempotent and safe to call from inside ``on_update``."""
        with self._state_lock:
            if self._state == "idle":
                return
            self._state = "idle"
            self._generation += 1
            self._run = None
            self._pending_initial = None
            subscription, self._subscription = self._subscription, None
            in_flight_elsewhere = self._tick_owner not in (None, threading.get_ident())
        if subscription is not None:
            subscription.cancel()
        if in_flight_elsewhere:
            # Wait out a tick running on another thread; it re-checks the
            # generation before delivering, so nothing is delivered after this.
            with self._tick_lock:
                pass
        self.logger.info("Route refresh loop stopped (skipped_ticks=%d)", self.skipped_ticks)

    def refresh_now(self) -> bool:
        """Deliver a snapshot outside the tick cadence.

        Returns False when the loop is idle or a tick is already in flight.
        """
        with self._state_lock:
            if self._state != "running":
                return False
            generation = self._generation
        return self._tick(generation, self.clock.now())

    def _active_run(self, generation: int) -> _LoopRun | None:
        run = self._run
        if self._state != "running" or run is None or run.generation != generation:
            return None
        return run

    def _current_run(self, generation: int) -> _LoopRun | None:
        with self._state_lock:
            return self._active_run(generation)

    def _tick(self, generation: int, now: datetime) -> bool:
        if not self._tick_lock.acquire(blocking=False):
            self.skipped_ticks += 1
            self.logger.debug("Skipping refresh tick; previous tick still running")
            return False
        try:
            return self._run_tick(generation, now)
        finally:
            self._release_tick()
            self._drain_pending_initial()

    def _drain_pending_initial(self) -> None:
        """Run the initial snapshot of the newest start() once no tick is in flight."""
        while self._pending_initial is not None:
            if not self._tick_lock.acquire(blocking=False):
                # The holder drains after it releases.
                return
            try:
                with self._state_lock:
                    generation, self._pending_initial = self._pending_initial, None
                if generation is not None:
                    self._run_tick(generation, self.clock.now())
            finally:
                self._release_tick()

    def _release_tick(self) -> None:
        self._tick_owner = None
        self._tick_lock.release()

    def _run_tick(self, generation: int, now: datetime) -> bool:
        """Compute and deliver one snapshot; the caller holds the tick lock."""
        self._tick_owner = threading.get_ident()
        run = self._current_run(generation)
        if run is None:
            return False
        now = ensure_utc(now)
        tick_index = self._tick_index
        self._tick_index += 1

        try:
            routes = list(run.routes_provider())
        except Exception as exc:  # provider is caller-supplied; any failure is a fetch failure
            failure = RefreshFailure(
                bucket=run.bucket,
                occurred_at=now,
                tick_index=tick_index,
                error_type=type(exc).__name__,
                message=sanitize_text(str(exc)),
            )
            self._record_failure(failure)
            if run.on_error is not None and self._current_run(generation) is not None:
                self._deliver(run.on_error, failure)
            return True

        entries = view(
            routes,
            run.bucket,
            now,
            on_unknown_status=lambda route, exc: self._report_unknown_status(route, exc, now),
            currency_symbol=self.currency_symbol,
            display_tz=self.display_tz,
        )
        snapshot = RouteSnapshot(
            bucket=run.bucket,
            generated_at=now,
            tick_index=tick_index,
            entries=entries,
        )
        if self._current_run(generation) is None:
            return False
        self._deliver(run.on_update, snapshot)
        return True

    def _deliver(self, callback: Callable[[Any], None], value: Any) -> None:
        try:
            callback(value)
        except Exception:
            self.logger.exception("Route refresh subscriber callback failed")

    def _record_failure(self, failure: RefreshFailure) -> None:
        self.logger.warning(
            "Route fetch failed on tick %d (%s): %s",
            failure.tick_index,
            failure.error_type,
            failure.message,
        )
        if self.diagnostics is not None:
            self.diagnostics.add(
                severity="ERROR",
                code="route_fetch_failed",
                message=f"{failure.error_type}: {failure.message}",
                dedupe_key=f"route_fetch_failed:{failure.error_type}",
                ts=failure.occurred_at,
            )
        if self.journal is not None:
            try:
                self.journal.write_event(
                    "refresh_failure",
                    payload=failure.model_dump(mode="json"),
                )
            except JournalError as exc:
                self.logger.error("Failed to journal refresh failure: %s", exc)

    def _report_unknown_status(
        self,
        route: Route,
        exc: UnknownRouteStatusError,
        now: datetime,
    ) -> None:
        if self.diagnostics is not None:
            event = self.diagnostics.add(
                severity="WARN",
                code="unknown_route_status",
                message=f"Route {route.id} has unknown status {exc.status!r}; shown as past.",
                dedupe_key=f"unknown_route_status:{route.id}:{exc.status}",
                ts=now,
            )
            if event.count > 1:
                return
        self.logger.warning(
            "Route %s has unknown status %r; treating it as past",
            route.id,
            exc.status,
        )
