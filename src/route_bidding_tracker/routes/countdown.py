"""Bidding-window countdown computation."""

from __future__ import annotations

from datetime import datetime, timedelta

from ..clock import ensure_utc
from .models import Countdown

_MS_PER_SECOND = 1_000
_MS_PER_MINUTE = 60_000
_MS_PER_HOUR = 3_600_000
_MS_PER_DAY = 86_400_000

NO_DATA = Countdown(remaining_millis=0, expired=True, display_text="No data")
ENDED = Countdown(remaining_millis=0, expired=True, display_text="Ended")


def remaining_millis(bidding_end_time: datetime, now: datetime) -> int:
    """Whole milliseconds from ``now`` until ``bidding_end_time`` (may be negative)."""
    return (ensure_utc(bidding_end_time) - ensure_utc(now)) // timedelta(milliseconds=1)


def format_remaining(delta_ms: int) -> str:
    """Format a positive duration; seconds are dropped once days are shown."""
    days = delta_ms // _MS_PER_DAY
    hours = delta_ms // _MS_PER_HOUR % 24
    minutes = delta_ms // _MS_PER_MINUTE % 60
    seconds = delta_ms // _MS_PER_SECOND % 60

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def calculate_countdown(bidding_end_time: datetime | None, now: datetime) -> Countdown:
    """Compute the countdown to ``bidding_end_time`` as of ``now``."""
    if bidding_end_time is None:
        return NO_DATA
    # Expiry is decided on the exact instants; the millisecond count is floored.
    if ensure_utc(bidding_end_time) <= ensure_utc(now):
        return ENDED
    delta_ms = remaining_millis(bidding_end_time, now)
    return Countdown(
        remaining_millis=delta_ms,
        expired=False,
        display_text=format_remaining(delta_ms),
    )
