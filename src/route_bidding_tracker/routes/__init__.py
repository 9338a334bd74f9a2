"""Route classification, countdowns and list views."""

from .countdown import calculate_countdown
from .models import Bucket, Countdown, Route, RouteStatus, RouteViewEntry
from .status import available_actions, classify_status, status_label
from .view import view

__all__ = [
    "Bucket",
    "Countdown",
    "Route",
    "RouteStatus",
    "RouteViewEntry",
    "available_actions",
    "calculate_countdown",
    "classify_status",
    "status_label",
    "view",
]
