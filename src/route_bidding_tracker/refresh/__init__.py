"""Periodic route refresh loop and its diagnostic side channel."""

from .diagnostics import DiagnosticBuffer, DiagnosticEvent
from .loop import RouteRefreshLoop
from .models import RefreshFailure, RouteSnapshot

__all__ = [
    "DiagnosticBuffer",
    "DiagnosticEvent",
    "RefreshFailure",
    "RouteRefreshLoop",
    "RouteSnapshot",
]
