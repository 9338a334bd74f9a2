"""Route mutation commands."""

from .models import DeleteResult, FetchResult
from .routes import RouteCommandService, build_edit_payload

__all__ = ["DeleteResult", "FetchResult", "RouteCommandService", "build_edit_payload"]
