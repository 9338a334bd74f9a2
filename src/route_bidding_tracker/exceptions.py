"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class JournalError(Exception):
    """Raised when writing to journal files fails."""


class RouteDataError(Exception):
    """Raised when the route data service fails or returns malformed data."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RouteSourceUnavailableError(RouteDataError):
    """Raised when the route data service cannot be reached."""


class RouteNotFoundError(RouteDataError):
    """Raised when a route does not exist (or no longer exists)."""


class RouteForbiddenError(RouteDataError):
    """Raised when the driver is not allowed to act on a route."""


class UnknownRouteStatusError(ValueError):
    """Raised when a route carries a status outside the known lifecycle values."""

    def __init__(self, status: object) -> None:
        super().__init__(f"Unknown route status: {status!r}")
        self.status = status


class RefreshLoopStateError(RuntimeError):
    """Raised when the refresh loop is driven through an invalid transition."""
