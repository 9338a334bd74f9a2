"""Typed settings loader for the route bidding tracker."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    routes_api_base_url: AnyUrl = Field(alias="ROUTES_API_BASE_URL")
    routes_api_key: str | None = Field(default=None, alias="ROUTES_API_KEY", repr=False)
    routes_endpoint: str = Field(default="/rest/v1/routes", alias="ROUTES_ENDPOINT")
    route_delete_endpoint_template: str = Field(
        default="/rest/v1/routes/{route_id}",
        alias="ROUTE_DELETE_ENDPOINT_TEMPLATE",
    )
    routes_timeout_seconds: float = Field(default=15.0, alias="ROUTES_TIMEOUT_SECONDS")

    refresh_tick_interval_ms: int = Field(default=1000, alias="REFRESH_TICK_INTERVAL_MS")
    diagnostics_max_events: int = Field(default=80, alias="DIAGNOSTICS_MAX_EVENTS")
    diagnostics_dedupe_window_seconds: int = Field(
        default=300,
        alias="DIAGNOSTICS_DEDUPE_WINDOW_SECONDS",
    )
    currency_symbol: str = Field(default="$", alias="CURRENCY_SYMBOL")

    journal_dir: Path = Field(default=Path("./data/journal"), alias="JOURNAL_DIR")

    @field_validator("routes_api_key", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat an empty env-string as an unset key."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @model_validator(mode="after")
    def validate_values(self) -> Settings:
        """Validate endpoint shapes and numeric bounds."""
        if not self.routes_endpoint.startswith("/"):
            raise ValueError("ROUTES_ENDPOINT must start with '/'.")
        if not self.route_delete_endpoint_template.startswith("/"):
            raise ValueError("ROUTE_DELETE_ENDPOINT_TEMPLATE must start with '/'.")
        if "{route_id}" not in self.route_delete_endpoint_template:
            raise ValueError("ROUTE_DELETE_ENDPOINT_TEMPLATE must include '{route_id}'.")
        if self.routes_timeout_seconds <= 0:
            raise ValueError("ROUTES_TIMEOUT_SECONDS must be > 0.")
        if self.refresh_tick_interval_ms <= 0:
            raise ValueError("REFRESH_TICK_INTERVAL_MS must be > 0.")
        if self.diagnostics_max_events <= 0:
            raise ValueError("DIAGNOSTICS_MAX_EVENTS must be > 0.")
        if self.diagnostics_dedupe_window_seconds < 0:
            raise ValueError("DIAGNOSTICS_DEDUPE_WINDOW_SECONDS must be >= 0.")
        if self.app_env == "prod" and not self.routes_api_key:
            raise ValueError("ROUTES_API_KEY is required when APP_ENV='prod'.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for journaling (no credentials)."""
        return {
            "app_env": self.app_env,
            "base_url": str(self.routes_api_base_url),
            "routes_endpoint": self.routes_endpoint,
            "route_delete_endpoint_template": self.route_delete_endpoint_template,
            "api_key_configured": self.routes_api_key is not None,
            "timeout_seconds": self.routes_timeout_seconds,
            "refresh_tick_interval_ms": self.refresh_tick_interval_ms,
            "diagnostics_max_events": self.diagnostics_max_events,
            "diagnostics_dedupe_window_seconds": self.diagnostics_dedupe_window_seconds,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    settings.journal_dir.mkdir(parents=True, exist_ok=True)
    return settings
