"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. All keys use the
``RESCUEGUARD_`` prefix; a few infrastructure keys also accept their
canonical environment variable names via ``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the RescueGuard service.

    Environment variables are loaded from a ``.env`` file when present.
    """

    model_config = SettingsConfigDict(
        env_prefix="RESCUEGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("RESCUEGUARD_API_HOST", "API_HOST"),
    )
    api_port: int = Field(
        default=8000,
        validation_alias=AliasChoices("RESCUEGUARD_API_PORT", "API_PORT"),
    )

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("RESCUEGUARD_LOG_LEVEL", "LOG_LEVEL"),
    )
    log_format: Literal["json", "console"] = "json"

    # ── Routing ────────────────────────────────────────────────────────
    responder_contact: str = "7219435156"
    default_country_code: str = Field(default="91", pattern=r"^\d{1,3}$")
    default_platform: Literal["ios", "android", "desktop"] = "desktop"
    # Transports the host cannot invoke; the dispatcher falls back to messaging.
    unsupported_transports: list[Literal["telephony", "facetime", "messaging"]] = Field(
        default_factory=list,
    )

    # ── Location ───────────────────────────────────────────────────────
    location_timeout_seconds: float = Field(default=10.0, gt=0)
    location_busy_policy: Literal["coalesce", "reject"] = "coalesce"
    # Optional fixed fix for hosts without a geolocation capability.
    fallback_latitude: float | None = Field(default=None, ge=-90, le=90)
    fallback_longitude: float | None = Field(default=None, ge=-180, le=180)

    # ── Alerts ─────────────────────────────────────────────────────────
    alert_endpoint_url: str | None = None
    alert_timeout_seconds: float = Field(default=5.0, gt=0)

    # ── Nearby provider lookup ─────────────────────────────────────────
    places_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("RESCUEGUARD_PLACES_API_KEY", "GOOGLE_MAPS_API_KEY"),
    )
    places_radius_km: float = Field(default=10.0, gt=0, le=50)

    # ── Media ──────────────────────────────────────────────────────────
    media_backend: Literal["simulated", "none"] = "simulated"

    # ── HTTP ───────────────────────────────────────────────────────────
    # Comma-separated origins allowed by CORS in production.
    cors_origins: str = ""

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def has_fallback_location(self) -> bool:
        return self.fallback_latitude is not None and self.fallback_longitude is not None

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Module-level singleton: import ``settings`` everywhere.
settings = Settings()
