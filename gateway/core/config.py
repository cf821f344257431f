"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Settings are read once at process start. ``create_app`` receives the
``Settings`` object explicitly; the module-level ``settings`` instance only
exists for the ASGI entry point and for defaults.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Production may inject everything through real environment variables
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


class AppSettings(BaseSettings):
    """Process-wide server options."""

    environment: str = Field(
        APP_ENV,
        description="Deployment environment name reported by /health",
    )
    allowed_origins: str = Field(
        "*",
        description="Comma-separated CORS origins ('*' allows any origin)",
    )
    validate_credentials: bool = Field(
        True,
        description="Refuse to start when an upstream credential is missing",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


class NextBusSettings(BaseSettings):
    """Campus shuttle upstream (HTTP basic auth)."""

    api_url: str = Field("https://nnextbus.nus.edu.sg", description="Base URL")
    username: str = Field("", description="Basic auth username")
    password: str = Field("", description="Basic auth password")
    timeout_seconds: float = Field(10.0, description="Per-request timeout")

    model_config = SettingsConfigDict(
        env_prefix="NEXTBUS_",
        case_sensitive=False,
    )


class LTASettings(BaseSettings):
    """Public transit open-data upstream (AccountKey header)."""

    api_url: str = Field(
        "https://datamall2.mytransport.sg/ltaodataservice",
        description="Base URL",
    )
    api_key: str = Field("", description="DataMall account key")
    timeout_seconds: float = Field(10.0, description="Per-request timeout")

    model_config = SettingsConfigDict(
        env_prefix="LTA_",
        case_sensitive=False,
    )


class GoogleSettings(BaseSettings):
    """Mapping and routing upstreams sharing one API key."""

    maps_api_key: str = Field("", description="Google Maps Platform API key")
    routes_api_url: str = Field("https://routes.googleapis.com")
    places_api_url: str = Field("https://maps.googleapis.com/maps/api/place")
    directions_api_url: str = Field("https://maps.googleapis.com/maps/api/directions")
    routes_timeout_seconds: float = Field(15.0)
    places_timeout_seconds: float = Field(10.0)
    directions_timeout_seconds: float = Field(15.0)

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Response cache and its storage backends."""

    enabled: bool = Field(
        True,
        description="Master switch; when false every get misses and every set is dropped",
    )
    default_ttl_seconds: int = Field(
        300,
        description="TTL used when a caller does not pass one",
        ge=0,
    )
    redis_url: str | None = Field(
        None,
        description="Shared store connection string; unset means in-process cache only",
    )
    redis_password: str | None = Field(None)
    redis_tls: bool = Field(False, description="Connect with TLS (rediss://)")
    redis_socket_timeout_seconds: float = Field(5.0, gt=0)
    close_timeout_seconds: float = Field(
        5.0,
        description="Upper bound on waiting for the shared store connection to close",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Inbound rate limiting (fixed window, per client address)."""

    enabled: bool = Field(True, description="When false every gate is a pass-through")
    window_ms: int = Field(60000, description="Global window length", ge=1)
    max_requests: int = Field(120, description="Global requests per window", ge=1)
    fail_open: bool = Field(
        True,
        description="Admit requests when the shared counter store errors",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers alongside Retry-After when throttling",
    )
    trust_forwarded_for: bool = Field(
        False,
        description="Use the first X-Forwarded-For hop as the client address",
    )

    # Strict tiers for upstreams where one user action fans out into many calls
    routes_max_requests: int = Field(30, ge=1)
    routes_window_ms: int = Field(60000, ge=1)
    directions_max_requests: int = Field(30, ge=1)
    directions_window_ms: int = Field(60000, ge=1)
    places_max_requests: int = Field(60, ge=1)
    places_window_ms: int = Field(60000, ge=1)
    lta_max_requests: int = Field(800, ge=1)
    lta_window_ms: int = Field(60000, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )

    def tiers(self) -> dict[str, tuple[int, int]]:
        """Return ``{route_group: (window_ms, max_requests)}`` for strict tiers."""
        return {
            "routes": (self.routes_window_ms, self.routes_max_requests),
            "directions": (self.directions_window_ms, self.directions_max_requests),
            "places": (self.places_window_ms, self.places_max_requests),
            "lta": (self.lta_window_ms, self.lta_max_requests),
        }


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("info")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None)
    max_bytes: int = Field(10 * 1024 * 1024, description="Rotate after this size; 0 disables")
    backup_count: int = Field(5)
    request_id_header: str = Field("X-Request-ID")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Each section is built through ``default_factory`` so that it reads its
    own prefixed environment variables.
    """

    app: AppSettings = Field(default_factory=AppSettings)
    nextbus: NextBusSettings = Field(default_factory=NextBusSettings)
    lta: LTASettings = Field(default_factory=LTASettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


def missing_credentials(cfg: Settings) -> list[str]:
    """List the upstream credentials that are not configured.

    Returns:
        Environment variable names that must be set, empty when complete.
    """
    missing: list[str] = []
    if not cfg.nextbus.username:
        missing.append("NEXTBUS_USERNAME")
    if not cfg.nextbus.password:
        missing.append("NEXTBUS_PASSWORD")
    if not cfg.lta.api_key:
        missing.append("LTA_API_KEY")
    if not cfg.google.maps_api_key:
        missing.append("GOOGLE_MAPS_API_KEY")
    return missing


settings = Settings()
