"""
Centralized configuration with environment variable overrides.

Cache lifetimes, input limits, storage and HTTP settings are configurable
here. Per-owner business rules (hours, slot duration, lead time) live in the
store as ScheduleConfig records, not in this module.
"""

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from agenda.logging_context import LOG_FORMAT, install_context_filter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    return os.getenv(env_var, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EngineConfig:
    """Availability and booking engine settings."""

    month_cache_ttl_seconds: float = _safe_float("MONTH_CACHE_TTL_SECONDS", "60")
    idempotency_ttl_seconds: float = _safe_float("IDEMPOTENCY_TTL_SECONDS", "60")
    timezone: str = os.getenv("AGENDA_TIMEZONE", "America/Sao_Paulo")
    max_name_length: int = _safe_int("MAX_NAME_LENGTH", "200")
    max_note_length: int = _safe_int("MAX_NOTE_LENGTH", "500")
    min_phone_digits: int = _safe_int("MIN_PHONE_DIGITS", "10")
    whatsapp_country_code: str = os.getenv("WHATSAPP_COUNTRY_CODE", "55")


@dataclass(frozen=True)
class DatabaseConfig:
    """SQLAlchemy connection settings."""

    url: str = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")
    echo: bool = _safe_bool("DATABASE_ECHO", "false")


@dataclass(frozen=True)
class ApiConfig:
    """HTTP server settings."""

    host: str = os.getenv("API_HOST", "127.0.0.1")
    port: int = _safe_int("API_PORT", "8000")
    cors_origins: str = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "agenda-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.engine.month_cache_ttl_seconds <= 0:
        raise ValueError(
            "MONTH_CACHE_TTL_SECONDS must be > 0, "
            f"got {config.engine.month_cache_ttl_seconds}"
        )
    if config.engine.idempotency_ttl_seconds <= 0:
        raise ValueError(
            "IDEMPOTENCY_TTL_SECONDS must be > 0, "
            f"got {config.engine.idempotency_ttl_seconds}"
        )
    if config.engine.min_phone_digits < 1:
        raise ValueError(
            f"MIN_PHONE_DIGITS must be >= 1, got {config.engine.min_phone_digits}"
        )
    if config.engine.max_name_length < 2:
        raise ValueError(
            f"MAX_NAME_LENGTH must be >= 2, got {config.engine.max_name_length}"
        )
    if config.engine.max_note_length < 0:
        raise ValueError(
            f"MAX_NOTE_LENGTH must be >= 0, got {config.engine.max_note_length}"
        )
    try:
        ZoneInfo(config.engine.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"AGENDA_TIMEZONE is not a known zone: {config.engine.timezone!r}") from None

    if not 1 <= config.api.port <= 65535:
        raise ValueError(f"API_PORT must be between 1 and 65535, got {config.api.port}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_context_filter()
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
