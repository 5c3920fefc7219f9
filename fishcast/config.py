"""Configuration management using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Open-Meteo Configuration (forecast + marine, queried in parallel)
    open_meteo_forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    open_meteo_marine_url: str = "https://marine-api.open-meteo.com/v1/marine"
    open_meteo_api_key: str | None = None  # customer-api key, optional
    open_meteo_timezone: str = "auto"
    open_meteo_forecast_days: int = 7

    # HTTP / retry behaviour
    http_timeout: float = 10.0
    fetch_max_retries: int = 3
    fetch_initial_delay: float = 1.0  # seconds, doubled on every retry

    # Groq AI Configuration (optional - recommendations/tips degrade if not set)
    groq_api_key: str | None = None
    groq_model: str = "llama-3.3-70b-versatile"
    ai_timeout: float = 45.0
    pipeline_timeout: float = 60.0

    # Location orchestration
    location_debounce_seconds: float = 0.3
    location_freshness_seconds: int = 300  # 5 minutes

    # Cache TTLs (seconds)
    weather_cache_ttl: int = 600
    gear_cache_ttl: int = 86400
    tips_cache_ttl: int = 86400
    species_cache_ttl: int = 12 * 3600
    species_page_size: int = 50
    cache_max_entries: int = 1000

    # Redis Configuration
    redis_url: str = "redis://localhost:6379"
    use_redis: bool = False

    # Sessions (one per client view)
    session_ttl_seconds: int = 3600
    max_sessions: int = 500

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Rate limiting
    rate_limit: str = "60/minute"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
