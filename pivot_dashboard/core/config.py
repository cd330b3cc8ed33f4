from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    APP_NAME: str = "Pivot Prediction Dashboard"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: str = ""

    # Prediction backend
    PREDICT_API_URL: str = "http://127.0.0.1:8000/predict"
    PREDICT_TIMEOUT_SECONDS: float = 30.0

    # Dashboard defaults
    DEFAULT_SYMBOL: str = "SPY"
    MARKET_TIMEZONE: str = "America/New_York"

    # Set to False to serve the API without polling the backend
    ENABLE_SCHEDULER: bool = True

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


# Expose a module-level singleton for convenient import across the app.
# Usage: ``from pivot_dashboard.core.config import settings``
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings instance.

    Returns:
        Settings: The application settings singleton.
    """
    return settings


__all__ = ["Settings", "settings", "get_settings"]
