"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./social_feed_hub.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Mirror (RSS-Bridge) instances, tried in order
    MIRROR_ENDPOINTS: List[str] = [
        "https://rss-bridge.org",
        "https://bridge.suumitsu.eu",
        "https://rss.nixnet.services",
    ]
    MIRROR_TIMEOUT_SECONDS: float = 10.0

    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash-exp"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    COMPLETION_TIMEOUT_SECONDS: float = 30.0
    COMPLETION_MAX_ATTEMPTS: int = 3
    COMPLETION_BACKOFF_BASE_SECONDS: float = 1.0

    # Feed sync
    FEED_SYNC_POST_LIMIT: int = 20
    FEED_INITIAL_SYNC_POST_LIMIT: int = 10
    FEED_SUMMARY_POST_LIMIT: int = 20
    FEED_SYNC_INTERVAL_MINUTES: int = 0
    CRON_SECRET: str = "default-secret"

    # Security
    JWT_SECRET: str = "change_me_in_production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24
    AUTO_CREATE_DB_SCHEMA: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()


def validate_security_settings() -> None:
    """Fail fast when insecure default secrets are still configured."""
    insecure_values = {
        "",
        "change_me_in_production",
        "your_jwt_secret_change_in_production",
    }
    jwt_secret = (settings.JWT_SECRET or "").strip()

    if jwt_secret in insecure_values or len(jwt_secret) < 24:
        raise ValueError("JWT_SECRET is insecure. Configure a strong non-default secret (>=24 chars).")
