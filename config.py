"""
Configuration management for MedTrack
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "MedTrack"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./medtrack.db"
    DATABASE_ECHO: bool = False

    # Calendar dates are resolved in this timezone ("today", log display times)
    TIMEZONE: str = "UTC"

    # Polling / activity feed
    POLL_INTERVAL_SECONDS: float = 30.0
    POLL_MAX_BACKOFF_SECONDS: float = 300.0
    NOTIFICATION_FEED_LIMIT: int = 5
    RECENT_ACTIVITY_LIMIT: int = 10

    # Image storage
    IMAGE_STORAGE_DIR: str = "./data/medication-images"
    IMAGE_BASE_URL: str = "/media"
    IMAGE_MAX_BYTES: int = 5 * 1024 * 1024
    PHOTO_MAX_BYTES: int = 2 * 1024 * 1024  # dose photos attached when marking taken
    PHOTO_ALLOWED_TYPES: list[str] = ["image/jpeg", "image/png", "image/webp"]

    # Security
    API_KEY_HEADER: str = "X-API-Key"
    API_KEY_BYTES: int = 32

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Database table names
class TableNames:
    USERS = "users"
    CARETAKER_ASSIGNMENTS = "caretaker_assignments"
    MEDICATIONS = "medications"
    MEDICATION_LOGS = "medication_logs"


settings = get_settings()
