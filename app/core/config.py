"""
Application configuration using Pydantic Settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Kystobservatørene API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: Optional[str] = None
    MAX_REQUEST_BODY_BYTES: int = 1_000_000

    # MongoDB
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "kystobservatorene"

    # JWT issued by the hosted auth platform
    JWT_SECRET_KEY: str = "your-super-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = "authenticated"

    # Admin
    ADMIN_EMAILS: List[str] = []
    ADMIN_PASSWORD: str = ""
    ADMIN_API_KEY: str = ""

    # Media storage (S3)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "eu-north-1"
    AWS_S3_BUCKET: str = ""
    MEDIA_BUCKET: str = "media"
    SIGNED_URL_TTL_SECONDS: int = 60 * 60
    SIGNED_UPLOAD_TTL_SECONDS: int = 60 * 10

    # Submissions / gamification
    PUBLIC_COORD_DECIMALS: int = 4
    STREAK_TIMEZONE: str = "Europe/Oslo"
    BADGE_PERSISTENCE_ENABLED: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"



@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
