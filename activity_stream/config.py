"""
Application configuration using environment variables.
"""
import os
import secrets
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Activity Stream"
    debug: bool = False
    environment: str = "development"

    # Security
    secret_key: str = os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./activity_stream.db")

    # CORS
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Rate limiting
    post_rate_limit: str = "30/minute"

    # Links
    root_domain: str = "http://localhost:8000"
    activity_slug: str = "activity"
    members_slug: str = "members"

    # Mentions
    username_compatibility_mode: bool = False  # resolve @handles by login instead of nicename
    mention_types: List[str] = ["activity_update", "activity_comment"]

    # Feed
    feed_page_size: int = 20

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Validate secret key on startup
settings = get_settings()
if settings.environment == "production" and not os.getenv("SECRET_KEY"):
    raise ValueError(
        "SECRET_KEY must be set in production! "
        "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )
