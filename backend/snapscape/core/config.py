"""
Application configuration management
Loads environment variables and provides type-safe configuration access
Supports both local .env files and cloud environment variables
"""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


def get_env_file() -> str | None:
    """
    Determine which .env file to use (if any).
    Priority: .env.production > .env > None (cloud env vars only)
    """
    if Path(".env.production").exists():
        return ".env.production"
    elif Path(".env").exists():
        return ".env"
    return None


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    This configuration works in multiple contexts:
    - Local development: Reads from .env or .env.production
    - Cloud deployment: Reads from injected environment variables
    - Docker: Reads from environment variables passed to container
    """

    model_config = SettingsConfigDict(
        env_file=get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./snapscape.db"

    # Redis (optional, used for the leaderboard cache and rate limiting)
    REDIS_URL: str | None = None

    # JWT Configuration - Support both JWT_SECRET and JWT_SECRET_KEY for backwards compatibility
    JWT_SECRET: str | None = None
    JWT_SECRET_KEY: str | None = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = 24
    PASSWORD_RESET_EXPIRE_HOURS: int = 1

    @property
    def jwt_secret(self) -> str:
        """Get JWT secret from either JWT_SECRET or JWT_SECRET_KEY"""
        secret = self.JWT_SECRET or self.JWT_SECRET_KEY
        if not secret:
            raise ValueError("Either JWT_SECRET or JWT_SECRET_KEY must be set")
        return secret

    # Email (emails are skipped and logged when SMTP_HOST is unset)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM: str | None = None
    SMTP_START_TLS: bool = True

    # Cloudinary image store
    CLOUDINARY_CLOUD_NAME: str | None = None
    CLOUDINARY_API_KEY: str | None = None
    CLOUDINARY_API_SECRET: str | None = None
    CLOUDINARY_UPLOAD_FOLDER: str = "snapscape"
    MAX_UPLOAD_SIZE_MB: int = 25

    # reCAPTCHA (verification is skipped when no secret is configured)
    RECAPTCHA_SECRET_KEY: str | None = None
    RECAPTCHA_MIN_SCORE: float = 0.5

    # Shared secret for the scheduler hitting /cron endpoints
    CRON_SECRET: str | None = None

    # Application URLs
    FRONTEND_URL: str = "http://localhost:3000"
    BACKEND_URL: str | None = None

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "production"
    DEBUG: bool = False

    # CORS
    @property
    def CORS_ORIGINS(self) -> list[str]:
        """Get allowed CORS origins"""
        origins = [self.FRONTEND_URL]
        if self.ENVIRONMENT == "development":
            origins.extend([
                "http://localhost:3000",
                "http://localhost:8000"
            ])
        return origins

    # Rate Limiting
    RATE_LIMIT_SIGNUP: str = "5/hour"
    RATE_LIMIT_LOGIN: str = "10/hour"
    RATE_LIMIT_RATING: str = "120/minute"
    RATE_LIMIT_CONTACT: str = "5/hour"

    # Leaderboard cache lifetime (seconds)
    LEADERBOARD_CACHE_TTL: int = 300


# Global settings instance
settings = Settings()
