"""Configuration settings for Tasktrack."""

import os
from functools import lru_cache

from dotenv import load_dotenv

from app.errors import ConfigurationError

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        # Database
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./tasktrack.db")

        # JWT
        self.ACCESS_TOKEN_SECRET: str = os.getenv("ACCESS_TOKEN_SECRET", "")
        self.REFRESH_TOKEN_SECRET: str = os.getenv("REFRESH_TOKEN_SECRET", "")
        self.JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
        self.REFRESH_TOKEN_EXPIRE_DAYS: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

        # Upload
        self.UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
        self.MAX_PROFILE_IMAGE_MB: int = int(os.getenv("MAX_PROFILE_IMAGE_MB", "5"))

        # Application
        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")
        self.APP_ENV: str = os.getenv("APP_ENV", "development")
        self.DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    def validate(self) -> None:
        """Raise ConfigurationError if token settings are unusable."""
        errors = []
        if not self.ACCESS_TOKEN_SECRET:
            errors.append("ACCESS_TOKEN_SECRET is not set")
        if not self.REFRESH_TOKEN_SECRET:
            errors.append("REFRESH_TOKEN_SECRET is not set")
        if self.ACCESS_TOKEN_EXPIRE_MINUTES <= 0:
            errors.append("ACCESS_TOKEN_EXPIRE_MINUTES must be positive")
        if self.REFRESH_TOKEN_EXPIRE_DAYS <= 0:
            errors.append("REFRESH_TOKEN_EXPIRE_DAYS must be positive")
        if errors:
            raise ConfigurationError("; ".join(errors))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
