"""Application configuration settings."""
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import List, Optional

# Get the server directory path
SERVER_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase (document + realtime store)
    SUPABASE_URL: str
    SUPABASE_KEY: str
    SUPABASE_TIMEOUT_SECONDS: int = 10

    # Authentication
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    PASSWORD_RESET_EXPIRE_MINUTES: int = 30

    # Cloudinary (unsigned uploads only)
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_UPLOAD_PRESET: str = "findr_unsigned"
    CLOUDINARY_TIMEOUT_SECONDS: float = 30.0

    # Listings
    HOME_FEED_LIMIT: int = 10

    # Chat
    CHAT_POLL_INTERVAL_SECONDS: float = 2.0
    # When False, errors on live chat feeds without an error handler are
    # only logged at DEBUG level.
    SURFACE_SUBSCRIPTION_ERRORS: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # CORS: explicit list of allowed origins
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]

    @model_validator(mode="after")
    def _validate_intervals(self) -> "Settings":
        if self.CHAT_POLL_INTERVAL_SECONDS <= 0:
            raise ValueError("CHAT_POLL_INTERVAL_SECONDS must be positive")
        if self.HOME_FEED_LIMIT < 1:
            raise ValueError("HOME_FEED_LIMIT must be at least 1")
        return self

    class Config:
        env_file = str(SERVER_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
