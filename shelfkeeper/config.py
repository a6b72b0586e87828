"""
Application settings for Shelfkeeper.

Values come from the environment; a ``.env`` file in the working directory
is loaded first when present.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv
from loguru import logger


DEFAULT_JWT_SECRET = "shelfkeeper-development-secret-change-me"


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./shelfkeeper.db"
    database_echo: bool = False

    # Tokens
    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "shelfkeeper"
    jwt_audience: str = "shelfkeeper-clients"
    access_token_expire_minutes: int = 1440

    # Lockout
    lockout_max_attempts: int = 5
    lockout_minutes: int = 15

    # File uploads
    max_upload_size_mb: int = 10

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        load_dotenv()

        settings = cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", cls.jwt_secret_key),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            jwt_issuer=os.getenv("JWT_ISSUER", cls.jwt_issuer),
            jwt_audience=os.getenv("JWT_AUDIENCE", cls.jwt_audience),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes)),
            lockout_max_attempts=int(os.getenv("LOCKOUT_MAX_ATTEMPTS", cls.lockout_max_attempts)),
            lockout_minutes=int(os.getenv("LOCKOUT_MINUTES", cls.lockout_minutes)),
            max_upload_size_mb=int(os.getenv("MAX_UPLOAD_SIZE_MB", cls.max_upload_size_mb)),
            environment=os.getenv("SHELFKEEPER_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
        )

        if settings.jwt_secret_key == DEFAULT_JWT_SECRET and settings.environment != "development":
            logger.warning("JWT_SECRET_KEY is not set; using the development signing key")

        return settings


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()
