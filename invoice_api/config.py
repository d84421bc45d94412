"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. This pattern keeps secrets out of source code — the .env file is
gitignored, and .env.example provides a safe template for developers.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from invoice_api.config import settings
    print(settings.SECRET_KEY)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Invoice API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens. The process refuses to start
        without it — a missing signing secret is a deployment error, not
        something to retry.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Invoice API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local use; point at MySQL/PostgreSQL with an async driver in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/invoices.db"

    # --- Authentication ---
    # REQUIRED: no default, the operator must set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- Passwords ---
    PASSWORD_MIN_LENGTH: int = 6
    # Argon2 iterations; raise it if login latency allows
    ARGON2_TIME_COST: int = 3

    # --- Rate limiting ---
    # Limit strings use the `limits` notation understood by slowapi
    RATE_LIMIT_ENABLED: bool = True
    AUTH_RATE_LIMIT: str = "5 per 15 minutes"
    DEFAULT_RATE_LIMIT: str = "100 per 15 minutes"

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["*"]

    @field_validator("SECRET_KEY")
    @classmethod
    def secret_key_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("SECRET_KEY must not be empty")
        return value


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
