"""
Application configuration using Pydantic Settings.

Values come from environment variables first, then an optional .env file,
then the defaults below. The .env file is gitignored; .env.example lists
every variable with safe placeholder values.

ENCRYPTION_KEY is validated by the Key Provider (cardvault.crypto.keys), not
here: the provider turns a missing or malformed value into a
ConfigurationError, and the application lifespan calls it at startup so the
service never serves traffic without a key.

Usage:
    from cardvault.config import settings
    print(settings.APP_NAME)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Card Vault API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    Required at startup (validated by the Key Provider):
      - ENCRYPTION_KEY: 64 hex characters (256-bit AES-GCM key)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Card Vault API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/cardvault.db"

    # --- Authentication ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Card Encryption ---
    # Generate with: python -m cardvault.crypto.keys
    ENCRYPTION_KEY: str | None = None

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
