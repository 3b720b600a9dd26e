"""
Centralized application configuration implementing the 12-Factor App methodology.
Values are read from environment variables or a local .env file.
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Immutable configuration schema backed by environment variables."""

    APP_NAME: str = "Simu API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Only used when CACHE_BACKEND is "database"
    DATABASE_URL: str = "sqlite:///./simu.db"

    # "memory" (process-local) or "database" (SQLAlchemy table)
    CACHE_BACKEND: str = "memory"

    CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()
