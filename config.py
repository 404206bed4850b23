"""
Application settings, read from the environment and an optional .env file.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration for the reading list API."""

    # API
    api_title: str = "Reading List API"
    api_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./books.db"
    query_timeout: float = 3.0  # seconds, applied to every statement

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


settings = Settings()
