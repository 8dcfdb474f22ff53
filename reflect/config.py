"""
Application configuration using environment variables.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Reflect"
    debug: bool = False
    environment: str = "development"

    # Database
    database_url: str = "sqlite+aiosqlite:///./reflect.db"
    sqlite_foreign_keys: bool = True
    echo_sql: bool = False

    # Memories
    daily_memory_target: int = 5
    daily_memory_max_random: int = 2
    throwback_min_age_months: int = 6

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    class Config:
        env_prefix = "REFLECT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
