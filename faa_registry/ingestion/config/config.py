"""
Configuration management for the registry sync service.

Loads settings from environment variables and an optional .env file.
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before settings are initialized
load_dotenv()

FAA_RELEASABLE_AIRCRAFT_URL = "https://registry.faa.gov/database/ReleasableAircraft.zip"

SUPPORTED_DIALECTS = ("mssql", "postgresql", "sqlite")


class DatasetSettings(BaseSettings):
    """FAA dataset download configuration."""

    dataset_url: str = Field(default=FAA_RELEASABLE_AIRCRAFT_URL)
    # The full archive is a few hundred MB
    timeout_seconds: int = Field(default=600)
    user_agent: str = Field(default="faa-registry-sync/1.0")

    model_config = SettingsConfigDict(env_prefix="FAA_")


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    url: str = Field(default="sqlite:///data/registry.db")
    # Overrides the dialect detected from the URL (mssql, postgresql, sqlite)
    dialect: str | None = Field(default=None)
    echo: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="DB_")

    @field_validator("dialect")
    @classmethod
    def _check_dialect(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        normalized = value.strip().lower()
        if normalized not in SUPPORTED_DIALECTS:
            raise ValueError(f"DB_DIALECT must be one of {', '.join(SUPPORTED_DIALECTS)}")
        return normalized


class SchedulerSettings(BaseSettings):
    """Scheduler configuration."""

    enabled: bool = Field(default=False)
    # Refresh interval in minutes, floored at 1 by the scheduler
    interval_minutes: int = Field(default=60)
    # Run a refresh immediately on scheduler start
    run_on_start: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    log_dir: str = Field(default="logs")
    log_file: str = Field(default="registry.log")
    rotation: str = Field(default="10 MB")
    retention: str = Field(default="7 days")
    # JSON lines in the log file, for log shippers
    serialize: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main settings aggregating all configuration."""

    dataset: DatasetSettings = Field(default_factory=DatasetSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Environment name (development, staging, production)
    environment: str = Field(default="development")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: The application settings
    """
    return Settings()


# Export for easy access
settings = get_settings()

__all__ = [
    "Settings",
    "DatasetSettings",
    "DatabaseSettings",
    "SchedulerSettings",
    "LoggingSettings",
    "FAA_RELEASABLE_AIRCRAFT_URL",
    "SUPPORTED_DIALECTS",
    "get_settings",
    "settings",
]
