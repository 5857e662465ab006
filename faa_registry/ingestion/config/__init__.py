"""Configuration module for the registry sync service."""

from faa_registry.ingestion.config.config import (
    Settings,
    DatasetSettings,
    DatabaseSettings,
    SchedulerSettings,
    LoggingSettings,
    FAA_RELEASABLE_AIRCRAFT_URL,
    SUPPORTED_DIALECTS,
    get_settings,
    settings,
)

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
