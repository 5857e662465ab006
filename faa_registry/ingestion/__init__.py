"""
Ingestion service for the FAA Releasable Aircraft registry.

This module provides:
- HTTP client for downloading the registry archive
- Archive reader and row normalizer
- Staging repository and dialect-specific merge engine
- Ingestion run records
- Refresh service with single-flight control and a periodic scheduler

Quick start:
    from faa_registry.ingestion import RefreshService, create_store_engine
    service = RefreshService(create_store_engine())
    result = service.run()  # Run a single manual refresh

Configuration (environment variables):
    FAA_DATASET_URL: Archive URL (default: FAA ReleasableAircraft.zip)
    DB_URL: SQLAlchemy URL of the registry store
    DB_DIALECT: Force mssql, postgresql or sqlite statements
    SCHEDULER_ENABLED / SCHEDULER_INTERVAL_MINUTES: Periodic refresh
"""

from faa_registry.ingestion.config import settings, get_settings
from faa_registry.ingestion.db import (
    IngestionStatus,
    IngestionTrigger,
    IngestionStats,
    IngestionRecord,
    IngestionStatusView,
    NOT_AVAILABLE,
    IngestionRepository,
    StagingRepository,
    create_repository,
    create_store_engine,
)
from faa_registry.ingestion.components import (
    DatasetClient,
    DownloadResult,
    RegistryArchive,
    create_client,
)
from faa_registry.ingestion.jobs import (
    ArchiveLoader,
    RefreshPhase,
    RefreshResult,
    RefreshService,
    RefreshTrigger,
    run_refresh,
    RefreshScheduler,
    create_scheduler,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "IngestionStatus",
    "IngestionTrigger",
    "IngestionStats",
    "IngestionRecord",
    "IngestionStatusView",
    "NOT_AVAILABLE",
    "IngestionRepository",
    "StagingRepository",
    "create_repository",
    "create_store_engine",
    # Components
    "DatasetClient",
    "DownloadResult",
    "RegistryArchive",
    "create_client",
    # Jobs
    "ArchiveLoader",
    "RefreshPhase",
    "RefreshResult",
    "RefreshService",
    "RefreshTrigger",
    "run_refresh",
    "RefreshScheduler",
    "create_scheduler",
]
