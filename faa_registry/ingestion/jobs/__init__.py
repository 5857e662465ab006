"""Jobs module for the registry sync service."""

from faa_registry.ingestion.jobs.archive_loader import ArchiveLoader
from faa_registry.ingestion.jobs.refresh_service import (
    RefreshPhase,
    RefreshResult,
    RefreshService,
    RefreshTrigger,
    run_refresh,
)
from faa_registry.ingestion.jobs.scheduler import (
    RefreshScheduler,
    create_scheduler,
)

__all__ = [
    "ArchiveLoader",
    "RefreshPhase",
    "RefreshResult",
    "RefreshService",
    "RefreshTrigger",
    "run_refresh",
    "RefreshScheduler",
    "create_scheduler",
]
