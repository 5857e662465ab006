"""
Utility modules for the registry sync service.

Provides:
    - logger: Loguru-based logging with stdout and file output
    - exceptions: Custom exception classes for error handling
    - best_effort: Non-propagating execution for cleanup steps
"""

from faa_registry.utils.logger import ingestion_context, logger, setup_logger
from faa_registry.utils.best_effort import (
    BestEffortFailure,
    CleanupReport,
    run_best_effort,
)
from faa_registry.utils.exceptions import (
    # Base
    RegistryServiceError,
    # Download
    DownloadError,
    DatasetDownloadError,
    DownloadConnectionError,
    DownloadTimeoutError,
    # Archive
    ArchiveError,
    MissingTableError,
    ArchiveFormatError,
    # Database
    DatabaseError,
    StagingError,
    MergeError,
    IngestionRecordError,
    # Concurrency
    RefreshInProgressError,
    # Configuration
    ConfigurationError,
    UnsupportedDialectError,
)

__all__ = [
    # Logger
    "ingestion_context",
    "logger",
    "setup_logger",
    # Best effort
    "BestEffortFailure",
    "CleanupReport",
    "run_best_effort",
    # Base
    "RegistryServiceError",
    # Download
    "DownloadError",
    "DatasetDownloadError",
    "DownloadConnectionError",
    "DownloadTimeoutError",
    # Archive
    "ArchiveError",
    "MissingTableError",
    "ArchiveFormatError",
    # Database
    "DatabaseError",
    "StagingError",
    "MergeError",
    "IngestionRecordError",
    # Concurrency
    "RefreshInProgressError",
    # Configuration
    "ConfigurationError",
    "UnsupportedDialectError",
]
