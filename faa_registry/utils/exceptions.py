"""
Custom exceptions for the registry sync service.

Provides a hierarchy of exceptions for different error scenarios:
- Download errors (dataset archive fetch)
- Archive errors (missing or unreadable member tables)
- Database errors (staging, merge, ingestion records)
- Concurrency errors (refresh already running)
"""


class RegistryServiceError(Exception):
    """Base exception for all registry service errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


# =============================================================================
# Download Exceptions
# =============================================================================

class DownloadError(RegistryServiceError):
    """Base exception for dataset download errors."""
    pass


class DatasetDownloadError(DownloadError):
    """The dataset URL answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class DownloadConnectionError(DownloadError):
    """Error when unable to connect to the dataset host."""
    pass


class DownloadTimeoutError(DownloadError):
    """Error when the dataset download times out."""

    def __init__(self, message: str, timeout: float | None = None):
        self.timeout = timeout
        super().__init__(message)


# =============================================================================
# Archive Exceptions
# =============================================================================

class ArchiveError(RegistryServiceError):
    """Base exception for archive-related errors."""
    pass


class MissingTableError(ArchiveError):
    """A required member table is not present in the archive."""

    def __init__(self, token: str, archive_path: str | None = None):
        self.token = token
        self.archive_path = archive_path
        super().__init__(f"{token} file is missing from archive")


class ArchiveFormatError(ArchiveError):
    """The downloaded file is not a readable archive."""
    pass


# =============================================================================
# Database Exceptions
# =============================================================================

class DatabaseError(RegistryServiceError):
    """Base exception for database-related errors."""
    pass


class StagingError(DatabaseError):
    """Error when writing or clearing staged rows."""

    def __init__(self, message: str, kind: str | None = None, ingestion_id: int | None = None):
        self.kind = kind
        self.ingestion_id = ingestion_id
        super().__init__(message)


class MergeError(DatabaseError):
    """Error when promoting staged rows into canonical tables."""

    def __init__(self, message: str, kind: str | None = None, ingestion_id: int | None = None):
        self.kind = kind
        self.ingestion_id = ingestion_id
        super().__init__(message)


class IngestionRecordError(DatabaseError):
    """Error when creating or updating ingestion records."""
    pass


# =============================================================================
# Concurrency Exceptions
# =============================================================================

class RefreshInProgressError(RegistryServiceError):
    """A refresh was requested while another one is still running."""

    def __init__(self, message: str = "FAA dataset refresh is already in progress"):
        super().__init__(message)


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(RegistryServiceError):
    """Error with service configuration."""
    pass


class UnsupportedDialectError(ConfigurationError):
    """The configured store speaks a SQL dialect we cannot emit."""

    def __init__(self, dialect_name: str):
        self.dialect_name = dialect_name
        super().__init__(f"Unsupported SQL dialect: {dialect_name}")


# Export all exceptions
__all__ = [
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
