"""Components module for the registry sync service."""

from faa_registry.ingestion.components.client import DatasetClient, DownloadResult, create_client
from faa_registry.ingestion.components.archive import (
    ArchiveTable,
    RegistryArchive,
    REQUIRED_TABLES,
)

__all__ = [
    "DatasetClient",
    "DownloadResult",
    "create_client",
    "ArchiveTable",
    "RegistryArchive",
    "REQUIRED_TABLES",
]
