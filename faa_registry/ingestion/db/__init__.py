"""Database layer for the registry sync service."""

from faa_registry.ingestion.db.rows import (
    EntityKind,
    MERGE_ORDER,
    ManufacturerRow,
    AircraftModelRow,
    EngineRow,
    AircraftRow,
    OwnerRow,
    AircraftOwnerRow,
)
from faa_registry.ingestion.db.schema import ensure_schema, metadata
from faa_registry.ingestion.db.dialects import SqlDialect, get_dialect, dialect_for_engine
from faa_registry.ingestion.db.staging import StagingRepository
from faa_registry.ingestion.db.models import (
    IngestionStatus,
    IngestionTrigger,
    IngestionStats,
    IngestionRecord,
    IngestionStatusView,
    NOT_AVAILABLE,
    IngestionRepository,
    create_repository,
)
from faa_registry.ingestion.db.engine import create_store_engine

__all__ = [
    "EntityKind",
    "MERGE_ORDER",
    "ManufacturerRow",
    "AircraftModelRow",
    "EngineRow",
    "AircraftRow",
    "OwnerRow",
    "AircraftOwnerRow",
    "ensure_schema",
    "metadata",
    "SqlDialect",
    "get_dialect",
    "dialect_for_engine",
    "StagingRepository",
    "IngestionStatus",
    "IngestionTrigger",
    "IngestionStats",
    "IngestionRecord",
    "IngestionStatusView",
    "NOT_AVAILABLE",
    "IngestionRepository",
    "create_repository",
    "create_store_engine",
]
