"""
Ingestion run records.

Each refresh creates one ``dataset_ingestions`` row in RUNNING state and
moves it exactly once to COMPLETED or FAILED. Rows are never deleted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.exc import SQLAlchemyError

from faa_registry.utils import logger
from faa_registry.utils.exceptions import IngestionRecordError
from faa_registry.ingestion.db.schema import (
    ERROR_MESSAGE_LENGTH,
    dataset_ingestions,
    ensure_schema,
)


class IngestionStatus(str, Enum):
    """Status of an ingestion run."""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class IngestionTrigger(str, Enum):
    """What started an ingestion run."""
    MANUAL = "MANUAL"
    SCHEDULED = "SCHEDULED"


class IngestionStats(NamedTuple):
    """Canonical rows inserted or updated per entity kind."""
    manufacturers: int = 0
    aircraft_models: int = 0
    engines: int = 0
    aircraft: int = 0
    owners: int = 0
    owner_links: int = 0

    def to_dict(self) -> dict:
        return self._asdict()


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class IngestionRecord(NamedTuple):
    """Record of a single ingestion run."""
    id: int
    source_url: str
    downloaded_at: datetime
    data_version: str | None
    trigger: IngestionTrigger
    status: IngestionStatus
    started_at: datetime
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    stats: IngestionStats | None = None
    error_message: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "source_url": self.source_url,
            "downloaded_at": _iso(self.downloaded_at),
            "data_version": self.data_version,
            "trigger": self.trigger.value,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "failed_at": _iso(self.failed_at),
            "stats": self.stats.to_dict() if self.stats else None,
            "error_message": self.error_message,
        }


class IngestionStatusView(NamedTuple):
    """Read model of the latest ingestion run, as served to API clients."""
    id: int | None
    status: str
    trigger: str | None = None
    downloaded_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    data_version: str | None = None
    totals: IngestionStats | None = None
    error_message: str | None = None

    def to_dict(self) -> dict:
        totals = None
        if self.totals is not None:
            totals = {
                "manufacturers": self.totals.manufacturers,
                "models": self.totals.aircraft_models,
                "engines": self.totals.engines,
                "aircraft": self.totals.aircraft,
                "owners": self.totals.owners,
                "owner_links": self.totals.owner_links,
            }
        return {
            "id": self.id,
            "status": self.status,
            "trigger": self.trigger,
            "downloaded_at": _iso(self.downloaded_at),
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "failed_at": _iso(self.failed_at),
            "data_version": self.data_version,
            "totals": totals,
            "error_message": self.error_message,
        }


NOT_AVAILABLE = IngestionStatusView(id=None, status="NOT_AVAILABLE")


def _stats_from_row(row: RowMapping) -> IngestionStats | None:
    values = (
        row["total_manufacturers"],
        row["total_models"],
        row["total_engines"],
        row["total_aircraft"],
        row["total_owners"],
        row["total_owner_links"],
    )
    if all(value is None for value in values):
        return None
    return IngestionStats(*(value or 0 for value in values))


def _row_to_record(row: RowMapping) -> IngestionRecord:
    """Convert database row to IngestionRecord."""
    return IngestionRecord(
        id=row["id"],
        source_url=row["source_url"],
        downloaded_at=row["downloaded_at"],
        data_version=row["data_version"],
        trigger=IngestionTrigger(row["trigger"]),
        status=IngestionStatus(row["status"]),
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        failed_at=row["failed_at"],
        stats=_stats_from_row(row),
        error_message=row["error_message"],
    )


class IngestionRepository:
    """
    Repository for ingestion run records.

    Tracks each run with:
    - Source URL, download time and upstream data version
    - Trigger (manual or scheduled) and lifecycle timestamps
    - Per-entity totals on success, error message on failure
    """

    def __init__(self, engine: Engine):
        """
        Initialize the repository.

        Args:
            engine: SQLAlchemy engine of the registry store
        """
        self.engine = engine
        ensure_schema(engine)

    def start(
        self,
        source_url: str,
        downloaded_at: datetime,
        data_version: str | None,
        trigger: IngestionTrigger,
    ) -> IngestionRecord:
        """
        Create a RUNNING record for a new run.

        Returns:
            Created IngestionRecord with assigned ID
        """
        started_at = datetime.now(timezone.utc)
        values = {
            "source_url": source_url,
            "downloaded_at": downloaded_at,
            "data_version": data_version,
            "trigger": trigger.value,
            "status": IngestionStatus.RUNNING.value,
            "started_at": started_at,
        }

        try:
            with self.engine.begin() as conn:
                result = conn.execute(insert(dataset_ingestions).values(**values))
                record_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            raise IngestionRecordError(f"Failed to create ingestion record: {e}") from e

        logger.debug(f"Created ingestion record with ID: {record_id}")
        return IngestionRecord(
            id=record_id,
            source_url=source_url,
            downloaded_at=downloaded_at,
            data_version=data_version,
            trigger=trigger,
            status=IngestionStatus.RUNNING,
            started_at=started_at,
        )

    def complete(self, record_id: int, stats: IngestionStats) -> None:
        """Mark a run COMPLETED with its totals; any error message is cleared."""
        self._update(
            record_id,
            status=IngestionStatus.COMPLETED.value,
            completed_at=datetime.now(timezone.utc),
            failed_at=None,
            total_manufacturers=stats.manufacturers,
            total_models=stats.aircraft_models,
            total_engines=stats.engines,
            total_aircraft=stats.aircraft,
            total_owners=stats.owners,
            total_owner_links=stats.owner_links,
            error_message=None,
        )
        logger.debug(f"Ingestion record {record_id} marked COMPLETED")

    def fail(self, record_id: int, error_message: str) -> None:
        """Mark a run FAILED; the message is truncated to the column width."""
        self._update(
            record_id,
            status=IngestionStatus.FAILED.value,
            failed_at=datetime.now(timezone.utc),
            completed_at=None,
            error_message=error_message[:ERROR_MESSAGE_LENGTH],
        )
        logger.debug(f"Ingestion record {record_id} marked FAILED")

    def _update(self, record_id: int, **values) -> None:
        statement = (
            update(dataset_ingestions)
            .where(dataset_ingestions.c.id == record_id)
            .values(**values)
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(statement)
        except SQLAlchemyError as e:
            raise IngestionRecordError(f"Failed to update ingestion record {record_id}: {e}") from e

        if result.rowcount == 0:
            raise IngestionRecordError(f"Ingestion record {record_id} not found")

    def get_by_id(self, record_id: int) -> IngestionRecord | None:
        """Get a record by ID."""
        query = select(dataset_ingestions).where(dataset_ingestions.c.id == record_id)
        with self.engine.connect() as conn:
            row = conn.execute(query).mappings().first()

        return _row_to_record(row) if row else None

    def get_latest(self, limit: int = 10) -> list[IngestionRecord]:
        """Get the most recently started records."""
        query = (
            select(dataset_ingestions)
            .order_by(dataset_ingestions.c.started_at.desc(), dataset_ingestions.c.id.desc())
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).mappings().all()

        return [_row_to_record(row) for row in rows]

    def get_latest_status(self) -> IngestionStatusView:
        """Status view of the most recently started run, or NOT_AVAILABLE."""
        latest = self.get_latest(limit=1)
        if not latest:
            return NOT_AVAILABLE

        record = latest[0]
        return IngestionStatusView(
            id=record.id,
            status=record.status.value,
            trigger=record.trigger.value,
            downloaded_at=record.downloaded_at,
            started_at=record.started_at,
            completed_at=record.completed_at,
            failed_at=record.failed_at,
            data_version=record.data_version,
            totals=record.stats,
            error_message=record.error_message,
        )


def create_repository(engine: Engine) -> IngestionRepository:
    """Create a new repository bound to ``engine``."""
    return IngestionRepository(engine)


__all__ = [
    "IngestionStatus",
    "IngestionTrigger",
    "IngestionStats",
    "IngestionRecord",
    "IngestionStatusView",
    "NOT_AVAILABLE",
    "IngestionRepository",
    "create_repository",
]
