"""
Loads one registry archive into the canonical store.

Each member table is streamed exactly once; parsed rows are buffered and
staged in batches. When every table is staged the six merges run in
dependency order, so aircraft resolve the models and engines of the same
run and owner links resolve both aircraft and owners. Owners are promoted only
when a staged link ties them to a registered aircraft.
"""

from pathlib import Path
from typing import Callable, Iterable, Iterator

from faa_registry.utils import logger
from faa_registry.ingestion.components.archive import (
    ACFTREF,
    ENGINE,
    MASTER,
    OWNER,
    RegistryArchive,
)
from faa_registry.ingestion.components.normalizer import (
    parse_aircraft_row,
    parse_engine_row,
    parse_model_row,
    parse_owner_row,
)
from faa_registry.ingestion.db.models import IngestionStats
from faa_registry.ingestion.db.rows import MERGE_ORDER, EntityKind, ManufacturerRow, StagedRow
from faa_registry.ingestion.db.staging import StagingRepository

# Rows held in memory per kind before a staging call
STAGE_BUFFER_ROWS = 5000

PhaseListener = Callable[[str], None]


class _StageBuffer:
    """Accumulates rows of one kind and stages them when full."""

    def __init__(self, staging: StagingRepository, kind: EntityKind, ingestion_id: int):
        self.staging = staging
        self.kind = kind
        self.ingestion_id = ingestion_id
        self.rows: list[StagedRow] = []
        self.staged = 0

    def add(self, row: StagedRow) -> None:
        self.rows.append(row)
        if len(self.rows) >= STAGE_BUFFER_ROWS:
            self.flush()

    def flush(self) -> None:
        if self.rows:
            self.staged += self.staging.stage(self.kind, self.ingestion_id, self.rows)
            self.rows = []


class ArchiveLoader:
    """
    Stages and merges the four registry tables of an archive.

    ``phase_listener`` is called with "staging" and "merging" as the load
    moves between the two steps.
    """

    def __init__(self, staging: StagingRepository, phase_listener: PhaseListener | None = None):
        self.staging = staging
        self.phase_listener = phase_listener

    def _phase(self, name: str) -> None:
        if self.phase_listener is not None:
            self.phase_listener(name)

    def load(self, archive_path: str | Path, ingestion_id: int) -> IngestionStats:
        """
        Load the archive at ``archive_path`` under ``ingestion_id``.

        Raises:
            ArchiveFormatError: If the file is not a readable archive
            MissingTableError: If a required table is absent (before any staging)
            StagingError, MergeError: On database failures
        """
        with RegistryArchive.open(archive_path) as archive:
            tables = archive.validate()

            self._phase("staging")
            self.staging.prepare(ingestion_id)

            self._stage_reference(archive.stream_table(tables[ACFTREF]), ingestion_id)
            self._stage_rows(
                EntityKind.ENGINE,
                ingestion_id,
                (parse_engine_row(record) for record in archive.stream_table(tables[ENGINE])),
            )
            self._stage_rows(
                EntityKind.AIRCRAFT,
                ingestion_id,
                (parse_aircraft_row(record) for record in archive.stream_table(tables[MASTER])),
            )
            self._stage_owners(archive.stream_table(tables[OWNER]), ingestion_id)

        self._phase("merging")
        merged = {kind: self.staging.merge(kind, ingestion_id) for kind in MERGE_ORDER}

        stats = IngestionStats(
            manufacturers=merged[EntityKind.MANUFACTURER],
            aircraft_models=merged[EntityKind.AIRCRAFT_MODEL],
            engines=merged[EntityKind.ENGINE],
            aircraft=merged[EntityKind.AIRCRAFT],
            owners=merged[EntityKind.OWNER],
            owner_links=merged[EntityKind.AIRCRAFT_OWNER],
        )
        logger.info(f"Merged ingestion {ingestion_id}: {stats.to_dict()}")
        return stats

    def _stage_rows(
        self,
        kind: EntityKind,
        ingestion_id: int,
        rows: Iterable[StagedRow | None],
    ) -> int:
        buffer = _StageBuffer(self.staging, kind, ingestion_id)
        for row in rows:
            if row is not None:
                buffer.add(row)
        buffer.flush()

        logger.info(f"Staged {buffer.staged:,} {kind.value} rows")
        return buffer.staged

    def _stage_reference(self, records: Iterator[dict[str, str]], ingestion_id: int) -> None:
        """ACFTREF yields both aircraft models and their manufacturers."""
        manufacturer_names: set[str] = set()

        def models():
            for record in records:
                model = parse_model_row(record)
                if model is not None:
                    manufacturer_names.add(model.manufacturer_name)
                    yield model

        self._stage_rows(EntityKind.AIRCRAFT_MODEL, ingestion_id, models())
        self._stage_rows(
            EntityKind.MANUFACTURER,
            ingestion_id,
            (ManufacturerRow(name=name) for name in sorted(manufacturer_names)),
        )

    def _stage_owners(self, records: Iterator[dict[str, str]], ingestion_id: int) -> None:
        """OWNER yields owners and the aircraft-owner links in one pass."""
        owners = _StageBuffer(self.staging, EntityKind.OWNER, ingestion_id)
        links = _StageBuffer(self.staging, EntityKind.AIRCRAFT_OWNER, ingestion_id)

        for record in records:
            parsed = parse_owner_row(record)
            if parsed is None:
                continue
            owner, link = parsed
            owners.add(owner)
            links.add(link)

        owners.flush()
        links.flush()
        logger.info(f"Staged {owners.staged:,} owner rows and {links.staged:,} owner links")


__all__ = ["ArchiveLoader", "STAGE_BUFFER_ROWS"]
