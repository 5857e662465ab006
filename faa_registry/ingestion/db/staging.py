"""
Staging repository and merge engine.

Parsed rows are written to per-run staging tables with multi-row upserts,
then promoted into the canonical tables with one set-based statement per
entity kind. Statement text comes from the dialect strategy; parameters are
always bound, never interpolated.
"""

import threading
from typing import Iterable

from sqlalchemy import Integer, bindparam, delete, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from faa_registry.utils import logger
from faa_registry.utils.exceptions import MergeError, StagingError
from faa_registry.ingestion.db.dialects import MergePlan, SqlDialect, dialect_for_engine
from faa_registry.ingestion.db.rows import (
    NATURAL_KEYS,
    ROW_TYPES,
    EntityKind,
    StagedRow,
    natural_key,
)
from faa_registry.ingestion.db.schema import STAGING_TABLES, ensure_staging_schema


def _copy(*columns: str) -> tuple[tuple[str, str], ...]:
    return tuple((column, f"s.{column}") for column in columns)


_MODEL_ATTRIBUTES = (
    "type_aircraft",
    "type_engine",
    "category",
    "build_certification",
    "number_of_engines",
    "number_of_seats",
    "weight_class",
    "cruise_speed",
)

_ENGINE_ATTRIBUTES = ("manufacturer", "model", "type", "horsepower", "thrust")

_AIRCRAFT_ATTRIBUTES = (
    "serial_number",
    "year_manufactured",
    "registrant_type",
    "certification",
    "aircraft_type",
    "engine_type",
    "status_code",
    "mode_s_code",
    "mode_s_code_hex",
    "fractional_ownership",
    "airworthiness_class",
    "expiration_date",
    "last_activity_date",
    "certification_issue_date",
    "kit_manufacturer",
    "kit_model",
    "status_code_change_date",
)

_OWNER_ATTRIBUTES = (
    "name",
    "address_line1",
    "address_line2",
    "city",
    "state",
    "postal_code",
    "country",
    "region",
    "county",
)

MERGE_PLANS: dict[EntityKind, MergePlan] = {
    EntityKind.MANUFACTURER: MergePlan(
        target="manufacturers",
        key_columns=("name",),
        columns=_copy("name"),
        from_clause="staging_manufacturers s",
        update_columns=(),
    ),
    EntityKind.AIRCRAFT_MODEL: MergePlan(
        target="aircraft_models",
        key_columns=("code",),
        columns=(
            ("code", "s.code"),
            ("manufacturer_id", "m.id"),
            ("model_name", "s.model_name"),
            *_copy(*_MODEL_ATTRIBUTES),
        ),
        from_clause="staging_aircraft_models s JOIN manufacturers m ON m.name = s.manufacturer_name",
        update_columns=("manufacturer_id", "model_name", *_MODEL_ATTRIBUTES),
    ),
    EntityKind.ENGINE: MergePlan(
        target="engines",
        key_columns=("code",),
        columns=_copy("code", *_ENGINE_ATTRIBUTES),
        from_clause="staging_engines s",
        update_columns=_ENGINE_ATTRIBUTES,
    ),
    EntityKind.AIRCRAFT: MergePlan(
        target="aircraft",
        key_columns=("tail_number",),
        columns=(
            ("tail_number", "s.tail_number"),
            ("model_id", "am.id"),
            ("engine_id", "e.id"),
            ("engine_code", "s.engine_code"),
            *_copy(*_AIRCRAFT_ATTRIBUTES),
            ("dataset_ingestion_id", "s.ingestion_id"),
        ),
        from_clause=(
            "staging_aircraft s "
            "LEFT JOIN aircraft_models am ON am.code = s.model_code "
            "LEFT JOIN engines e ON e.code = s.engine_code"
        ),
        update_columns=(
            "model_id",
            "engine_id",
            "engine_code",
            *_AIRCRAFT_ATTRIBUTES,
            "dataset_ingestion_id",
        ),
    ),
    EntityKind.OWNER: MergePlan(
        target="owners",
        key_columns=("external_key",),
        columns=_copy("external_key", *_OWNER_ATTRIBUTES),
        from_clause="staging_owners s",
        update_columns=_OWNER_ATTRIBUTES,
        # Owners of tail numbers with no registered aircraft are never promoted
        condition=(
            "EXISTS (SELECT 1 FROM staging_aircraft_owners l "
            "JOIN aircraft a ON a.tail_number = l.tail_number "
            "WHERE l.ingestion_id = s.ingestion_id "
            "AND l.owner_external_key = s.external_key)"
        ),
    ),
    EntityKind.AIRCRAFT_OWNER: MergePlan(
        target="aircraft_owners",
        key_columns=("aircraft_id", "owner_id"),
        columns=(
            ("aircraft_id", "a.id"),
            ("owner_id", "o.id"),
            ("ownership_type", "s.ownership_type"),
            ("last_action_date", "s.last_action_date"),
        ),
        from_clause=(
            "staging_aircraft_owners s "
            "JOIN aircraft a ON a.tail_number = s.tail_number "
            "JOIN owners o ON o.external_key = s.owner_external_key"
        ),
        update_columns=("ownership_type", "last_action_date"),
    ),
}


class StagingRepository:
    """
    Writes parsed rows to the staging tables and merges them forward.

    The staging schema is created at most once per repository instance;
    concurrent ``prepare`` calls wait on the same lock.
    """

    def __init__(self, engine: Engine, dialect: SqlDialect | None = None):
        self.engine = engine
        self.dialect = dialect or dialect_for_engine(engine)
        self._schema_lock = threading.Lock()
        self._schema_ready = False
        self._statements: dict[tuple[EntityKind, int], TextClause] = {}

    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        with self._schema_lock:
            if self._schema_ready:
                return
            ensure_staging_schema(self.engine)
            self._schema_ready = True
            logger.debug("Staging schema ensured")

    def prepare(self, ingestion_id: int) -> None:
        """Ensure the staging tables exist and hold nothing for this run."""
        self.cleanup(ingestion_id)

    def batch_size(self, kind: EntityKind) -> int:
        """Rows per staging statement for this kind on this store."""
        return self.dialect.rows_per_statement(len(ROW_TYPES[kind]._fields))

    def stage(self, kind: EntityKind, ingestion_id: int, rows: Iterable[StagedRow]) -> int:
        """
        Upsert rows into the staging table of ``kind``.

        Rows sharing a natural key collapse to the last one seen. Returns the
        number of distinct rows written.
        """
        unique: dict[tuple, StagedRow] = {}
        for row in rows:
            unique[natural_key(kind, row)] = row
        if not unique:
            return 0

        batch = list(unique.values())
        columns = ROW_TYPES[kind]._fields
        size = self.batch_size(kind)

        try:
            with self.engine.begin() as conn:
                for start in range(0, len(batch), size):
                    chunk = batch[start:start + size]
                    params: dict[str, object] = {"ingestion_id": ingestion_id}
                    for index, row in enumerate(chunk):
                        for column, value in zip(columns, row):
                            params[f"{column}_{index}"] = value
                    conn.execute(self._stage_statement(kind, len(chunk)), params)
        except SQLAlchemyError as e:
            raise StagingError(
                f"Failed to stage {kind.value} rows for ingestion {ingestion_id}: {e}",
                kind=kind.value,
                ingestion_id=ingestion_id,
            ) from e

        return len(batch)

    def _stage_statement(self, kind: EntityKind, row_count: int) -> TextClause:
        key = (kind, row_count)
        statement = self._statements.get(key)
        if statement is not None:
            return statement

        table = STAGING_TABLES[kind]
        columns = ROW_TYPES[kind]._fields
        sql = self.dialect.stage_sql(table.name, NATURAL_KEYS[kind], columns, row_count)

        binds = [bindparam("ingestion_id", type_=Integer)]
        binds.extend(
            bindparam(f"{column}_{index}", type_=table.c[column].type)
            for index in range(row_count)
            for column in columns
        )
        statement = text(sql).bindparams(*binds)
        self._statements[key] = statement
        return statement

    def merge(self, kind: EntityKind, ingestion_id: int) -> int:
        """
        Promote the run's staged rows of ``kind`` into the canonical table.

        Returns the number of canonical rows inserted or updated.
        """
        sql = self.dialect.merge_sql(MERGE_PLANS[kind])
        statement = text(sql).bindparams(bindparam("ingestion_id", type_=Integer))

        try:
            with self.engine.begin() as conn:
                result = conn.execute(statement, {"ingestion_id": ingestion_id})
                affected = result.rowcount
        except SQLAlchemyError as e:
            raise MergeError(
                f"Failed to merge {kind.value} rows for ingestion {ingestion_id}: {e}",
                kind=kind.value,
                ingestion_id=ingestion_id,
            ) from e

        affected = max(affected or 0, 0)
        logger.debug(f"Merged {affected:,} {kind.value} rows (ingestion {ingestion_id})")
        return affected

    def cleanup(self, ingestion_id: int) -> None:
        """Delete the run's staged rows of every kind."""
        try:
            self._ensure_schema()
            with self.engine.begin() as conn:
                for table in STAGING_TABLES.values():
                    conn.execute(delete(table).where(table.c.ingestion_id == ingestion_id))
        except SQLAlchemyError as e:
            raise StagingError(
                f"Failed to clear staged rows for ingestion {ingestion_id}: {e}",
                ingestion_id=ingestion_id,
            ) from e

    def count(self, kind: EntityKind, ingestion_id: int) -> int:
        table = STAGING_TABLES[kind]
        query = select(func.count()).select_from(table).where(table.c.ingestion_id == ingestion_id)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar_one()


__all__ = ["MERGE_PLANS", "StagingRepository"]
