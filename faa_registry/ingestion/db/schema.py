"""
Table definitions for the registry store.

Three groups of tables:
- canonical entities read by the search API
- the ingestion run log (dataset_ingestions)
- per-run staging tables, created lazily by the staging repository
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.engine import Engine

from faa_registry.utils import logger
from faa_registry.ingestion.db.rows import EntityKind

metadata = MetaData()
staging_metadata = MetaData()

OWNER_KEY_LENGTH = 512
ERROR_MESSAGE_LENGTH = 1000


def _timestamps() -> list[Column]:
    return [
        Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
        Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    ]


# =============================================================================
# Ingestion runs
# =============================================================================

dataset_ingestions = Table(
    "dataset_ingestions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("source_url", String(1024), nullable=False),
    Column("downloaded_at", DateTime(timezone=True), nullable=False),
    Column("data_version", String(255)),
    Column("trigger", String(16), nullable=False),
    Column("status", String(16), nullable=False),
    Column("started_at", DateTime(timezone=True), nullable=False),
    Column("completed_at", DateTime(timezone=True)),
    Column("failed_at", DateTime(timezone=True)),
    Column("total_manufacturers", Integer),
    Column("total_models", Integer),
    Column("total_engines", Integer),
    Column("total_aircraft", Integer),
    Column("total_owners", Integer),
    Column("total_owner_links", Integer),
    Column("error_message", String(ERROR_MESSAGE_LENGTH)),
    Index("idx_dataset_ingestions_started_at", "started_at"),
)


# =============================================================================
# Canonical entities
# =============================================================================

manufacturers = Table(
    "manufacturers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    *_timestamps(),
)

aircraft_models = Table(
    "aircraft_models",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("code", String(32), nullable=False, unique=True),
    Column("manufacturer_id", Integer, ForeignKey("manufacturers.id"), nullable=False),
    Column("model_name", String(255), nullable=False),
    Column("type_aircraft", String(16)),
    Column("type_engine", String(16)),
    Column("category", String(16)),
    Column("build_certification", String(16)),
    Column("number_of_engines", Integer),
    Column("number_of_seats", Integer),
    Column("weight_class", String(32)),
    Column("cruise_speed", Integer),
    *_timestamps(),
)

engines = Table(
    "engines",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("code", String(32), nullable=False, unique=True),
    Column("manufacturer", String(255)),
    Column("model", String(255)),
    Column("type", String(16)),
    Column("horsepower", Integer),
    Column("thrust", Integer),
    *_timestamps(),
)

aircraft = Table(
    "aircraft",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tail_number", String(16), nullable=False, unique=True),
    Column("serial_number", String(64)),
    Column("model_id", Integer, ForeignKey("aircraft_models.id")),
    Column("engine_id", Integer, ForeignKey("engines.id")),
    Column("engine_code", String(32)),
    Column("year_manufactured", Integer),
    Column("registrant_type", String(16)),
    Column("certification", String(32)),
    Column("aircraft_type", String(16)),
    Column("engine_type", String(16)),
    Column("status_code", String(16)),
    Column("mode_s_code", String(16)),
    Column("mode_s_code_hex", String(16)),
    Column("fractional_ownership", Boolean),
    Column("airworthiness_class", String(16)),
    Column("expiration_date", Date),
    Column("last_activity_date", Date),
    Column("certification_issue_date", Date),
    Column("kit_manufacturer", String(255)),
    Column("kit_model", String(255)),
    Column("status_code_change_date", Date),
    Column("dataset_ingestion_id", Integer, ForeignKey("dataset_ingestions.id")),
    *_timestamps(),
    Index("idx_aircraft_status_code", "status_code"),
)

owners = Table(
    "owners",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_key", String(OWNER_KEY_LENGTH), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("address_line1", String(255)),
    Column("address_line2", String(255)),
    Column("city", String(128)),
    Column("state", String(16)),
    Column("postal_code", String(32)),
    Column("country", String(16)),
    Column("region", String(16)),
    Column("county", String(16)),
    *_timestamps(),
    Index("idx_owners_name", "name"),
)

aircraft_owners = Table(
    "aircraft_owners",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("aircraft_id", Integer, ForeignKey("aircraft.id"), nullable=False),
    Column("owner_id", Integer, ForeignKey("owners.id"), nullable=False),
    Column("ownership_type", String(16)),
    Column("last_action_date", Date),
    *_timestamps(),
    UniqueConstraint("aircraft_id", "owner_id", name="uq_aircraft_owners_pair"),
)


# =============================================================================
# Staging tables, keyed by (ingestion_id, natural key)
# =============================================================================

staging_manufacturers = Table(
    "staging_manufacturers",
    staging_metadata,
    Column("ingestion_id", Integer, nullable=False),
    Column("name", String(255), nullable=False),
    PrimaryKeyConstraint("ingestion_id", "name"),
)

staging_aircraft_models = Table(
    "staging_aircraft_models",
    staging_metadata,
    Column("ingestion_id", Integer, nullable=False),
    Column("code", String(32), nullable=False),
    Column("manufacturer_name", String(255), nullable=False),
    Column("model_name", String(255), nullable=False),
    Column("type_aircraft", String(16)),
    Column("type_engine", String(16)),
    Column("category", String(16)),
    Column("build_certification", String(16)),
    Column("number_of_engines", Integer),
    Column("number_of_seats", Integer),
    Column("weight_class", String(32)),
    Column("cruise_speed", Integer),
    PrimaryKeyConstraint("ingestion_id", "code"),
)

staging_engines = Table(
    "staging_engines",
    staging_metadata,
    Column("ingestion_id", Integer, nullable=False),
    Column("code", String(32), nullable=False),
    Column("manufacturer", String(255)),
    Column("model", String(255)),
    Column("type", String(16)),
    Column("horsepower", Integer),
    Column("thrust", Integer),
    PrimaryKeyConstraint("ingestion_id", "code"),
)

staging_aircraft = Table(
    "staging_aircraft",
    staging_metadata,
    Column("ingestion_id", Integer, nullable=False),
    Column("tail_number", String(16), nullable=False),
    Column("serial_number", String(64)),
    Column("model_code", String(32)),
    Column("engine_code", String(32)),
    Column("year_manufactured", Integer),
    Column("registrant_type", String(16)),
    Column("certification", String(32)),
    Column("aircraft_type", String(16)),
    Column("engine_type", String(16)),
    Column("status_code", String(16)),
    Column("mode_s_code", String(16)),
    Column("mode_s_code_hex", String(16)),
    Column("fractional_ownership", Boolean),
    Column("airworthiness_class", String(16)),
    Column("expiration_date", Date),
    Column("last_activity_date", Date),
    Column("certification_issue_date", Date),
    Column("kit_manufacturer", String(255)),
    Column("kit_model", String(255)),
    Column("status_code_change_date", Date),
    PrimaryKeyConstraint("ingestion_id", "tail_number"),
)

staging_owners = Table(
    "staging_owners",
    staging_metadata,
    Column("ingestion_id", Integer, nullable=False),
    Column("external_key", String(OWNER_KEY_LENGTH), nullable=False),
    Column("name", String(255), nullable=False),
    Column("address_line1", String(255)),
    Column("address_line2", String(255)),
    Column("city", String(128)),
    Column("state", String(16)),
    Column("postal_code", String(32)),
    Column("country", String(16)),
    Column("region", String(16)),
    Column("county", String(16)),
    PrimaryKeyConstraint("ingestion_id", "external_key"),
)

staging_aircraft_owners = Table(
    "staging_aircraft_owners",
    staging_metadata,
    Column("ingestion_id", Integer, nullable=False),
    Column("tail_number", String(16), nullable=False),
    Column("owner_external_key", String(OWNER_KEY_LENGTH), nullable=False),
    Column("ownership_type", String(16)),
    Column("last_action_date", Date),
    PrimaryKeyConstraint("ingestion_id", "tail_number", "owner_external_key"),
)

STAGING_TABLES: dict[EntityKind, Table] = {
    EntityKind.MANUFACTURER: staging_manufacturers,
    EntityKind.AIRCRAFT_MODEL: staging_aircraft_models,
    EntityKind.ENGINE: staging_engines,
    EntityKind.AIRCRAFT: staging_aircraft,
    EntityKind.OWNER: staging_owners,
    EntityKind.AIRCRAFT_OWNER: staging_aircraft_owners,
}


def ensure_schema(engine: Engine) -> None:
    """Create the canonical and ingestion tables if they do not exist."""
    metadata.create_all(engine, checkfirst=True)
    logger.debug(f"Canonical schema ensured on {engine.url.render_as_string(hide_password=True)}")


def ensure_staging_schema(engine: Engine) -> None:
    """Create the staging tables if they do not exist."""
    staging_metadata.create_all(engine, checkfirst=True)


__all__ = [
    "metadata",
    "staging_metadata",
    "OWNER_KEY_LENGTH",
    "ERROR_MESSAGE_LENGTH",
    "dataset_ingestions",
    "manufacturers",
    "aircraft_models",
    "engines",
    "aircraft",
    "owners",
    "aircraft_owners",
    "staging_manufacturers",
    "staging_aircraft_models",
    "staging_engines",
    "staging_aircraft",
    "staging_owners",
    "staging_aircraft_owners",
    "STAGING_TABLES",
    "ensure_schema",
    "ensure_staging_schema",
]
