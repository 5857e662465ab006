"""
Row types written to the staging tables.

Field names match the staging table column names, so a row's ``_asdict()``
is directly usable as statement parameters.
"""

from datetime import date
from enum import Enum
from typing import NamedTuple


class EntityKind(str, Enum):
    """The six kinds of staged rows, one staging table each."""
    MANUFACTURER = "manufacturer"
    AIRCRAFT_MODEL = "aircraft_model"
    ENGINE = "engine"
    AIRCRAFT = "aircraft"
    OWNER = "owner"
    AIRCRAFT_OWNER = "aircraft_owner"


# Dependency order of the canonical merges
MERGE_ORDER: tuple[EntityKind, ...] = (
    EntityKind.MANUFACTURER,
    EntityKind.AIRCRAFT_MODEL,
    EntityKind.ENGINE,
    EntityKind.AIRCRAFT,
    EntityKind.OWNER,
    EntityKind.AIRCRAFT_OWNER,
)


class ManufacturerRow(NamedTuple):
    name: str


class AircraftModelRow(NamedTuple):
    code: str
    manufacturer_name: str
    model_name: str
    type_aircraft: str | None = None
    type_engine: str | None = None
    category: str | None = None
    build_certification: str | None = None
    number_of_engines: int | None = None
    number_of_seats: int | None = None
    weight_class: str | None = None
    cruise_speed: int | None = None


class EngineRow(NamedTuple):
    code: str
    manufacturer: str | None = None
    model: str | None = None
    type: str | None = None
    horsepower: int | None = None
    thrust: int | None = None


class AircraftRow(NamedTuple):
    tail_number: str
    serial_number: str | None = None
    model_code: str | None = None
    engine_code: str | None = None
    year_manufactured: int | None = None
    registrant_type: str | None = None
    certification: str | None = None
    aircraft_type: str | None = None
    engine_type: str | None = None
    status_code: str | None = None
    mode_s_code: str | None = None
    mode_s_code_hex: str | None = None
    fractional_ownership: bool | None = None
    airworthiness_class: str | None = None
    expiration_date: date | None = None
    last_activity_date: date | None = None
    certification_issue_date: date | None = None
    kit_manufacturer: str | None = None
    kit_model: str | None = None
    status_code_change_date: date | None = None


class OwnerRow(NamedTuple):
    external_key: str
    name: str
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    region: str | None = None
    county: str | None = None


class AircraftOwnerRow(NamedTuple):
    tail_number: str
    owner_external_key: str
    ownership_type: str | None = None
    last_action_date: date | None = None


StagedRow = (
    ManufacturerRow
    | AircraftModelRow
    | EngineRow
    | AircraftRow
    | OwnerRow
    | AircraftOwnerRow
)

ROW_TYPES: dict[EntityKind, type] = {
    EntityKind.MANUFACTURER: ManufacturerRow,
    EntityKind.AIRCRAFT_MODEL: AircraftModelRow,
    EntityKind.ENGINE: EngineRow,
    EntityKind.AIRCRAFT: AircraftRow,
    EntityKind.OWNER: OwnerRow,
    EntityKind.AIRCRAFT_OWNER: AircraftOwnerRow,
}

# Natural key fields per kind, in staging primary key order (after ingestion_id)
NATURAL_KEYS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.MANUFACTURER: ("name",),
    EntityKind.AIRCRAFT_MODEL: ("code",),
    EntityKind.ENGINE: ("code",),
    EntityKind.AIRCRAFT: ("tail_number",),
    EntityKind.OWNER: ("external_key",),
    EntityKind.AIRCRAFT_OWNER: ("tail_number", "owner_external_key"),
}


def natural_key(kind: EntityKind, row: StagedRow) -> tuple:
    """Return the natural key values of a staged row."""
    return tuple(getattr(row, name) for name in NATURAL_KEYS[kind])


__all__ = [
    "EntityKind",
    "MERGE_ORDER",
    "ManufacturerRow",
    "AircraftModelRow",
    "EngineRow",
    "AircraftRow",
    "OwnerRow",
    "AircraftOwnerRow",
    "StagedRow",
    "ROW_TYPES",
    "NATURAL_KEYS",
    "natural_key",
]
