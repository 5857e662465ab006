"""
Normalization of raw FAA registry fields into typed, nullable values.

Every function here is pure and total: malformed input yields None (or an
empty string for tail numbers), never an exception.
"""

import re
from datetime import date
from typing import Mapping

from faa_registry.ingestion.db.rows import (
    AircraftModelRow,
    AircraftOwnerRow,
    AircraftRow,
    EngineRow,
    OwnerRow,
)

OWNER_KEY_DELIMITER = "|"
UNKNOWN_OWNER_NAME = "UNKNOWN OWNER"

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_record(record: Mapping[str | None, object]) -> dict[str, str]:
    """
    Normalize a raw delimited-text record.

    Header names are trimmed and uppercased, values trimmed. Columns without
    a header (trailing delimiters, or the overflow list csv.DictReader keeps
    under a None key) are dropped.
    """
    normalized: dict[str, str] = {}

    for key, value in record.items():
        if not key or not isinstance(key, str):
            continue

        normalized_key = key.strip().upper()
        if not normalized_key:
            continue

        normalized[normalized_key] = value.strip() if isinstance(value, str) else ""

    return normalized


def to_nullable_string(value: str | None) -> str | None:
    if not value:
        return None

    trimmed = value.strip()
    return trimmed or None


def to_nullable_int(value: str | None) -> int | None:
    if not value:
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    try:
        return int(trimmed, 10)
    except ValueError:
        return None


def to_nullable_bool_from_yn(value: str | None) -> bool | None:
    """Map "Y"/"N" (any case) to True/False; anything else is None."""
    if not value:
        return None

    normalized = value.strip().upper()
    if normalized == "Y":
        return True
    if normalized == "N":
        return False
    return None


def to_nullable_date(value: str | None) -> date | None:
    """
    Parse the compact YYYYMMDD form used throughout the registry files.

    Non-digit characters are ignored, so "2023-01-15" parses too. Anything
    that is not exactly eight digits or not a real calendar date is None.
    """
    if not value:
        return None

    digits = _NON_DIGITS.sub("", value)
    if len(digits) != 8:
        return None

    try:
        return date(int(digits[0:4]), int(digits[4:6]), int(digits[6:8]))
    except ValueError:
        return None


def normalize_tail_number(value: str | None) -> str:
    """
    Uppercase a registration mark and add the "N" prefix the files omit.

    Returns an empty string when there is no usable mark.
    """
    if not value:
        return ""

    normalized = value.strip().upper()
    if not normalized:
        return ""

    # US marks never start with "N" after the prefix (first digit is 1-9)
    return normalized if normalized.startswith("N") else f"N{normalized}"


def build_owner_external_key(
    name: str | None,
    address_line1: str | None,
    address_line2: str | None,
    city: str | None,
    state: str | None,
    postal_code: str | None,
    country: str | None,
) -> str:
    """
    Derive the owner natural key from name and address fields.

    Order-sensitive: the same registrant written the same way always maps to
    the same key; punctuation differences produce different keys.
    """
    parts = (name, address_line1, address_line2, city, state, postal_code, country)
    return OWNER_KEY_DELIMITER.join(part.strip().upper() if part else "" for part in parts)


# =============================================================================
# Row mappers (normalized record -> staged row)
# =============================================================================

def parse_model_row(record: Mapping[str, str]) -> AircraftModelRow | None:
    """Map an ACFTREF record; rows without code or manufacturer are skipped."""
    code = to_nullable_string(record.get("CODE"))
    manufacturer_name = to_nullable_string(record.get("MFR"))

    if not code or not manufacturer_name:
        return None

    return AircraftModelRow(
        code=code,
        manufacturer_name=manufacturer_name,
        model_name=to_nullable_string(record.get("MODEL")) or code,
        type_aircraft=to_nullable_string(record.get("TYPE-ACFT")),
        type_engine=to_nullable_string(record.get("TYPE-ENG")),
        category=to_nullable_string(record.get("AC-CAT")),
        build_certification=to_nullable_string(record.get("BUILD-CERT-IND")),
        number_of_engines=to_nullable_int(record.get("NO-ENG")),
        number_of_seats=to_nullable_int(record.get("NO-SEATS")),
        weight_class=to_nullable_string(record.get("AC-WEIGHT")),
        cruise_speed=to_nullable_int(record.get("SPEED")),
    )


def parse_engine_row(record: Mapping[str, str]) -> EngineRow | None:
    code = to_nullable_string(record.get("CODE"))
    if not code:
        return None

    return EngineRow(
        code=code,
        manufacturer=to_nullable_string(record.get("MFR")),
        model=to_nullable_string(record.get("MODEL")),
        type=to_nullable_string(record.get("TYPE")),
        horsepower=to_nullable_int(record.get("HORSEPOWER")),
        thrust=to_nullable_int(record.get("THRUST")),
    )


def parse_aircraft_row(record: Mapping[str, str]) -> AircraftRow | None:
    tail_number = normalize_tail_number(record.get("N-NUMBER"))
    if not tail_number:
        return None

    return AircraftRow(
        tail_number=tail_number,
        serial_number=to_nullable_string(record.get("SERIAL NUMBER")),
        model_code=to_nullable_string(record.get("MFR MDL CODE")),
        engine_code=to_nullable_string(record.get("ENG MFR MDL")),
        year_manufactured=to_nullable_int(record.get("YEAR MFR")),
        registrant_type=to_nullable_string(record.get("TYPE REGISTRANT")),
        certification=to_nullable_string(record.get("CERTIFICATION")),
        aircraft_type=to_nullable_string(record.get("TYPE AIRCRAFT")),
        engine_type=to_nullable_string(record.get("TYPE ENGINE")),
        status_code=to_nullable_string(record.get("STATUS CODE")),
        mode_s_code=to_nullable_string(record.get("MODE S CODE")),
        mode_s_code_hex=to_nullable_string(record.get("MODE S CODE HEX")),
        fractional_ownership=to_nullable_bool_from_yn(record.get("FRACT OWNER")),
        airworthiness_class=to_nullable_string(record.get("AIR WORTH CLASS")),
        expiration_date=to_nullable_date(record.get("EXPIRATION DATE")),
        last_activity_date=to_nullable_date(record.get("LAST ACTIVITY DATE")),
        certification_issue_date=to_nullable_date(record.get("CERT ISSUE DATE")),
        kit_manufacturer=to_nullable_string(record.get("KIT MFR")),
        kit_model=to_nullable_string(record.get("KIT MODEL")),
        status_code_change_date=to_nullable_date(record.get("STATUS CODE CHANGE DATE")),
    )


def parse_owner_row(record: Mapping[str, str]) -> tuple[OwnerRow, AircraftOwnerRow] | None:
    """
    Map an OWNER record to the owner and its link to the aircraft.

    Returns None for rows without a tail number.
    """
    tail_number = normalize_tail_number(record.get("N-NUMBER"))
    if not tail_number:
        return None

    name = to_nullable_string(record.get("NAME")) or UNKNOWN_OWNER_NAME
    address_line1 = to_nullable_string(record.get("STREET"))
    address_line2 = to_nullable_string(record.get("STREET2"))
    city = to_nullable_string(record.get("CITY"))
    state = to_nullable_string(record.get("STATE"))
    postal_code = to_nullable_string(record.get("ZIP CODE"))
    country = to_nullable_string(record.get("COUNTRY"))

    external_key = build_owner_external_key(
        name, address_line1, address_line2, city, state, postal_code, country,
    )

    owner = OwnerRow(
        external_key=external_key,
        name=name,
        address_line1=address_line1,
        address_line2=address_line2,
        city=city,
        state=state,
        postal_code=postal_code,
        country=country,
        region=to_nullable_string(record.get("REGION")),
        county=to_nullable_string(record.get("COUNTY")),
    )
    link = AircraftOwnerRow(
        tail_number=tail_number,
        owner_external_key=external_key,
        ownership_type=to_nullable_string(record.get("OWNERSHIP TYPE")),
        last_action_date=(
            to_nullable_date(record.get("LAST ACTION DATE"))
            or to_nullable_date(record.get("LAST ACTION DT"))
        ),
    )
    return owner, link


__all__ = [
    "OWNER_KEY_DELIMITER",
    "UNKNOWN_OWNER_NAME",
    "normalize_record",
    "to_nullable_string",
    "to_nullable_int",
    "to_nullable_bool_from_yn",
    "to_nullable_date",
    "normalize_tail_number",
    "build_owner_external_key",
    "parse_model_row",
    "parse_engine_row",
    "parse_aircraft_row",
    "parse_owner_row",
]
