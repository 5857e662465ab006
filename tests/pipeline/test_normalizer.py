"""
Tests for field normalization and row mapping of registry records.
"""

from datetime import date

from faa_registry.ingestion.components.normalizer import (
    UNKNOWN_OWNER_NAME,
    build_owner_external_key,
    normalize_record,
    normalize_tail_number,
    parse_aircraft_row,
    parse_engine_row,
    parse_model_row,
    parse_owner_row,
    to_nullable_bool_from_yn,
    to_nullable_date,
    to_nullable_int,
    to_nullable_string,
)


def test_nullable_string_trims_and_blanks_to_none():
    assert to_nullable_string("  CESSNA  ") == "CESSNA"
    assert to_nullable_string("   ") is None
    assert to_nullable_string("") is None
    assert to_nullable_string(None) is None


def test_nullable_int():
    assert to_nullable_int(" 0124 ") == 124
    assert to_nullable_int("-3") == -3
    assert to_nullable_int("12a") is None
    assert to_nullable_int("1.5") is None
    assert to_nullable_int("  ") is None
    assert to_nullable_int(None) is None


def test_nullable_bool_from_yn():
    assert to_nullable_bool_from_yn("Y") is True
    assert to_nullable_bool_from_yn(" n ") is False
    assert to_nullable_bool_from_yn("X") is None
    assert to_nullable_bool_from_yn("") is None


def test_nullable_date_parses_compact_form():
    assert to_nullable_date("20240115") == date(2024, 1, 15)
    assert to_nullable_date("2024-01-15") == date(2024, 1, 15)


def test_nullable_date_rejects_invalid_values_without_raising():
    """Wrong length and impossible calendar dates become None."""
    assert to_nullable_date("20241301") is None
    assert to_nullable_date("20230229") is None
    assert to_nullable_date("2024011") is None
    assert to_nullable_date("202401150") is None
    assert to_nullable_date("") is None
    assert to_nullable_date(None) is None


def test_normalize_tail_number_adds_prefix():
    assert normalize_tail_number(" 12345 ") == "N12345"
    assert normalize_tail_number("n12345") == "N12345"
    assert normalize_tail_number("N1AB") == "N1AB"
    assert normalize_tail_number("   ") == ""
    assert normalize_tail_number(None) == ""


def test_owner_external_key_is_stable_and_order_sensitive():
    key = build_owner_external_key("John Doe", "1 Main St", None, "Wichita", "KS", "67201", "US")
    assert key == "JOHN DOE|1 MAIN ST||WICHITA|KS|67201|US"
    assert key == build_owner_external_key(" JOHN DOE ", "1 MAIN ST", "", "WICHITA", "KS", "67201", "US")
    assert key != build_owner_external_key("John Doe", None, "1 Main St", "Wichita", "KS", "67201", "US")


def test_normalize_record_uppercases_headers_and_drops_unnamed_columns():
    record = {" code ": " 41514 ", "": "", "mfr": "LYCOMING  ", None: ["overflow"]}
    assert normalize_record(record) == {"CODE": "41514", "MFR": "LYCOMING"}


def test_parse_model_row_requires_code_and_manufacturer():
    assert parse_model_row({"CODE": "", "MFR": "CESSNA"}) is None
    assert parse_model_row({"CODE": "2072738", "MFR": ""}) is None

    row = parse_model_row({"CODE": "2072738", "MFR": "CESSNA", "MODEL": "", "NO-SEATS": "004"})
    assert row.model_name == "2072738"
    assert row.number_of_seats == 4
    assert row.cruise_speed is None


def test_parse_engine_row():
    assert parse_engine_row({"CODE": ""}) is None
    row = parse_engine_row({"CODE": "41514", "MFR": "LYCOMING", "TYPE": "1", "HORSEPOWER": "00180"})
    assert row.code == "41514"
    assert row.horsepower == 180
    assert row.thrust is None


def test_parse_aircraft_row():
    row = parse_aircraft_row({
        "N-NUMBER": "12345",
        "MFR MDL CODE": "2072738",
        "FRACT OWNER": "Y",
        "EXPIRATION DATE": "20270131",
        "LAST ACTIVITY DATE": "bogus",
        "YEAR MFR": "2005",
    })
    assert row.tail_number == "N12345"
    assert row.model_code == "2072738"
    assert row.fractional_ownership is True
    assert row.expiration_date == date(2027, 1, 31)
    assert row.last_activity_date is None
    assert row.year_manufactured == 2005

    assert parse_aircraft_row({"N-NUMBER": "  "}) is None


def test_parse_owner_row_defaults_name_and_falls_back_to_action_dt():
    owner, link = parse_owner_row({
        "N-NUMBER": "12345",
        "NAME": "",
        "CITY": "WICHITA",
        "LAST ACTION DT": "20240115",
    })
    assert owner.name == UNKNOWN_OWNER_NAME
    assert owner.external_key.startswith(f"{UNKNOWN_OWNER_NAME}|")
    assert link.tail_number == "N12345"
    assert link.owner_external_key == owner.external_key
    assert link.last_action_date == date(2024, 1, 15)

    assert parse_owner_row({"N-NUMBER": "", "NAME": "NOBODY"}) is None
