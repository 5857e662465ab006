"""
Tests for locating and streaming member tables of the registry archive.
"""

import zipfile

import pytest

from faa_registry.ingestion.components.archive import (
    ACFTREF,
    ENGINE,
    MASTER,
    OWNER,
    RegistryArchive,
)
from faa_registry.utils.exceptions import ArchiveFormatError, MissingTableError

from tests.conftest import build_registry_zip


def test_find_table_matches_member_names_case_insensitively(tmp_path):
    path = tmp_path / "registry.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("ReleasableAircraft/", "")
        archive.writestr("ReleasableAircraft/acftref.txt", "CODE,MFR\n1,CESSNA\n")

    with RegistryArchive.open(path) as archive:
        table = archive.find_table(ACFTREF)
        assert table is not None
        assert table.member_name == "ReleasableAircraft/acftref.txt"
        assert archive.find_table(MASTER) is None


def test_directory_entries_never_match_a_table(tmp_path):
    path = tmp_path / "registry.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("ACFTREF/", "")
        archive.writestr("engine.txt", "CODE\n41514\n")

    with RegistryArchive.open(path) as archive:
        assert archive.member_names() == ["engine.txt"]
        assert archive.find_table(ACFTREF) is None
        assert archive.find_table(ENGINE).size == len("CODE\n41514\n")


def test_require_table_raises_descriptive_error(tmp_path):
    path = build_registry_zip(tmp_path / "registry.zip", omit=("OWNER.txt",))

    with RegistryArchive.open(path) as archive:
        with pytest.raises(MissingTableError) as exc_info:
            archive.validate()

    assert exc_info.value.token == OWNER
    assert "OWNER file is missing from archive" in str(exc_info.value)


def test_validate_finds_all_required_tables(registry_zip):
    with RegistryArchive.open(registry_zip) as archive:
        tables = archive.validate()

    assert set(tables) == {MASTER, ACFTREF, ENGINE, OWNER}


def test_open_rejects_non_zip_files(tmp_path):
    path = tmp_path / "not-a-zip.zip"
    path.write_text("<html>maintenance</html>")

    with pytest.raises(ArchiveFormatError):
        RegistryArchive.open(path)


def test_stream_table_normalizes_records(registry_zip):
    """BOM is ignored, headers uppercased, trailing empty column dropped."""
    with RegistryArchive.open(registry_zip) as archive:
        records = list(archive.stream_table(archive.require_table(ENGINE)))

    assert len(records) == 2
    assert records[0] == {
        "CODE": "41514",
        "MFR": "LYCOMING",
        "MODEL": "IO-360-L2A",
        "TYPE": "1",
        "HORSEPOWER": "00180",
        "THRUST": "000000",
    }


def test_stream_table_tolerates_ragged_and_blank_rows(tmp_path):
    content = "CODE,MFR,MODEL\n\n1,CESSNA\n2,PIPER,PA-28,EXTRA\n,,\n"
    path = build_registry_zip(tmp_path / "registry.zip", tables={"ACFTREF.txt": content}, bom=False)

    with RegistryArchive.open(path) as archive:
        records = list(archive.stream_table(archive.require_table(ACFTREF)))

    assert records == [
        {"CODE": "1", "MFR": "CESSNA", "MODEL": ""},
        {"CODE": "2", "MFR": "PIPER", "MODEL": "PA-28"},
    ]
