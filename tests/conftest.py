"""
Shared fixtures: a file-backed SQLite store, a synthetic registry archive and
a loguru capture sink.
"""

import shutil
import zipfile
from pathlib import Path

import pytest
from loguru import logger
from sqlalchemy import create_engine

from faa_registry.ingestion.components.client import DownloadResult

DATA_VERSION = "Mon, 06 Jan 2025 08:00:00 GMT"

# Member tables of a small registry snapshot. The FAA files end every line
# with a trailing comma; keep that here so the empty header column is exercised.
ACFTREF_TXT = (
    "CODE,MFR,MODEL,TYPE-ACFT,TYPE-ENG,AC-CAT,BUILD-CERT-IND,NO-ENG,NO-SEATS,AC-WEIGHT,SPEED,\n"
    "2072738,CESSNA                        ,172S                ,4,1 ,1,0,01,004,CLASS 1,0124,\n"
    "7100510,PIPER                         ,PA-28-181           ,4,1 ,1,0,01,004,CLASS 1,0125,\n"
)

ENGINE_TXT = (
    "CODE,MFR,MODEL,TYPE,HORSEPOWER,THRUST,\n"
    "41514,LYCOMING  ,IO-360-L2A   ,1 ,00180,000000,\n"
    "17003,LYCOMING  ,O-360-A4M    ,1 ,00180,000000,\n"
)

MASTER_TXT = (
    "N-NUMBER,SERIAL NUMBER,MFR MDL CODE,ENG MFR MDL,YEAR MFR,TYPE REGISTRANT,CERTIFICATION,"
    "TYPE AIRCRAFT,TYPE ENGINE,STATUS CODE,MODE S CODE,FRACT OWNER,AIR WORTH CLASS,"
    "EXPIRATION DATE,LAST ACTIVITY DATE,CERT ISSUE DATE,KIT MFR,KIT MODEL,MODE S CODE HEX,"
    "STATUS CODE CHANGE DATE,\n"
    "12345,172S10001     ,2072738,41514,2005,1,1N,4,1 ,V ,50423655,N,1,20270131,20240115,20050301,,,A12345,,\n"
    "54321,28-7690001    ,7100510,99999,1976,7,1N,4,1 ,V ,52362131,Y,1,20261231,20231110,19760512,,,A54321,,\n"
    "     ,ORPHAN        ,2072738,41514,2001,1,1N,4,1 ,V ,,N,1,,,,,,,,\n"
)

OWNER_TXT = (
    "N-NUMBER,NAME,STREET,STREET2,CITY,STATE,ZIP CODE,REGION,COUNTY,COUNTRY,OWNERSHIP TYPE,LAST ACTION DATE,\n"
    "12345,JOHN DOE                 ,1 MAIN ST          ,,WICHITA   ,KS,67201,3,173,US,1,20240115,\n"
    "12345,JANE DOE                 ,1 MAIN ST          ,,WICHITA   ,KS,67201,3,173,US,1,20240115,\n"
    "54321,ACME FLYING CLUB INC     ,400 AIRPORT RD     ,HANGAR 2,VERO BEACH,FL,32960,2,061,US,7,20231110,\n"
    "54321,ACME FLYING CLUB INC     ,400 AIRPORT RD     ,HANGAR 2,VERO BEACH,FL,32960,2,061,US,7,20231110,\n"
    "99999,GHOST OWNER              ,9 NOWHERE LN       ,,NOWHERE   ,TX,75001,4,113,US,1,20220101,\n"
    ",NOBODY,,,,,,,,,,,\n"
)

REGISTRY_TABLES = {
    "MASTER.txt": MASTER_TXT,
    "ACFTREF.txt": ACFTREF_TXT,
    "ENGINE.txt": ENGINE_TXT,
    "OWNER.txt": OWNER_TXT,
}

# Canonical rows the snapshot above merges into
EXPECTED_STATS = {
    "manufacturers": 2,
    "aircraft_models": 2,
    "engines": 2,
    "aircraft": 2,
    "owners": 3,
    "owner_links": 3,
}


def build_registry_zip(
    path: Path,
    tables: dict[str, str] | None = None,
    omit: tuple[str, ...] = (),
    bom: bool = True,
) -> Path:
    """Write a registry archive; members named in ``omit`` are left out."""
    members = dict(REGISTRY_TABLES if tables is None else tables)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in members.items():
            if name in omit:
                continue
            data = content.encode("utf-8")
            archive.writestr(name, (b"\xef\xbb\xbf" + data) if bom else data)
    return path


class ArchiveDownloader:
    """Downloader double that "downloads" a local archive."""

    def __init__(self, archive_path: Path, data_version: str | None = DATA_VERSION):
        self.archive_path = Path(archive_path)
        self.data_version = data_version
        self.calls: list[tuple[str, Path]] = []

    def download(self, url: str, destination) -> DownloadResult:
        target = Path(destination)
        self.calls.append((url, target))
        shutil.copyfile(self.archive_path, target)
        return DownloadResult(
            path=target,
            bytes_written=target.stat().st_size,
            data_version=self.data_version,
        )


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite store, so worker threads see the same database."""
    store = create_engine(f"sqlite:///{tmp_path / 'registry.db'}")
    yield store
    store.dispose()


@pytest.fixture
def registry_zip(tmp_path) -> Path:
    return build_registry_zip(tmp_path / "ReleasableAircraft.zip")


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
