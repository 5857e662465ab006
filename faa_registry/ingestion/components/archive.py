"""
Reader for the FAA Releasable Aircraft archive.

The archive is a zip holding comma-delimited tables (MASTER.txt,
ACFTREF.txt, ENGINE.txt, ...). Member names vary between releases, so tables
are located by a case-insensitive substring match on the member name.
"""

import csv
import io
import zipfile
from pathlib import Path
from typing import Iterator, NamedTuple

from faa_registry.utils import logger
from faa_registry.utils.exceptions import ArchiveFormatError, MissingTableError
from faa_registry.ingestion.components.normalizer import normalize_record

MASTER = "MASTER"
ACFTREF = "ACFTREF"
ENGINE = "ENGINE"
OWNER = "OWNER"

REQUIRED_TABLES: tuple[str, ...] = (MASTER, ACFTREF, ENGINE, OWNER)


class ArchiveTable(NamedTuple):
    """Handle to a member table inside the archive."""
    token: str
    member_name: str
    size: int


class RegistryArchive:
    """
    Read-only view over a downloaded registry archive.

    Use as a context manager so the underlying zip file is closed:

        with RegistryArchive.open(path) as archive:
            table = archive.require_table(ACFTREF)
            for record in archive.stream_table(table):
                ...
    """

    def __init__(self, zip_file: zipfile.ZipFile, path: Path):
        self._zip = zip_file
        self.path = path

    @classmethod
    def open(cls, path: str | Path) -> "RegistryArchive":
        """
        Open an archive from the local filesystem.

        Raises:
            ArchiveFormatError: If the file is missing or not a zip archive
        """
        archive_path = Path(path)
        try:
            zip_file = zipfile.ZipFile(archive_path, "r")
        except (zipfile.BadZipFile, FileNotFoundError) as e:
            raise ArchiveFormatError(f"Cannot open registry archive {archive_path}: {e}") from e

        logger.debug(f"Opened archive {archive_path} ({len(zip_file.infolist())} members)")
        return cls(zip_file, archive_path)

    def __enter__(self) -> "RegistryArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def member_names(self) -> list[str]:
        """File members in archive order; directory entries are skipped."""
        return [info.filename for info in self._zip.infolist() if not info.is_dir()]

    def find_table(self, token: str) -> ArchiveTable | None:
        """Return the first file member whose name contains ``token`` (any case)."""
        needle = token.upper()
        for name in self.member_names():
            if needle in name.upper():
                return ArchiveTable(token=token, member_name=name, size=self._zip.getinfo(name).file_size)
        return None

    def require_table(self, token: str) -> ArchiveTable:
        table = self.find_table(token)
        if table is None:
            raise MissingTableError(token, archive_path=str(self.path))
        return table

    def validate(self, tokens: tuple[str, ...] = REQUIRED_TABLES) -> dict[str, ArchiveTable]:
        """
        Locate every required table up front.

        Raises:
            MissingTableError: For the first required table that is absent
        """
        return {token: self.require_table(token) for token in tokens}

    def stream_table(self, table: ArchiveTable) -> Iterator[dict[str, str]]:
        """
        Yield normalized records of a member table, one pass, lazily.

        The first line is the header. Blank lines are skipped; short or long
        rows are tolerated (missing values become empty strings).
        """
        logger.debug(f"Streaming {table.member_name} ({table.size:,} bytes)")

        with self._zip.open(table.member_name, "r") as raw:
            text = io.TextIOWrapper(raw, encoding="utf-8-sig", errors="replace", newline="")
            reader = csv.DictReader(text, restval="")
            for record in reader:
                normalized = normalize_record(record)
                if any(normalized.values()):
                    yield normalized


__all__ = [
    "MASTER",
    "ACFTREF",
    "ENGINE",
    "OWNER",
    "REQUIRED_TABLES",
    "ArchiveTable",
    "RegistryArchive",
]
