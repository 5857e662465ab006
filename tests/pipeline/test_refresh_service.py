"""
Tests for the refresh orchestrator: end-to-end loads, single-flight control,
failure recording and cleanup.
"""

import shutil
import threading
from unittest.mock import Mock, patch

import pytest
from sqlalchemy import func, select

from faa_registry.ingestion.db import (
    EntityKind,
    IngestionRepository,
    IngestionStatus,
    StagingRepository,
)
from faa_registry.ingestion.db.dialects import SqliteDialect
from faa_registry.ingestion.db.schema import aircraft, owners
from faa_registry.ingestion.jobs.refresh_service import (
    RefreshPhase,
    RefreshService,
    RefreshTrigger,
)
from faa_registry.utils import logger
from faa_registry.utils.exceptions import (
    DatasetDownloadError,
    MissingTableError,
    RefreshInProgressError,
    StagingError,
)

from tests.conftest import DATA_VERSION, EXPECTED_STATS, ArchiveDownloader, build_registry_zip

DATASET_URL = "https://registry.example.test/ReleasableAircraft.zip"


class BlockingDownloader(ArchiveDownloader):
    """Holds the download until the test releases it."""

    def __init__(self, archive_path):
        super().__init__(archive_path)
        self.started = threading.Event()
        self.release = threading.Event()

    def download(self, url, destination):
        self.started.set()
        assert self.release.wait(timeout=10)
        return super().download(url, destination)


def _service(engine, downloader, notifier=None, staging=None):
    return RefreshService(
        engine,
        downloader=downloader,
        staging=staging,
        notifier=notifier or Mock(),
        dataset_url=DATASET_URL,
        dialect=SqliteDialect(),
    )


@pytest.fixture
def notifier():
    return Mock()


def test_refresh_loads_archive_and_completes_record(engine, registry_zip, notifier):
    downloader = ArchiveDownloader(registry_zip)
    service = _service(engine, downloader, notifier)

    result = service.run()

    assert result.stats.to_dict() == EXPECTED_STATS
    assert result.trigger == RefreshTrigger.MANUAL
    assert result.data_version == DATA_VERSION
    assert downloader.calls[0][0] == DATASET_URL

    record = service.repository.get_by_id(result.ingestion_id)
    assert record.status == IngestionStatus.COMPLETED
    assert record.stats.to_dict() == EXPECTED_STATS

    notifier.on_success.assert_called_once()
    kwargs = notifier.on_success.call_args.kwargs
    assert kwargs["ingestion_id"] == result.ingestion_id
    assert kwargs["stats"] == EXPECTED_STATS
    assert kwargs["trigger"] == "MANUAL"

    assert service.phase == RefreshPhase.IDLE
    assert service.last_cleanup.succeeded
    service.shutdown()


def test_load_logs_are_tagged_with_the_ingestion(engine, registry_zip):
    tagged = []
    handler_id = logger.add(lambda message: tagged.append(
        (message.record["extra"]["ingestion"], message.record["message"])
    ))
    service = _service(engine, ArchiveDownloader(registry_zip))

    try:
        result = service.run()
    finally:
        logger.remove(handler_id)
        service.shutdown()

    merged = [ingestion for ingestion, message in tagged if message.startswith("Merged ingestion")]
    assert merged == [result.ingestion_id]


def test_refresh_is_idempotent_across_runs(engine, registry_zip):
    service = _service(engine, ArchiveDownloader(registry_zip))

    first = service.run()
    second = service.run(RefreshTrigger.SCHEDULED)

    assert second.ingestion_id != first.ingestion_id
    assert second.stats.to_dict() == EXPECTED_STATS
    with engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(aircraft)).scalar_one() == 2
        assert conn.execute(select(func.count()).select_from(owners)).scalar_one() == 3
        # The owner of an unregistered tail number is not promoted
        assert conn.execute(select(owners.c.id).where(owners.c.name == "GHOST OWNER")).first() is None
        latest_ids = conn.execute(select(aircraft.c.dataset_ingestion_id).distinct()).scalars().all()
    assert latest_ids == [second.ingestion_id]

    status = service.get_latest_status()
    assert status.id == second.ingestion_id
    assert status.trigger == "SCHEDULED"
    service.shutdown()


def test_refresh_removes_staged_rows_and_temp_dir(engine, registry_zip):
    downloader = ArchiveDownloader(registry_zip)
    service = _service(engine, downloader)

    result = service.run()

    for kind in EntityKind:
        assert service.staging.count(kind, result.ingestion_id) == 0
    assert not downloader.calls[0][1].parent.exists()
    service.shutdown()


def test_concurrent_refresh_is_rejected(engine, registry_zip):
    downloader = BlockingDownloader(registry_zip)
    service = _service(engine, downloader)

    future = service.refresh()
    assert downloader.started.wait(timeout=10)
    assert service.is_running()
    assert service.phase == RefreshPhase.DOWNLOADING

    with pytest.raises(RefreshInProgressError):
        service.refresh(RefreshTrigger.SCHEDULED)

    downloader.release.set()
    future.result(timeout=30)

    # The guard is released by the time the future resolves
    assert not service.is_running()
    assert service.run().stats.to_dict() == EXPECTED_STATS
    service.shutdown()


def test_missing_table_fails_record_and_cleans_up(engine, tmp_path, notifier):
    archive = build_registry_zip(tmp_path / "partial.zip", omit=("OWNER.txt",))
    downloader = ArchiveDownloader(archive)
    service = _service(engine, downloader, notifier)

    with pytest.raises(MissingTableError):
        service.run()

    status = service.get_latest_status()
    assert status.status == IngestionStatus.FAILED.value
    assert status.error_message == "[MISSING_TABLE] OWNER file is missing from archive"
    assert status.completed_at is None

    notifier.on_failure.assert_called_once()
    assert notifier.on_failure.call_args.kwargs["error_category"] == "MISSING_TABLE"
    notifier.on_success.assert_not_called()

    assert not downloader.calls[0][1].parent.exists()
    assert service.last_cleanup.succeeded
    assert service.phase == RefreshPhase.IDLE
    assert not service.is_running()
    service.shutdown()


def test_download_failure_sends_telemetry_without_record(engine, notifier):
    downloader = Mock()
    downloader.download.side_effect = DatasetDownloadError("Not Found", status_code=404, url=DATASET_URL)
    service = _service(engine, downloader, notifier)

    with pytest.raises(DatasetDownloadError):
        service.run()

    assert service.get_latest_status().status == "NOT_AVAILABLE"
    kwargs = notifier.on_failure.call_args.kwargs
    assert kwargs["ingestion_id"] is None
    assert kwargs["error_category"] == "DOWNLOAD"
    assert "HTTP 404" in kwargs["error_message"]
    service.shutdown()


def test_merge_failure_is_recorded_with_category(engine, registry_zip):
    staging = StagingRepository(engine, SqliteDialect())
    service = _service(engine, ArchiveDownloader(registry_zip), staging=staging)

    with patch.object(staging, "merge", side_effect=RuntimeError("disk full")):
        with pytest.raises(RuntimeError):
            service.run()

    status = IngestionRepository(engine).get_latest_status()
    assert status.status == "FAILED"
    assert status.error_message == "[UNEXPECTED] Unexpected error (RuntimeError): disk full"
    service.shutdown()


def test_staging_failure_mid_run_clears_staged_rows(engine, registry_zip, notifier):
    staging = StagingRepository(engine, SqliteDialect())
    service = _service(engine, ArchiveDownloader(registry_zip), notifier, staging=staging)
    stage = staging.stage
    injected = []

    def fail_on_manufacturers(kind, ingestion_id, rows):
        # Models are staged first, so their rows are already written
        if kind == EntityKind.MANUFACTURER:
            error = StagingError("injected failure", kind=kind.value, ingestion_id=ingestion_id)
            injected.append(error)
            raise error
        return stage(kind, ingestion_id, rows)

    with patch.object(staging, "stage", side_effect=fail_on_manufacturers):
        with pytest.raises(StagingError) as exc_info:
            service.run()

    assert exc_info.value is injected[0]
    ingestion_id = injected[0].ingestion_id
    for kind in EntityKind:
        assert staging.count(kind, ingestion_id) == 0

    status = IngestionRepository(engine).get_latest_status()
    assert status.id == ingestion_id
    assert status.status == "FAILED"
    assert status.error_message == "[STAGING] Staging failed: injected failure"
    assert service.last_cleanup.attempted.count("clear_staging") == 1
    assert service.last_cleanup.succeeded
    assert notifier.on_failure.call_args.kwargs["error_category"] == "STAGING"
    service.shutdown()


def test_cleanup_failure_does_not_change_outcome(engine, registry_zip, log_messages):
    downloader = ArchiveDownloader(registry_zip)
    service = _service(engine, downloader)

    with patch(
        "faa_registry.ingestion.jobs.refresh_service.shutil.rmtree",
        side_effect=OSError("directory busy"),
    ):
        result = service.run()

    record = service.repository.get_by_id(result.ingestion_id)
    assert record.status == IngestionStatus.COMPLETED
    assert service.last_cleanup.failed_operations() == ["remove_temp_dir"]
    assert "Cleanup incomplete: remove_temp_dir" in log_messages

    shutil.rmtree(downloader.calls[0][1].parent, ignore_errors=True)
    service.shutdown()


def test_notifier_errors_do_not_fail_the_run(engine, registry_zip, notifier):
    notifier.on_success.side_effect = RuntimeError("telemetry down")
    service = _service(engine, ArchiveDownloader(registry_zip), notifier)

    result = service.run()

    assert service.repository.get_by_id(result.ingestion_id).status == IngestionStatus.COMPLETED
    service.shutdown()


@pytest.mark.parametrize(
    "error, category",
    [
        (DatasetDownloadError("boom", status_code=500), "DOWNLOAD"),
        (MissingTableError("MASTER"), "MISSING_TABLE"),
        (ValueError("bad"), "UNEXPECTED"),
    ],
)
def test_categorize_error(engine, error, category):
    service = _service(engine, Mock())

    assert service._categorize_error(error)[0] == category
    service.shutdown()
