"""
Refresh service that downloads the FAA archive and loads it.

This is the main pipeline that:
1. Downloads the Releasable Aircraft archive into a private temp directory
2. Opens a RUNNING ingestion record
3. Stages and merges all six entity kinds in dependency order
4. Completes or fails the record and emits telemetry
5. Removes the run's staged rows and temp directory, whatever the outcome

At most one refresh runs per service instance; a second request while one
is in flight fails immediately with RefreshInProgressError.
"""

import shutil
import tempfile
import threading
import time
import traceback
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from faa_registry.utils import ingestion_context, logger
from faa_registry.utils.best_effort import CleanupReport, run_best_effort
from faa_registry.utils.exceptions import (
    ArchiveError,
    DatabaseError,
    DatasetDownloadError,
    DownloadConnectionError,
    DownloadError,
    DownloadTimeoutError,
    MergeError,
    MissingTableError,
    RefreshInProgressError,
    RegistryServiceError,
    StagingError,
)
from faa_registry.ingestion.config import settings
from faa_registry.ingestion.components.client import DownloadResult, create_client
from faa_registry.ingestion.db import (
    IngestionRepository,
    IngestionStats,
    IngestionStatusView,
    IngestionTrigger,
    SqlDialect,
    StagingRepository,
    create_repository,
    dialect_for_engine,
)
from faa_registry.ingestion.jobs.archive_loader import ArchiveLoader
from faa_registry.notifications import RefreshNotifier, get_notifier

ARCHIVE_FILE_NAME = "ReleasableAircraft.zip"

RefreshTrigger = IngestionTrigger


class RefreshPhase(str, Enum):
    """Where the service currently is in a run."""
    IDLE = "idle"
    DOWNLOADING = "downloading"
    STAGING = "staging"
    MERGING = "merging"
    COMPLETED = "completed"
    FAILED = "failed"


class RefreshResult(NamedTuple):
    """Outcome of a successful refresh."""
    ingestion_id: int
    stats: IngestionStats
    duration_ms: int
    trigger: RefreshTrigger
    data_version: str | None
    downloaded_at: datetime
    started_at: datetime

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "ingestion_id": self.ingestion_id,
            "stats": self.stats.to_dict(),
            "duration_ms": self.duration_ms,
            "trigger": self.trigger.value,
            "data_version": self.data_version,
            "downloaded_at": self.downloaded_at.isoformat(),
            "started_at": self.started_at.isoformat(),
        }


class Downloader(Protocol):
    def download(self, url: str, destination: str | Path) -> DownloadResult: ...


class RefreshService:
    """
    Orchestrates refresh runs against one registry store.

    Workflow of a run:
    1. Download the archive (phase: downloading)
    2. Create the RUNNING ingestion record
    3. Stage every table, then merge in dependency order (staging, merging)
    4. Mark the record COMPLETED with totals, or FAILED with "[CATEGORY] message"

    Failures are re-raised to the caller after the record and telemetry are
    updated. Cleanup outcomes of the last run are kept in ``last_cleanup``.
    """

    def __init__(
        self,
        engine: Engine,
        downloader: Downloader | None = None,
        repository: IngestionRepository | None = None,
        staging: StagingRepository | None = None,
        notifier: RefreshNotifier | None = None,
        dataset_url: str | None = None,
        dialect: SqlDialect | None = None,
    ):
        """
        Initialize the refresh service.

        Args:
            engine: SQLAlchemy engine of the registry store
            downloader: Archive downloader (DatasetClient if not provided)
            repository: Ingestion record repository (created if not provided)
            staging: Staging repository (created if not provided)
            notifier: Telemetry sink (global notifier if not provided)
            dataset_url: Archive URL (defaults to settings)
            dialect: SQL dialect strategy (detected from the engine if not provided)
        """
        self.engine = engine
        self.dialect = dialect or dialect_for_engine(engine, settings.database.dialect)
        self.downloader = downloader or create_client()
        self.repository = repository or create_repository(engine)
        self.staging = staging or StagingRepository(engine, self.dialect)
        self.notifier = notifier or get_notifier()
        self.dataset_url = dataset_url or settings.dataset.dataset_url
        self.loader = ArchiveLoader(self.staging, phase_listener=self._on_loader_phase)

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="faa-refresh")
        self._guard = threading.Lock()
        self._in_flight = False
        self._current: Future | None = None
        self._phase = RefreshPhase.IDLE
        self.last_cleanup: CleanupReport | None = None

        logger.info(f"RefreshService initialized (dialect: {self.dialect.name})")

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def phase(self) -> RefreshPhase:
        return self._phase

    def is_running(self) -> bool:
        with self._guard:
            return self._in_flight

    def refresh(self, trigger: RefreshTrigger = RefreshTrigger.MANUAL) -> Future:
        """
        Start a refresh in the background.

        Returns:
            Future resolving to a RefreshResult, or raising the run's error

        Raises:
            RefreshInProgressError: If a refresh is already in flight
        """
        with self._guard:
            if self._in_flight:
                raise RefreshInProgressError()
            self._in_flight = True
            try:
                future = self._executor.submit(self._run_guarded, trigger)
            except RuntimeError:
                self._in_flight = False
                raise
            self._current = future

        return future

    def run(self, trigger: RefreshTrigger = RefreshTrigger.MANUAL) -> RefreshResult:
        """Run a refresh and wait for its result."""
        return self.refresh(trigger).result()

    def get_latest_status(self) -> IngestionStatusView:
        """Status of the most recently started run, or NOT_AVAILABLE."""
        return self.repository.get_latest_status()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting refreshes; optionally wait for the running one."""
        self._executor.shutdown(wait=wait)

    # =========================================================================
    # Run body
    # =========================================================================

    def _run_guarded(self, trigger: RefreshTrigger) -> RefreshResult:
        try:
            return self._execute(trigger)
        finally:
            # Released before the future resolves, so callers awaiting it can
            # immediately start the next run
            with self._guard:
                self._in_flight = False
                self._current = None

    def _set_phase(self, phase: RefreshPhase) -> None:
        self._phase = phase
        logger.debug(f"Refresh phase: {phase.value}")

    def _on_loader_phase(self, name: str) -> None:
        self._set_phase(RefreshPhase(name))

    def _execute(self, trigger: RefreshTrigger) -> RefreshResult:
        started = time.monotonic()
        started_at = datetime.now(timezone.utc)
        report = CleanupReport()
        ingestion_id: int | None = None
        work_dir = Path(tempfile.mkdtemp(prefix="faa-refresh-"))

        logger.info("=" * 60)
        logger.info(f"STARTING FAA REGISTRY REFRESH (trigger: {trigger.value})")
        logger.info(f"Source: {self.dataset_url}")
        logger.info("=" * 60)

        try:
            # Step 1: Download
            self._set_phase(RefreshPhase.DOWNLOADING)
            logger.info("Step 1/3: Downloading registry archive...")
            download = self.downloader.download(self.dataset_url, work_dir / ARCHIVE_FILE_NAME)
            downloaded_at = datetime.now(timezone.utc)

            # Step 2: Open the ingestion record
            record = self.repository.start(
                source_url=self.dataset_url,
                downloaded_at=downloaded_at,
                data_version=download.data_version,
                trigger=trigger,
            )
            ingestion_id = record.id
            report.ingestion_id = ingestion_id

            # Step 3: Stage and merge
            with ingestion_context(ingestion_id):
                logger.info(f"Step 2/3: Loading archive into ingestion {ingestion_id}...")
                stats = self.loader.load(download.path, ingestion_id)

                logger.info("Step 3/3: Finalizing ingestion record...")
                self.repository.complete(ingestion_id, stats)

            self._set_phase(RefreshPhase.COMPLETED)
            result = RefreshResult(
                ingestion_id=ingestion_id,
                stats=stats,
                duration_ms=int((time.monotonic() - started) * 1000),
                trigger=trigger,
                data_version=download.data_version,
                downloaded_at=downloaded_at,
                started_at=record.started_at,
            )

            try:
                self.notifier.on_success(
                    ingestion_id=ingestion_id,
                    stats=stats.to_dict(),
                    duration_ms=result.duration_ms,
                    trigger=trigger.value,
                )
            except Exception as notify_error:
                logger.warning(f"Failed to send success notification: {notify_error}")

            logger.info(
                f"Refresh complete: ingestion={ingestion_id}, "
                f"duration={result.duration_ms}ms, dataVersion={result.data_version}"
            )
            return result

        except Exception as e:
            self._set_phase(RefreshPhase.FAILED)
            category, message = self._categorize_error(e)
            duration_ms = int((time.monotonic() - started) * 1000)

            logger.error(f"Refresh FAILED [{category}]: {message}")
            logger.debug(f"Full traceback:\n{traceback.format_exc()}")

            if ingestion_id is not None:
                run_best_effort(
                    "mark_failed",
                    self.repository.fail,
                    ingestion_id,
                    f"[{category}] {message}",
                )

            try:
                self.notifier.on_failure(
                    ingestion_id=ingestion_id,
                    error_category=category,
                    error_message=message,
                    duration_ms=duration_ms,
                    trigger=trigger.value,
                )
            except Exception as notify_error:
                logger.warning(f"Failed to send failure notification: {notify_error}")

            raise

        finally:
            if ingestion_id is not None:
                run_best_effort("clear_staging", self.staging.cleanup, ingestion_id, report=report)
            run_best_effort("remove_temp_dir", shutil.rmtree, work_dir, report=report)

            self.last_cleanup = report
            if not report.succeeded:
                logger.warning(f"Cleanup incomplete: {', '.join(report.failed_operations())}")

            elapsed = (datetime.now(timezone.utc) - started_at).total_seconds()
            logger.info(f"Refresh finished in {elapsed:.1f}s")
            self._set_phase(RefreshPhase.IDLE)

    def _categorize_error(self, error: Exception) -> tuple[str, str]:
        """
        Categorize an error for logging and storage.

        Returns:
            Tuple of (error_category, error_message)
        """
        if isinstance(error, DownloadTimeoutError):
            category = "DOWNLOAD_TIMEOUT"
            message = f"Dataset download timed out after {error.timeout}s"
        elif isinstance(error, DownloadConnectionError):
            category = "DOWNLOAD_CONNECTION"
            message = f"Failed to connect to dataset host: {error.message}"
        elif isinstance(error, DatasetDownloadError):
            category = "DOWNLOAD"
            status = f"HTTP {error.status_code}" if error.status_code else "no status"
            message = f"Dataset download failed ({status}): {error.message}"
        elif isinstance(error, DownloadError):
            category = "DOWNLOAD"
            message = f"Dataset download failed: {error.message}"
        elif isinstance(error, MissingTableError):
            category = "MISSING_TABLE"
            message = error.message
        elif isinstance(error, ArchiveError):
            category = "ARCHIVE"
            message = f"Archive error: {error.message}"
        elif isinstance(error, StagingError):
            category = "STAGING"
            message = f"Staging failed: {error.message}"
        elif isinstance(error, MergeError):
            category = "MERGE"
            message = f"Merge failed: {error.message}"
        elif isinstance(error, (DatabaseError, SQLAlchemyError)):
            category = "DATABASE"
            message = f"Database error: {error}"
        elif isinstance(error, RegistryServiceError):
            category = "SERVICE"
            message = f"Service error: {error.message}"
        else:
            category = "UNEXPECTED"
            message = f"Unexpected error ({type(error).__name__}): {error}"

        return category, message


def run_refresh(
    engine: Engine,
    trigger: RefreshTrigger = RefreshTrigger.MANUAL,
) -> RefreshResult:
    """
    Run a single refresh with default components.

    Args:
        engine: SQLAlchemy engine of the registry store
        trigger: What started the run

    Returns:
        RefreshResult of the completed run
    """
    service = RefreshService(engine)
    try:
        return service.run(trigger)
    finally:
        service.shutdown()


__all__ = [
    "ARCHIVE_FILE_NAME",
    "RefreshTrigger",
    "RefreshPhase",
    "RefreshResult",
    "RefreshService",
    "run_refresh",
]
