"""
Scheduler for periodic registry refreshes.

Uses APScheduler to fire a scheduled refresh at a fixed interval (in minutes).
"""

import threading
from datetime import datetime, timedelta, timezone

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from faa_registry.utils import logger
from faa_registry.utils.exceptions import RefreshInProgressError
from faa_registry.ingestion.config import settings
from faa_registry.ingestion.jobs.refresh_service import RefreshService, RefreshTrigger

MIN_INTERVAL_MINUTES = 1
JOB_ID = "faa_registry_refresh"
# Startup refresh fires this long after start(), through the same job store
RUN_ON_START_DELAY_SECONDS = 1


class RefreshScheduler:
    """
    Fires ``RefreshService.run(SCHEDULED)`` on a fixed interval.

    Features:
    - Interval floor of one minute
    - Ticks that find a refresh in flight are skipped with a warning
    - Failed ticks are logged and never stop the schedule
    - Idempotent start/stop; stop shuts APScheduler down so nothing fires after it,
      including a pending run-on-start refresh
    """

    def __init__(
        self,
        service: RefreshService,
        interval_minutes: int | None = None,
        enabled: bool | None = None,
        run_on_start: bool | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            service: Refresh service shared with manual triggers
            interval_minutes: Refresh interval (default from settings)
            enabled: Whether start() schedules anything (default from settings)
            run_on_start: Fire one refresh right after start (default from settings)
        """
        self.service = service
        requested = interval_minutes if interval_minutes is not None else settings.scheduler.interval_minutes
        self.interval_minutes = max(MIN_INTERVAL_MINUTES, int(requested))
        self.enabled = settings.scheduler.enabled if enabled is None else enabled
        self.run_on_start = settings.scheduler.run_on_start if run_on_start is None else run_on_start

        self._lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None

        logger.info(
            f"RefreshScheduler initialized with {self.interval_minutes}min interval "
            f"(enabled: {self.enabled})"
        )

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        """Handle job execution errors that escaped the tick."""
        logger.error(f"Job {event.job_id} failed with exception: {event.exception}")

    def _on_job_missed(self, event: JobExecutionEvent) -> None:
        logger.warning(f"Job {event.job_id} missed its run time {event.scheduled_run_time}")

    def _run_tick(self) -> None:
        """One scheduled tick: a refresh, with its failures contained."""
        logger.info("=" * 60)
        logger.info(f"Scheduled refresh tick at {datetime.now(timezone.utc).isoformat()}")
        logger.info("=" * 60)

        try:
            result = self.service.run(RefreshTrigger.SCHEDULED)
            logger.info(
                f"Scheduled refresh completed: ingestion={result.ingestion_id}, "
                f"duration={result.duration_ms}ms"
            )
        except RefreshInProgressError:
            logger.warning("Skipping scheduled refresh: a refresh is already in progress")
        except Exception as e:
            logger.error(f"Scheduled refresh failed: {e}")

    def _scheduled_tick(self, owner: BackgroundScheduler) -> None:
        """Job entry point; ticks of a scheduler that has since been stopped are dropped."""
        with self._lock:
            if self._scheduler is not owner:
                logger.debug("Dropping tick of a stopped scheduler")
                return
        self._run_tick()

    def is_active(self) -> bool:
        with self._lock:
            return self._scheduler is not None

    def start(self) -> None:
        """Start the scheduler in the background. No-op if disabled or running."""
        if not self.enabled:
            logger.info("Scheduler disabled (SCHEDULER_ENABLED=false), not starting")
            return

        with self._lock:
            if self._scheduler is not None:
                logger.debug("Scheduler already running")
                return

            scheduler = BackgroundScheduler(timezone=timezone.utc)
            scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
            scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)
            job_options = {}
            if self.run_on_start:
                job_options["next_run_time"] = (
                    datetime.now(timezone.utc) + timedelta(seconds=RUN_ON_START_DELAY_SECONDS)
                )
            scheduler.add_job(
                self._scheduled_tick,
                trigger=IntervalTrigger(minutes=self.interval_minutes),
                args=[scheduler],
                id=JOB_ID,
                name="FAA Registry Refresh",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                **job_options,
            )
            scheduler.start()
            self._scheduler = scheduler

        logger.info("=" * 60)
        logger.info("STARTED REFRESH SCHEDULER")
        logger.info(f"Interval: {self.interval_minutes} minutes")
        logger.info(f"Run on start: {self.run_on_start}")
        logger.info("=" * 60)

    def stop(self) -> None:
        """Stop the scheduler; no further ticks fire. No-op if not running."""
        with self._lock:
            scheduler, self._scheduler = self._scheduler, None

        if scheduler is None:
            return

        logger.info("Stopping scheduler...")
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def create_scheduler(
    service: RefreshService,
    interval_minutes: int | None = None,
    enabled: bool | None = None,
    run_on_start: bool | None = None,
) -> RefreshScheduler:
    """Create a new scheduler with the given settings."""
    return RefreshScheduler(
        service=service,
        interval_minutes=interval_minutes,
        enabled=enabled,
        run_on_start=run_on_start,
    )


__all__ = [
    "MIN_INTERVAL_MINUTES",
    "RUN_ON_START_DELAY_SECONDS",
    "RefreshScheduler",
    "create_scheduler",
]
