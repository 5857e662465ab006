"""
FAA Registry Sync - Entry Point

Run the refresh scheduler (blocks until SIGINT/SIGTERM):
    python main.py

Run a single refresh and exit (non-zero exit code on failure):
    python main.py --run-once

Run one scheduled refresh from cron:
    python main.py --run-once --trigger scheduled

Print the latest ingestion status as JSON:
    python main.py --status

Or import and use programmatically:
    from faa_registry.ingestion import RefreshService, create_store_engine

Environment variables:
    DB_URL: SQLAlchemy URL of the registry store (default: sqlite:///data/registry.db)
    FAA_DATASET_URL: Archive URL (default: FAA ReleasableAircraft.zip)
    SCHEDULER_INTERVAL_MINUTES: Refresh interval (default: 60)
    SCHEDULER_RUN_ON_START: Refresh immediately on start (default: false)
"""

import argparse
import json
import signal
import sys
import threading

from dotenv import load_dotenv

from faa_registry.utils.logger import setup_logger, logger
from faa_registry.ingestion.config import settings

load_dotenv()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FAA Releasable Aircraft Registry Sync")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--run-once",
        action="store_true",
        help="Run a single refresh and exit instead of scheduling",
    )
    mode.add_argument(
        "--status",
        action="store_true",
        help="Print the latest ingestion status as JSON and exit",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Refresh interval in minutes (default: from settings)",
    )
    parser.add_argument(
        "--trigger",
        choices=["manual", "scheduled"],
        default="manual",
        help="Trigger recorded for --run-once; cron hosts use 'scheduled' (default: manual)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: from settings)",
    )
    return parser


def run_once(trigger: str = "manual") -> int:
    """Run one refresh recorded under ``trigger``; returns the process exit code."""
    from faa_registry.ingestion import RefreshService, RefreshTrigger, create_store_engine
    from faa_registry.notifications import get_notifier

    engine = create_store_engine()
    notifier = get_notifier()
    service = None

    try:
        service = RefreshService(engine, notifier=notifier)
        result = service.run(RefreshTrigger(trigger.upper()))
        logger.info(
            f"Refresh completed: ingestion={result.ingestion_id}, "
            f"duration={result.duration_ms}ms, dataVersion={result.data_version}"
        )
        return 0
    except Exception as e:
        logger.error(f"Refresh failed: {e}")
        return 1
    finally:
        if service is not None:
            service.shutdown()
        notifier.flush()
        engine.dispose()


def print_status() -> int:
    """Print the latest ingestion status view."""
    from faa_registry.ingestion import create_repository, create_store_engine

    engine = create_store_engine()
    try:
        status = create_repository(engine).get_latest_status()
        print(json.dumps(status.to_dict(), indent=2))
        return 0
    finally:
        engine.dispose()


def run_scheduler(interval_minutes: int | None) -> int:
    """Start the scheduler and block until SIGINT/SIGTERM."""
    from faa_registry.ingestion import RefreshService, create_scheduler, create_store_engine
    from faa_registry.notifications import get_notifier

    engine = create_store_engine()
    notifier = get_notifier()
    service = RefreshService(engine, notifier=notifier)
    scheduler = create_scheduler(service, interval_minutes=interval_minutes, enabled=True)
    stop_event = threading.Event()

    def _shutdown(signum: int, frame) -> None:
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    try:
        scheduler.start()
        logger.info("Scheduler started, waiting for next scheduled run...")
        while not stop_event.wait(timeout=1.0):
            notifier.flush()
    finally:
        scheduler.stop()
        service.shutdown(wait=True)
        notifier.flush()
        engine.dispose()

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the service."""
    args = _build_parser().parse_args(argv)

    # Configure logging
    log_level = args.log_level or settings.logging.level
    setup_logger(
        log_level=log_level,
        log_dir=settings.logging.log_dir,
        log_file=settings.logging.log_file,
        rotation=settings.logging.rotation,
        retention=settings.logging.retention,
        serialize=settings.logging.serialize,
    )

    logger.info("=" * 60)
    logger.info("FAA REGISTRY SYNC SERVICE")
    logger.info("=" * 60)
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Dataset: {settings.dataset.dataset_url}")

    if args.status:
        return print_status()
    if args.run_once:
        return run_once(args.trigger)

    interval = args.interval or settings.scheduler.interval_minutes
    logger.info(f"Starting scheduler with {interval}min interval")
    return run_scheduler(interval)


if __name__ == "__main__":
    sys.exit(main())
