"""
Main notifier combining CloudWatch metrics and Slack alerts.

Provides a unified interface for refresh telemetry.
"""

from faa_registry.utils import logger
from faa_registry.notifications.cloudwatch import CloudWatchPublisher, create_cloudwatch_publisher
from faa_registry.notifications.slack import SlackNotifier, create_slack_notifier


class RefreshNotifier:
    """
    Unified notifier for refresh events.

    - Success: buffered CloudWatch metrics, optional Slack message
    - Failure: buffered CloudWatch metrics and a Slack alert
    """

    def __init__(
        self,
        cloudwatch: CloudWatchPublisher | None = None,
        slack: SlackNotifier | None = None,
    ):
        """
        Initialize the notifier.

        Args:
            cloudwatch: CloudWatch publisher (created if not provided)
            slack: Slack notifier (created if not provided)
        """
        self.cloudwatch = cloudwatch or create_cloudwatch_publisher()
        self.slack = slack or create_slack_notifier()

        logger.debug("RefreshNotifier initialized")

    def on_success(
        self,
        ingestion_id: int,
        stats: dict[str, int],
        duration_ms: float,
        trigger: str,
    ) -> None:
        """
        Handle a completed refresh.

        Args:
            ingestion_id: Ingestion record ID
            stats: Rows merged per entity kind
            duration_ms: Time taken for the run
            trigger: MANUAL or SCHEDULED
        """
        logger.info(f"Recording success: ingestion={ingestion_id}")

        self.cloudwatch.record_success(stats, duration_ms, trigger)
        self.slack.notify_success(ingestion_id=ingestion_id, counts=stats, duration_ms=duration_ms)

    def on_failure(
        self,
        ingestion_id: int | None,
        error_category: str,
        error_message: str,
        duration_ms: float,
        trigger: str,
    ) -> None:
        """
        Handle a failed refresh.

        Args:
            ingestion_id: Ingestion record ID, None if the run failed before one existed
            error_category: Category of the error
            error_message: Detailed error message
            duration_ms: Time taken before failure
            trigger: MANUAL or SCHEDULED
        """
        logger.error(f"Recording failure: [{error_category}] {error_message}")

        self.cloudwatch.record_failure(error_category, duration_ms, trigger)
        self.slack.notify_failure(
            error_category=error_category,
            error_message=error_message,
            ingestion_id=ingestion_id,
            trigger=trigger,
        )

    def flush(self) -> None:
        """Send buffered metrics; errors are logged and swallowed."""
        try:
            self.cloudwatch.flush()
        except Exception as e:
            logger.warning(f"Failed to flush telemetry: {e}")


def create_notifier() -> RefreshNotifier:
    """Create a new notifier."""
    return RefreshNotifier()


# Singleton instance
_notifier: RefreshNotifier | None = None


def get_notifier() -> RefreshNotifier:
    """Get the global notifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = create_notifier()
    return _notifier


__all__ = [
    "RefreshNotifier",
    "create_notifier",
    "get_notifier",
]
