"""
Notifications module for CloudWatch metrics and Slack alerts.

Provides monitoring and alerting for the registry refresh:
- CloudWatch custom metrics (success/failure counts, duration, row counts)
- Slack webhook alerts for failures

Usage:
    from faa_registry.notifications import get_notifier

    notifier = get_notifier()
    notifier.on_success(ingestion_id=1, stats={...}, duration_ms=1234, trigger="MANUAL")
    notifier.flush()

Configuration (environment variables):
    CLOUDWATCH_ENABLED: Enable CloudWatch metrics (default: false)
    CLOUDWATCH_NAMESPACE: Metric namespace (default: FaaRegistry/Refresh)
    SLACK_WEBHOOK_URL: Slack incoming webhook (alerts disabled when unset)
    SLACK_NOTIFY_ON_SUCCESS: Also post successful runs (default: false)
"""

from faa_registry.notifications.config import (
    CloudWatchSettings,
    SlackSettings,
    NotificationSettings,
    notification_settings,
    get_notification_settings,
)
from faa_registry.notifications.cloudwatch import (
    CloudWatchPublisher,
    create_cloudwatch_publisher,
)
from faa_registry.notifications.slack import (
    SlackNotifier,
    create_slack_notifier,
)
from faa_registry.notifications.notifier import (
    RefreshNotifier,
    create_notifier,
    get_notifier,
)

__all__ = [
    # Config
    "CloudWatchSettings",
    "SlackSettings",
    "NotificationSettings",
    "notification_settings",
    "get_notification_settings",
    # CloudWatch
    "CloudWatchPublisher",
    "create_cloudwatch_publisher",
    # Slack
    "SlackNotifier",
    "create_slack_notifier",
    # Main notifier
    "RefreshNotifier",
    "create_notifier",
    "get_notifier",
]
