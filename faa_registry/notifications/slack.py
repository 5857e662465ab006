"""
Slack notification sender for refresh alerts.

Sends failure (and optionally success) notifications via an incoming webhook.
"""

from datetime import datetime, timezone

import httpx

from faa_registry.utils import logger
from faa_registry.notifications.config import notification_settings


class SlackNotifier:
    """
    Sends notifications to Slack via incoming webhooks.

    Publishes block-formatted messages for:
    - Refresh failures (with error category and message)
    - Refresh successes (only when SLACK_NOTIFY_ON_SUCCESS is set)
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        notify_on_success: bool | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize Slack notifier.

        Args:
            webhook_url: Slack incoming webhook URL
            notify_on_success: Override SLACK_NOTIFY_ON_SUCCESS
            transport: Optional httpx transport (used by tests)
        """
        self.webhook_url = webhook_url or notification_settings.slack.webhook_url
        self.enabled = notification_settings.slack.enabled and bool(self.webhook_url)
        self.notify_on_success = (
            notification_settings.slack.notify_on_success
            if notify_on_success is None
            else notify_on_success
        )
        self._transport = transport

        if self.enabled:
            logger.info("Slack notifier initialized")
        elif not self.webhook_url:
            logger.debug("Slack webhook URL not configured, notifications disabled")
        else:
            logger.info("Slack notifier disabled")

    def _send(self, payload: dict) -> bool:
        """
        Send a message to Slack.

        Returns:
            True if successful, False otherwise
        """
        if not self.enabled or not self.webhook_url:
            logger.debug("Slack disabled or not configured, skipping notification")
            return False

        try:
            with httpx.Client(timeout=10, transport=self._transport) as client:
                response = client.post(self.webhook_url, json=payload)

                if response.status_code != 200:
                    logger.error(f"Slack webhook failed: {response.status_code} - {response.text}")
                    return False

                logger.info("Slack notification sent successfully")
                return True

        except httpx.HTTPError as e:
            logger.error(f"Failed to send Slack notification: {e}")
            return False

    def notify_failure(
        self,
        error_category: str,
        error_message: str,
        ingestion_id: int | None = None,
        trigger: str | None = None,
        timestamp: datetime | None = None,
    ) -> bool:
        """
        Send a failure notification to Slack.

        Args:
            error_category: Category of the error
            error_message: Detailed error message
            ingestion_id: Ingestion record ID (if one was created)
            trigger: MANUAL or SCHEDULED
            timestamp: When the failure occurred

        Returns:
            True if notification was sent successfully
        """
        timestamp = timestamp or datetime.now(timezone.utc)

        payload = {
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": "🚨 FAA Registry Refresh Failed", "emoji": True},
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Environment:*\n{notification_settings.environment}"},
                        {"type": "mrkdwn", "text": f"*Service:*\n{notification_settings.service_name}"},
                        {"type": "mrkdwn", "text": f"*Error Category:*\n`{error_category}`"},
                        {"type": "mrkdwn", "text": f"*Ingestion ID:*\n{ingestion_id or 'N/A'}"},
                        {"type": "mrkdwn", "text": f"*Trigger:*\n{trigger or 'N/A'}"},
                    ],
                },
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"*Error Message:*\n```{error_message}```"},
                },
                {
                    "type": "context",
                    "elements": [
                        {"type": "mrkdwn", "text": f"⏰ {timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}"}
                    ],
                },
            ]
        }

        return self._send(payload)

    def notify_success(
        self,
        ingestion_id: int,
        counts: dict[str, int],
        duration_ms: float | None = None,
        timestamp: datetime | None = None,
    ) -> bool:
        """
        Send a success notification to Slack (optional, usually disabled).

        Returns:
            True if notification was sent successfully
        """
        if not self.notify_on_success:
            return False

        timestamp = timestamp or datetime.now(timezone.utc)
        duration_str = f"{duration_ms / 1000:.1f}s" if duration_ms else "N/A"
        totals = ", ".join(f"{name}={value:,}" for name, value in counts.items())

        payload = {
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": "✅ FAA Registry Refresh Completed", "emoji": True},
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Ingestion ID:*\n{ingestion_id}"},
                        {"type": "mrkdwn", "text": f"*Duration:*\n{duration_str}"},
                    ],
                },
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"*Totals:*\n{totals or 'N/A'}"},
                },
                {
                    "type": "context",
                    "elements": [
                        {"type": "mrkdwn", "text": f"⏰ {timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}"}
                    ],
                },
            ]
        }

        return self._send(payload)


def create_slack_notifier() -> SlackNotifier:
    """Create a new Slack notifier."""
    return SlackNotifier()


__all__ = ["SlackNotifier", "create_slack_notifier"]
