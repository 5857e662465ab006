"""
CloudWatch metrics publisher for the registry refresh.

Metrics are buffered in memory while a run is in progress and sent in one
``put_metric_data`` call on ``flush()``:
- RefreshSuccess / RefreshFailure counts
- RefreshDuration (milliseconds)
- Per-entity row counts of successful runs
"""

import threading
from datetime import datetime, timezone
from typing import Any, Literal

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from faa_registry.utils import logger
from faa_registry.notifications.config import notification_settings

MetricUnit = Literal["Count", "Milliseconds", "Seconds", "None"]

# put_metric_data accepts at most this many datums per call
MAX_METRICS_PER_CALL = 1000

ENTITY_METRICS = {
    "manufacturers": "ManufacturersMerged",
    "aircraft_models": "AircraftModelsMerged",
    "engines": "EnginesMerged",
    "aircraft": "AircraftMerged",
    "owners": "OwnersMerged",
    "owner_links": "OwnerLinksMerged",
}


class CloudWatchPublisher:
    """
    Buffers refresh metrics and publishes them to AWS CloudWatch.

    Metrics carry Environment, Service and Trigger dimensions; failures also
    carry an ErrorCategory dimension.
    """

    def __init__(
        self,
        namespace: str | None = None,
        region: str | None = None,
        enabled: bool | None = None,
        client: Any | None = None,
    ):
        """
        Initialize CloudWatch publisher.

        Args:
            namespace: CloudWatch namespace for metrics
            region: AWS region
            enabled: Override the CLOUDWATCH_ENABLED setting
            client: Pre-built boto3 CloudWatch client (used by tests)
        """
        self.enabled = notification_settings.cloudwatch.enabled if enabled is None else enabled
        self.namespace = namespace or notification_settings.cloudwatch.namespace
        self.region = region or notification_settings.cloudwatch.region
        self._buffer: list[dict] = []
        self._lock = threading.Lock()

        if self.enabled:
            self._client = client or boto3.client("cloudwatch", region_name=self.region)
            logger.info(f"CloudWatch publisher initialized (namespace: {self.namespace})")
        else:
            self._client = None
            logger.info("CloudWatch publisher disabled")

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def _dimensions(self, trigger: str, **extra: str) -> dict[str, str]:
        return {
            "Environment": notification_settings.environment,
            "Service": notification_settings.service_name,
            "Trigger": trigger,
            **extra,
        }

    def _put_metric(
        self,
        metric_name: str,
        value: float,
        unit: MetricUnit = "Count",
        dimensions: dict[str, str] | None = None,
    ) -> None:
        """Queue a single metric for the next flush."""
        if not self.enabled:
            logger.debug(f"CloudWatch disabled, skipping metric: {metric_name}")
            return

        metric_data = {
            "MetricName": metric_name,
            "Value": value,
            "Unit": unit,
            "Timestamp": datetime.now(timezone.utc),
        }
        if dimensions:
            metric_data["Dimensions"] = [{"Name": k, "Value": v} for k, v in dimensions.items()]

        with self._lock:
            self._buffer.append(metric_data)

    def record_success(self, counts: dict[str, int], duration_ms: float, trigger: str) -> None:
        """
        Record a successful refresh.

        Args:
            counts: Rows merged per entity (IngestionStats field names)
            duration_ms: Wall time of the run
            trigger: MANUAL or SCHEDULED
        """
        dimensions = self._dimensions(trigger)

        self._put_metric("RefreshSuccess", 1, "Count", dimensions)
        self._put_metric("RefreshDuration", duration_ms, "Milliseconds", dimensions)
        for field, metric_name in ENTITY_METRICS.items():
            if field in counts:
                self._put_metric(metric_name, counts[field], "Count", dimensions)

    def record_failure(self, error_category: str, duration_ms: float, trigger: str) -> None:
        """
        Record a failed refresh.

        Args:
            error_category: Category of the error (e.g. DOWNLOAD, MERGE)
            duration_ms: Time taken before failure
            trigger: MANUAL or SCHEDULED
        """
        dimensions = self._dimensions(trigger)

        self._put_metric("RefreshFailure", 1, "Count", dimensions)
        self._put_metric(
            "RefreshFailureByCategory",
            1,
            "Count",
            self._dimensions(trigger, ErrorCategory=error_category),
        )
        self._put_metric("RefreshDuration", duration_ms, "Milliseconds", dimensions)

    def flush(self) -> int:
        """
        Send buffered metrics.

        Returns:
            Number of metrics sent. Metrics of a failed call are dropped.
        """
        with self._lock:
            batch, self._buffer = self._buffer, []

        if not batch or not self._client:
            return 0

        sent = 0
        for start in range(0, len(batch), MAX_METRICS_PER_CALL):
            chunk = batch[start:start + MAX_METRICS_PER_CALL]
            try:
                self._client.put_metric_data(Namespace=self.namespace, MetricData=chunk)
                sent += len(chunk)
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Failed to publish CloudWatch metrics: {e}")

        logger.debug(f"Flushed {sent} CloudWatch metrics")
        return sent


def create_cloudwatch_publisher() -> CloudWatchPublisher:
    """Create a new CloudWatch publisher."""
    return CloudWatchPublisher()


__all__ = ["CloudWatchPublisher", "create_cloudwatch_publisher", "ENTITY_METRICS"]
