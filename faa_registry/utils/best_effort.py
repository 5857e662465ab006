"""
Best-effort execution for steps whose failure must never change a run's outcome.

Cleanup of temp directories and staged rows, telemetry flushes and similar
steps go through ``run_best_effort``: the error is logged and appended to a
``CleanupReport`` instead of propagating.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, NamedTuple

from faa_registry.utils.logger import logger


class BestEffortFailure(NamedTuple):
    """A best-effort operation that raised."""
    operation: str
    error: Exception


@dataclass
class CleanupReport:
    """Record of the best-effort steps attempted for one ingestion run."""

    ingestion_id: int | None = None
    attempted: list[str] = field(default_factory=list)
    failures: list[BestEffortFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def failed_operations(self) -> list[str]:
        return [failure.operation for failure in self.failures]


def run_best_effort(
    operation: str,
    func: Callable[..., Any],
    *args: Any,
    report: CleanupReport | None = None,
    **kwargs: Any,
) -> bool:
    """
    Run ``func`` and swallow any exception it raises.

    Args:
        operation: Name recorded in the report and the log line
        func: Callable to run
        report: Optional report that collects attempts and failures

    Returns:
        True if the call completed, False if it raised
    """
    if report is not None:
        report.attempted.append(operation)

    try:
        func(*args, **kwargs)
        return True
    except Exception as e:
        logger.warning(f"Best-effort step '{operation}' failed: {e}")
        if report is not None:
            report.failures.append(BestEffortFailure(operation=operation, error=e))
        return False


__all__ = ["BestEffortFailure", "CleanupReport", "run_best_effort"]
