"""In-process pipeline counters."""

from collections import Counter
from collections.abc import Mapping

from job_reels.config import settings
from job_reels.logging import get_logger

logger = get_logger(__name__)

MANIFESTS_CREATED = "video_manifests_created"
RENDERS_COMPLETED = "video_renders_completed"
RENDERS_FAILED = "video_renders_failed"
APPROVALS = "video_approvals"
PUBLISHES = "video_publishes"


class MetricsCollector:
    """Counts pipeline events and emits each increment as a log event.

    Counters live for the lifetime of the process; log shipping is what
    makes them durable.
    """

    def __init__(self, enabled: bool | None = None) -> None:
        self._enabled = settings.metrics_enabled if enabled is None else enabled
        self._counters: Counter[str] = Counter()

    def counter(
        self,
        name: str,
        value: int = 1,
        labels: Mapping[str, str] | None = None,
        item_id: str | None = None,
    ) -> None:
        """Increment a counter.

        Args:
            name: Metric name (e.g., "video_renders_completed")
            value: Amount to increment (default 1)
            labels: Optional labels (e.g., {"provider": "veo"})
            item_id: Optional associated library item
        """
        if not self._enabled:
            return
        self._counters[name] += value
        logger.info(
            "metric_recorded",
            metric=name,
            value=value,
            total=self._counters[name],
            labels=dict(labels or {}),
            item_id=item_id,
        )

    def value(self, name: str) -> int:
        return self._counters[name]

    def snapshot(self) -> dict[str, int]:
        return dict(self._counters)

    def reset(self) -> None:
        self._counters.clear()
