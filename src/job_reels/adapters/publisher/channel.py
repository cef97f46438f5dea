"""Per-channel publishing adapter.

Real channel uploads live outside this package; the adapter records the
hand-off and assigns a stable external id.
"""

from job_reels.adapters.publisher.base import PublisherAdapter, PublishOutcome
from job_reels.domain.models import RenderTask, VideoAssetManifest
from job_reels.logging import get_logger

logger = get_logger(__name__)

MANUAL_UPLOAD_MESSAGE = "No rendered file attached; flagged for manual upload"


class ChannelPublisherAdapter(PublisherAdapter):
    """Publishes to one channel key."""

    def __init__(self, key: str) -> None:
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    async def publish(
        self, manifest: VideoAssetManifest, render_task: RenderTask | None
    ) -> PublishOutcome:
        if render_task is None or not render_task.has_video_file:
            logger.info(
                "publish_manual_upload_flagged",
                adapter=self.key,
                manifest_id=manifest.manifest_id,
            )
            return PublishOutcome(
                success=False,
                manual_upload=True,
                message=MANUAL_UPLOAD_MESSAGE,
                response={"adapter": self.key, "manual_upload": True},
            )

        external_id = f"{self.key}-{manifest.manifest_id}"
        logger.info("publish_completed", adapter=self.key, external_id=external_id)
        return PublishOutcome(
            success=True,
            external_id=external_id,
            response={"adapter": self.key, "external_id": external_id},
        )
