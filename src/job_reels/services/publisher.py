"""Routes publish requests to the adapter for the item's channel."""

from job_reels.adapters.publisher.base import PublisherAdapter, build_publish_payload
from job_reels.adapters.publisher.channel import ChannelPublisherAdapter
from job_reels.domain.enums import PublishStatus
from job_reels.domain.models import PublishTask, RenderTask, TaskError, VideoAssetManifest, utcnow
from job_reels.logging import get_logger

logger = get_logger(__name__)

CHANNEL_ADAPTER_KEYS = {
    "META_FB_IG_LEAD": "instagram-reels",
    "TIKTOK_LEAD": "tiktok",
    "YOUTUBE_LEAD": "youtube-shorts",
    "SNAPCHAT_LEADS": "snapchat",
    "X_HIRING": "x-video",
}
DEFAULT_ADAPTER_KEY = "video-generic"


def adapter_key_for(channel_id: str) -> str:
    return CHANNEL_ADAPTER_KEYS.get(channel_id, DEFAULT_ADAPTER_KEY)


class PublisherDispatcher:
    """Publishes once per call. Retrying a failed publish is up to the user."""

    def __init__(self, adapters: dict[str, PublisherAdapter] | None = None) -> None:
        """Initialize the dispatcher.

        Args:
            adapters: Adapters by key. Keys without an entry get a
                ChannelPublisherAdapter.
        """
        self.adapters = dict(adapters or {})

    def adapter_for(self, channel_id: str) -> PublisherAdapter:
        key = adapter_key_for(channel_id)
        if key not in self.adapters:
            self.adapters[key] = ChannelPublisherAdapter(key)
        return self.adapters[key]

    async def publish(
        self, manifest: VideoAssetManifest, render_task: RenderTask | None
    ) -> PublishTask:
        """Hand the manifest's rendered asset to its channel adapter.

        Returns:
            PublishTask that is ``published``, ``ready`` (manual upload
            needed) or ``failed``
        """
        adapter = self.adapter_for(manifest.channel_id)
        task = PublishTask(
            channel_id=manifest.channel_id,
            adapter=adapter.key,
            status=PublishStatus.PUBLISHING,
            payload=build_publish_payload(manifest, render_task),
        )

        try:
            outcome = await adapter.publish(manifest, render_task)
        except Exception as e:
            logger.error(
                "publish_adapter_failed",
                adapter=adapter.key,
                manifest_id=manifest.manifest_id,
                error=str(e),
            )
            return task.model_copy(
                update={
                    "status": PublishStatus.FAILED,
                    "error": TaskError(reason="adapter_failed", message=str(e)),
                    "completed_at": utcnow(),
                }
            )

        now = utcnow()
        if outcome.success:
            response = {
                **outcome.response,
                "external_id": outcome.external_id,
                "published_at": now.isoformat(),
            }
            status = PublishStatus.PUBLISHED
        else:
            response = {**outcome.response, "message": outcome.message}
            status = PublishStatus.READY if outcome.manual_upload else PublishStatus.FAILED

        logger.info(
            "publish_dispatched",
            adapter=adapter.key,
            manifest_id=manifest.manifest_id,
            status=status.value,
        )
        return task.model_copy(
            update={
                "status": status,
                "response": response,
                "error": (
                    None
                    if status != PublishStatus.FAILED
                    else TaskError(reason="adapter_rejected", message=outcome.message)
                ),
                "completed_at": now,
            }
        )
