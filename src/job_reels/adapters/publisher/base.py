"""Base interface for channel publishing adapters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from job_reels.domain.models import RenderTask, VideoAssetManifest


@dataclass
class PublishOutcome:
    """Response from handing a video to a channel."""

    success: bool
    external_id: str | None = None
    manual_upload: bool = False
    message: str | None = None
    response: dict[str, Any] = field(default_factory=dict)


def build_publish_payload(
    manifest: VideoAssetManifest, render_task: RenderTask | None
) -> dict[str, Any]:
    """What a channel needs to post the asset."""
    payload: dict[str, Any] = {
        "manifest_id": manifest.manifest_id,
        "channel_id": manifest.channel_id,
        "placement": manifest.placement_name,
        "caption": manifest.caption.model_dump(mode="json"),
        "utm": manifest.tracking.model_dump(mode="json"),
        "checklist": [qa.model_dump(mode="json") for qa in manifest.compliance.qa_checklist],
    }
    if render_task is not None and render_task.has_video_file and render_task.result:
        payload["video_url"] = render_task.result.video_url
        payload["poster_url"] = render_task.result.poster_url
    return payload


class PublisherAdapter(ABC):
    """Abstract base class for channel publishing adapters.

    Implementations:
    - ChannelPublisherAdapter: Flags assets for upload on one channel key
    """

    @property
    @abstractmethod
    def key(self) -> str:
        """Adapter key (instagram-reels, tiktok, youtube-shorts, ...)."""
        ...

    @abstractmethod
    async def publish(
        self, manifest: VideoAssetManifest, render_task: RenderTask | None
    ) -> PublishOutcome:
        """Publish the rendered asset for a manifest.

        Args:
            manifest: Active manifest of the item
            render_task: Latest render task (may lack a video file)

        Returns:
            PublishOutcome with the external id, or a manual-upload flag
        """
        ...

    async def health_check(self) -> bool:
        """Check if the publisher is available and authenticated.

        Returns:
            True if publisher is operational, False otherwise
        """
        return True
