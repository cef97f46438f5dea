"""Dry-run renderer: returns the storyboard bundle without generating video."""

from job_reels.adapters.renderer.base import HTTP_OK, Renderer, RenderOutcome, build_dry_run_task
from job_reels.domain.enums import RenderTier
from job_reels.domain.models import VideoAssetManifest, VideoLibraryItem
from job_reels.logging import get_logger

logger = get_logger(__name__)


class DryRunRenderer(Renderer):
    """Completes immediately with a storyboard bundle."""

    @property
    def name(self) -> str:
        return "dry_run"

    async def render(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
    ) -> RenderOutcome:
        logger.info(
            "dry_run_render",
            item_id=item.id,
            manifest_version=manifest.version,
            shots=len(manifest.storyboard),
            tier=tier.value,
        )
        task = build_dry_run_task(manifest, renderer=self.name)
        return RenderOutcome(render_task=task, http_status=HTTP_OK, veo=item.veo)
