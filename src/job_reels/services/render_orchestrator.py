"""Validates a render request, picks the renderer and maps its outcome."""

from job_reels.adapters.renderer.base import RenderOutcome
from job_reels.adapters.renderer.registry import RendererRegistry, default_registry
from job_reels.config import settings
from job_reels.domain.enums import RenderStatus, RenderTier, VideoStatus
from job_reels.domain.lifecycle import RENDERING_STATES
from job_reels.domain.models import VideoAssetManifest, VideoLibraryItem
from job_reels.errors import ProviderError, VideoPipelineError, VideoValidationError
from job_reels.logging import get_logger
from job_reels.video.capabilities import capabilities

logger = get_logger(__name__)


def resolve_tier(item: VideoLibraryItem) -> RenderTier:
    """Approved items render at standard quality, drafts on the fast tier.

    A render already in flight keeps the tier it was started with.
    """
    pending = item.render_task
    if item.status in RENDERING_STATES and pending and pending.metrics and pending.metrics.tier:
        return pending.metrics.tier
    if item.status == VideoStatus.APPROVED:
        return RenderTier.STANDARD
    return RenderTier.FAST if settings.video_use_fast_for_drafts else RenderTier.STANDARD


def status_for_outcome(outcome: RenderOutcome) -> VideoStatus:
    """Item status a render outcome maps to."""
    status = outcome.render_task.status
    if status == RenderStatus.COMPLETED:
        return VideoStatus.READY
    if status in (RenderStatus.FAILED, RenderStatus.SKIPPED):
        return VideoStatus.PLANNED
    return VideoStatus.EXTENDING if outcome.extending else VideoStatus.GENERATING


class RenderOrchestrator:
    """Dispatches a manifest to the renderer named in its render plan."""

    def __init__(self, registry: RendererRegistry | None = None) -> None:
        self.registry = registry or default_registry()

    def provider_for(self, manifest: VideoAssetManifest) -> str:
        return manifest.provider or settings.video_render_provider

    def validate(self, manifest: VideoAssetManifest, item: VideoLibraryItem) -> None:
        """Reject requests no provider call could fix.

        Raises:
            VideoValidationError: Unknown renderer, channel mismatch,
                unsupported aspect ratio or a plan longer than the model allows
        """
        provider = self.provider_for(manifest)
        if self.registry.get(provider) is None:
            raise VideoValidationError(
                f"No renderer registered for provider '{provider}'",
                context={"provider": provider, "registered": self.registry.names},
            )
        if manifest.channel_id != item.channel_id:
            raise VideoValidationError(
                "Manifest channel does not match the library item",
                context={"manifest_channel": manifest.channel_id, "item_channel": item.channel_id},
            )

        plan = manifest.generator.render_plan
        caps = capabilities(provider, plan.model_id if plan else None)
        if not caps.is_fallback and not caps.supports_aspect_ratio(manifest.spec.aspect_ratio):
            raise VideoValidationError(
                f"{provider} cannot render aspect ratio {manifest.spec.aspect_ratio}",
                context={
                    "provider": provider,
                    "aspect_ratio": manifest.spec.aspect_ratio,
                    "supported": list(caps.supported_aspect_ratios),
                },
            )
        if plan and plan.final_planned_seconds > caps.max_total_seconds:
            raise VideoValidationError(
                f"Planned {plan.final_planned_seconds:g}s exceeds the "
                f"{caps.max_total_seconds}s {provider} limit",
                context={"provider": provider, "planned_seconds": plan.final_planned_seconds},
            )

    async def render(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
    ) -> RenderOutcome:
        """Render (or advance the render of) a manifest.

        Args:
            manifest: Active manifest of the item
            tier: Quality/cost tier
            item: The library item being rendered

        Returns:
            The renderer's outcome

        Raises:
            VideoValidationError: If the request fails validation
            ProviderError: If the renderer fails
        """
        self.validate(manifest, item)
        provider = self.provider_for(manifest)
        renderer = self.registry.get(provider)

        logger.info(
            "render_dispatched",
            item_id=item.id,
            provider=provider,
            tier=tier.value,
            manifest_version=manifest.version,
        )

        try:
            outcome = await renderer.render(manifest, tier, item)
        except VideoPipelineError:
            raise
        except Exception as e:
            logger.error("renderer_error", item_id=item.id, provider=provider, error=str(e))
            raise ProviderError(
                f"{provider} render failed: {e}", context={"provider": provider}
            ) from e

        logger.info(
            "render_outcome",
            item_id=item.id,
            provider=provider,
            http_status=outcome.http_status,
            task_status=outcome.render_task.status.value,
            extending=outcome.extending,
        )
        return outcome
