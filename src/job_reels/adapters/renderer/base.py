"""Base interface for video renderers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from job_reels.domain.enums import RenderMode, RenderStatus, RenderTier
from job_reels.domain.models import (
    DryRunBundle,
    RenderQA,
    RenderResult,
    RenderTask,
    TaskError,
    VeoState,
    VideoAssetManifest,
    VideoLibraryItem,
    utcnow,
)

HTTP_OK = 200
HTTP_CREATED = 201
HTTP_ACCEPTED = 202
HTTP_PROVIDER_FAILED = 500


@dataclass
class RenderOutcome:
    """What one render attempt produced.

    A 202 status means the provider is still working and the caller must
    schedule a completion poll.
    """

    render_task: RenderTask
    http_status: int = HTTP_OK
    veo: VeoState | None = None
    poll_delay_seconds: float | None = None
    extending: bool = False

    @property
    def is_pending(self) -> bool:
        return self.http_status == HTTP_ACCEPTED


def build_director_prompt(manifest: VideoAssetManifest) -> str:
    """Turn the storyboard beats into a single text-to-video prompt."""
    beats = "\n".join(
        f"- {shot.phase.value}: {shot.visual}. On-screen text: {shot.on_screen_text}. "
        f"VO: {shot.voice_over}"
        for shot in manifest.storyboard
    )
    target = manifest.generator.target_duration_seconds or "~30"
    return (
        f"Create a single cohesive recruiting clip for {manifest.job.title} "
        f"in {manifest.job.geo}.\n"
        "Tone: energetic, inclusive, people-first.\n"
        f"Channel: {manifest.channel_name}. Aspect {manifest.spec.aspect_ratio}. "
        f"Duration target {target} seconds.\n"
        f"Beats:\n{beats}\n"
        f"Include pay {manifest.job.pay_range or 'as provided'} "
        f"and CTA {manifest.caption.text or 'Apply now'}."
    )


def build_dry_run_task(
    manifest: VideoAssetManifest,
    renderer: str,
    status: RenderStatus = RenderStatus.COMPLETED,
    reason: str | None = None,
    message: str | None = None,
    requested_at: datetime | None = None,
    qa: RenderQA | None = None,
) -> RenderTask:
    """Render task carrying the storyboard bundle instead of a video file."""
    return RenderTask(
        manifest_version=manifest.version,
        mode=RenderMode.DRY_RUN,
        status=status,
        renderer=renderer,
        requested_at=requested_at or utcnow(),
        completed_at=utcnow(),
        result=RenderResult(
            dry_run_bundle=DryRunBundle(
                storyboard=list(manifest.storyboard),
                caption=manifest.caption,
                thumbnail=manifest.thumbnail,
                checklist=list(manifest.compliance.qa_checklist),
            ),
            qa=qa,
        ),
        error=TaskError(reason=reason, message=message) if reason else None,
    )


def build_pending_task(
    manifest: VideoAssetManifest, renderer: str, qa: RenderQA | None = None
) -> RenderTask:
    return RenderTask(
        manifest_version=manifest.version,
        mode=RenderMode.DRY_RUN,
        status=RenderStatus.RENDERING,
        renderer=renderer,
        result=RenderResult(qa=qa) if qa else None,
    )


class Renderer(ABC):
    """Abstract base class for render strategies.

    Implementations:
    - DryRunRenderer: Storyboard bundle only, completes in-call
    - SoraRenderer: OpenAI Sora, polls in-call and stores the file
    - VeoRenderer: Google Veo long-running operation, returns 202 until done
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider id this renderer is registered under."""
        ...

    @property
    def is_async(self) -> bool:
        """True if render() may return 202 and expect to be called again."""
        return False

    @abstractmethod
    async def render(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
    ) -> RenderOutcome:
        """Render a manifest, or advance an in-flight render for the item.

        Args:
            manifest: The manifest to render (the item's active manifest)
            tier: Quality/cost tier
            item: The library item, for operation state and cached results

        Returns:
            RenderOutcome with the new render task and provider state

        Raises:
            ProviderError: If the provider call fails
        """
        ...

    async def health_check(self) -> bool:
        """Check if the renderer is available and healthy.

        Returns:
            True if renderer is operational, False otherwise
        """
        return True
