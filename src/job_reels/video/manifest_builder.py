"""Builds immutable video asset manifests for a job on a channel."""

from pydantic import ValidationError

from job_reels.adapters.content.base import ContentDraft, ContentGenerator, GenerationContext
from job_reels.config import settings
from job_reels.domain.channels import channel_name as lookup_channel_name
from job_reels.domain.channels import is_known_channel, resolve_video_spec
from job_reels.domain.enums import GeneratorMode
from job_reels.domain.models import (
    MIN_STORYBOARD_SHOTS,
    Caption,
    Compliance,
    GeneratorInfo,
    JobPosting,
    JobSnapshot,
    StoryboardShot,
    Thumbnail,
    VideoAssetManifest,
    VideoSpec,
    new_id,
    utcnow,
)
from job_reels.errors import ContentGenerationError, VideoValidationError
from job_reels.logging import get_logger
from job_reels.video.capabilities import (
    capabilities,
    format_capabilities_for_prompt,
    planned_extends,
)
from job_reels.video.fallbacks import (
    build_fallback_caption,
    build_fallback_storyboard,
    build_fallback_thumbnail,
)
from job_reels.video.render_planner import compute_duration_plan, plan_render
from job_reels.video.utils import (
    build_compliance_flags,
    build_qa_checklist,
    build_tracking,
    derive_job_snapshot,
    normalise_shots,
)

logger = get_logger(__name__)


def model_id_for(provider: str) -> str:
    """Configured model id for a render provider."""
    if provider == "veo":
        return settings.veo_model
    if provider == "sora":
        return settings.sora_model
    return provider


class ManifestBuilder:
    """Resolves channel rules, plans the render and assembles a manifest.

    Content comes from a ContentGenerator. Anything that goes wrong there
    (an exception, a storyboard with fewer than four usable shots, a caption
    over the limits) swaps the whole draft for the deterministic fallback and
    records a warning. Generation problems never reach the caller.
    """

    def __init__(
        self,
        content_generator: ContentGenerator | None = None,
        provider: str | None = None,
    ) -> None:
        self.content_generator = content_generator
        self.provider = provider or settings.video_render_provider

    async def build(
        self,
        job: JobPosting,
        channel_id: str,
        channel_name: str | None = None,
        recommended_medium: str | None = None,
        version: int = 1,
    ) -> VideoAssetManifest:
        """Build manifest ``version`` for a job on a channel.

        Args:
            job: The job posting
            channel_id: Target channel id
            channel_name: Display name (looked up when omitted)
            recommended_medium: Preferred medium hint for the generator
            version: Manifest version, assigned by the caller

        Returns:
            The validated, immutable manifest

        Raises:
            VideoValidationError: If the channel id is unknown
        """
        if not is_known_channel(channel_id):
            raise VideoValidationError(
                f"Unknown channel '{channel_id}'", context={"channel_id": channel_id}
            )

        spec = resolve_video_spec(channel_id)
        name = channel_name or lookup_channel_name(channel_id)
        duration_plan = compute_duration_plan(spec)

        model_id = model_id_for(self.provider)
        caps = capabilities(self.provider, model_id)
        render_plan = plan_render(
            duration_plan.target_seconds,
            caps,
            self.provider,
            model_id,
            spec.aspect_ratio,
            spec.resolution,
        )
        extends = min(
            planned_extends(caps, duration_plan.target_seconds, render_plan.segments[0].seconds),
            render_plan.extend_count,
        )

        job_snapshot = derive_job_snapshot(job)
        context = GenerationContext(
            channel_id=channel_id,
            channel_name=name,
            recommended_medium=recommended_medium or spec.medium,
            target_seconds=duration_plan.target_seconds,
            render_plan=render_plan,
            capabilities_text=format_capabilities_for_prompt(caps),
        )

        warnings: list[str] = []
        mode = GeneratorMode.FALLBACK
        llm_provider: str | None = None
        llm_model: str | None = None
        draft_flags: list = []

        try:
            draft = await self._request_draft(job_snapshot, spec, context)
            storyboard, caption, thumbnail = self._validate_draft(draft, job_snapshot, spec)
            mode = GeneratorMode.LLM
            llm_provider, llm_model = draft.provider, draft.model
            draft_flags = list(draft.compliance_flags)
            warnings.extend(draft.warnings)
        except ContentGenerationError as e:
            logger.warning(
                "manifest_content_fallback",
                job_id=job_snapshot.job_id,
                channel_id=channel_id,
                reason=e.message,
            )
            warnings.append(f"Content fallback: {e.message}")
            storyboard = build_fallback_storyboard(job_snapshot, spec)
            caption = build_fallback_caption(job_snapshot, spec)
            thumbnail = build_fallback_thumbnail(job_snapshot)

        manifest = VideoAssetManifest(
            manifest_id=new_id(),
            version=version,
            created_at=utcnow(),
            channel_id=channel_id,
            channel_name=name,
            placement_name=spec.placement_name,
            medium=spec.medium,
            spec=spec,
            job=job_snapshot,
            storyboard=storyboard,
            caption=caption,
            thumbnail=thumbnail,
            compliance=Compliance(
                flags=build_compliance_flags(draft_flags, job_snapshot, spec),
                qa_checklist=build_qa_checklist(spec, storyboard, caption, job_snapshot),
            ),
            tracking=build_tracking(channel_id, job_snapshot),
            generator=GeneratorInfo(
                mode=mode,
                provider=llm_provider,
                model=llm_model,
                warnings=warnings,
                target_duration_seconds=duration_plan.target_seconds,
                planned_extends=extends,
                render_plan=render_plan,
            ),
        )

        logger.info(
            "manifest_built",
            job_id=job_snapshot.job_id,
            channel_id=channel_id,
            version=version,
            generator_mode=mode.value,
            strategy=render_plan.strategy.value,
            planned_seconds=render_plan.final_planned_seconds,
        )
        return manifest

    async def _request_draft(
        self, job_snapshot: JobSnapshot, spec: VideoSpec, context: GenerationContext
    ) -> ContentDraft:
        if self.content_generator is None or not settings.content_generation_enabled:
            raise ContentGenerationError("content generation disabled")
        try:
            draft = await self.content_generator.generate(job_snapshot, spec, context)
        except ContentGenerationError:
            raise
        except Exception as e:
            raise ContentGenerationError(
                f"{self.content_generator.name} failed: {e}",
                context={"generator": self.content_generator.name},
            ) from e
        if not isinstance(draft, ContentDraft):
            raise ContentGenerationError("generator returned a non-draft payload")
        return draft

    def _validate_draft(
        self, draft: ContentDraft, job_snapshot: JobSnapshot, spec: VideoSpec
    ) -> tuple[list[StoryboardShot], Caption, Thumbnail]:
        storyboard = normalise_shots(list(draft.storyboard or []), spec)
        if len(storyboard) < MIN_STORYBOARD_SHOTS:
            raise ContentGenerationError(
                f"storyboard has {len(storyboard)} usable shots, need {MIN_STORYBOARD_SHOTS}"
            )
        if not isinstance(draft.caption, dict):
            raise ContentGenerationError("caption missing from draft")
        try:
            caption = Caption.model_validate(draft.caption)
        except ValidationError as e:
            raise ContentGenerationError(f"caption rejected: {e.error_count()} errors") from e

        thumbnail = build_fallback_thumbnail(job_snapshot)
        if isinstance(draft.thumbnail, dict):
            try:
                thumbnail = Thumbnail.model_validate(draft.thumbnail)
            except ValidationError:
                logger.debug("draft_thumbnail_rejected", job_id=job_snapshot.job_id)
        return storyboard, caption, thumbnail
