"""Google Veo renderer.

Veo generation is a long-running operation. The first call submits it and
returns 202; later calls (driven by the completion poller) fetch the
operation, chain extend hops when the plan asks for more than one clip, and
finally download the result into the asset store.
"""

import asyncio
import hashlib
import json
from datetime import datetime
from typing import Any

from job_reels.adapters.renderer.base import (
    HTTP_ACCEPTED,
    HTTP_OK,
    HTTP_PROVIDER_FAILED,
    Renderer,
    RenderOutcome,
    build_director_prompt,
    build_dry_run_task,
)
from job_reels.config import settings
from job_reels.domain.enums import RenderMode, RenderStatus, RenderTier, VeoStatus
from job_reels.domain.models import (
    ExtendHop,
    GenerationMetrics,
    RenderQA,
    RenderResult,
    RenderTask,
    Synthesis,
    TaskError,
    VeoState,
    VideoAssetManifest,
    VideoLibraryItem,
    utcnow,
)
from job_reels.errors import ProviderError
from job_reels.logging import get_logger
from job_reels.video.assets import AssetStore
from job_reels.video.capabilities import VEO_ALLOWED_DURATIONS
from job_reels.video.render_planner import EXTEND_SECONDS, snap_to_supported_duration

logger = get_logger(__name__)

EXTEND_RESOLUTION = "720p"
EXTEND_PROMPT = (
    "Continue the same recruiting clip seamlessly. Keep the people, setting, "
    "lighting and pacing consistent and end on the call to action."
)


def normalize_vertex_resolution(resolution: str | None) -> str:
    """Map a WxH or named resolution to the values Veo accepts."""
    if resolution in ("1080x1920", "1920x1080", "1080p"):
        return "1080p"
    return EXTEND_RESOLUTION


def request_hash(
    prompt: str, aspect_ratio: str, resolution: str, duration_seconds: int
) -> str:
    """Fingerprint of a generation request, used to reuse finished renders."""
    payload = {
        "prompt": prompt,
        "aspect_ratio": aspect_ratio,
        "resolution": resolution,
        "duration_seconds": duration_seconds,
        "sample_count": 1,
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()


def is_rate_limited(error: Exception) -> bool:
    return getattr(error, "code", None) == 429 or getattr(error, "status_code", None) == 429


class VeoRenderer(Renderer):
    """Google Veo video generation via the google-genai SDK.

    The SDK is synchronous, so every call runs in the default executor.
    Progress across calls lives in two places on the library item: the
    ``veo`` state (operation name, attempts, request hash) and the pending
    render task (extend hops started, seconds planned).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        fetch_interval: float | None = None,
        asset_store: AssetStore | None = None,
        client: Any = None,
    ) -> None:
        """Initialize the Veo renderer.

        Args:
            api_key: Google API key for Gemini/Veo. Falls back to settings.
            model: Veo model to use. Falls back to settings.
            fetch_interval: Minimum seconds between two operation fetches.
            asset_store: Where finished clips are written.
            client: Pre-built genai client (tests).
        """
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.veo_model
        self.fetch_interval = (
            fetch_interval if fetch_interval is not None else settings.veo_fetch_interval_seconds
        )
        self.asset_store = asset_store or AssetStore()
        self._client: Any = client

        if not self.api_key:
            logger.warning("veo_api_key_missing")

    def _get_client(self) -> Any:
        """Get or create the Google GenAI client."""
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def name(self) -> str:
        return "veo"

    @property
    def is_async(self) -> bool:
        return True

    async def render(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
    ) -> RenderOutcome:
        if not self.api_key:
            task = build_dry_run_task(
                manifest,
                renderer="veo-missing-creds",
                reason="missing_credentials",
                message="A Google API key is required for Veo rendering",
            )
            return RenderOutcome(render_task=task, http_status=HTTP_OK, veo=item.veo)

        prompt = build_director_prompt(manifest)
        plan = manifest.generator.render_plan
        initial = plan.segments[0].seconds if plan else manifest.storyboard_seconds
        duration = snap_to_supported_duration(
            initial, VEO_ALLOWED_DURATIONS, max(VEO_ALLOWED_DURATIONS)
        )
        resolution = normalize_vertex_resolution(
            (plan.resolution if plan else None) or manifest.spec.resolution
        )
        fingerprint = request_hash(prompt, manifest.spec.aspect_ratio, resolution, duration)
        veo = item.veo

        cached = item.render_task
        if (
            veo.status == VeoStatus.READY
            and veo.hash == fingerprint
            and cached is not None
            and cached.has_video_file
            and cached.manifest_version == manifest.version
        ):
            logger.info("veo_render_reused", item_id=item.id, manifest_version=manifest.version)
            return RenderOutcome(render_task=cached, http_status=HTTP_OK, veo=veo)

        try:
            if not veo.operation_name:
                return await self._start(
                    manifest, tier, item, prompt, duration, resolution, fingerprint
                )
            # An in-flight operation is always resumed under the hash it was started with
            return await self._fetch(manifest, tier, item, duration, veo.hash or fingerprint)
        except ProviderError:
            raise
        except Exception as e:
            if is_rate_limited(e):
                return self._rate_limited(manifest, tier, item, duration, fingerprint)
            logger.error("veo_request_failed", item_id=item.id, error=str(e))
            raise ProviderError(
                f"Veo request failed: {e}",
                context={"provider": self.name, "operation_name": veo.operation_name},
            ) from e

    async def _start(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
        prompt: str,
        duration: int,
        resolution: str,
        fingerprint: str,
    ) -> RenderOutcome:
        aspect_ratio = manifest.spec.aspect_ratio
        logger.info(
            "veo_generation_started",
            item_id=item.id,
            model=self.model,
            aspect_ratio=aspect_ratio,
            duration_seconds=duration,
            resolution=resolution,
            planned_extends=manifest.generator.planned_extends,
        )

        operation = await asyncio.get_event_loop().run_in_executor(
            None,
            lambda: self._generate_sync(
                prompt,
                {
                    "aspect_ratio": aspect_ratio,
                    "number_of_videos": 1,
                    "duration_seconds": duration,
                    "resolution": resolution,
                },
            ),
        )

        logger.info("veo_generation_submitted", item_id=item.id, operation_name=operation.name)

        veo = VeoState(
            operation_name=operation.name,
            status=VeoStatus.PREDICTING,
            attempts=0,
            last_fetch_at=None,
            hash=fingerprint,
        )
        task = self._pending_task(manifest, tier, duration, Synthesis())
        return RenderOutcome(render_task=task, http_status=HTTP_ACCEPTED, veo=veo)

    async def _fetch(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
        duration: int,
        fingerprint: str,
    ) -> RenderOutcome:
        veo = item.veo
        now = utcnow()
        synthesis = self._progress(item, manifest)

        if veo.last_fetch_at and (now - veo.last_fetch_at).total_seconds() < self.fetch_interval:
            logger.debug("veo_fetch_throttled", item_id=item.id)
            task = self._pending_task(manifest, tier, duration, synthesis)
            throttled = veo.model_copy(update={"status": VeoStatus.FETCHING})
            return RenderOutcome(render_task=task, http_status=HTTP_ACCEPTED, veo=throttled)

        operation_name = veo.operation_name
        operation = await asyncio.get_event_loop().run_in_executor(
            None, lambda: self._get_operation_sync(operation_name)
        )

        logger.debug(
            "veo_poll_status",
            item_id=item.id,
            operation_name=operation_name,
            done=operation.done,
            attempt=veo.attempts + 1,
        )

        if not operation.done:
            task = self._pending_task(manifest, tier, duration, synthesis)
            state = veo.model_copy(
                update={
                    "status": VeoStatus.FETCHING,
                    "attempts": veo.attempts + 1,
                    "last_fetch_at": now,
                }
            )
            return RenderOutcome(render_task=task, http_status=HTTP_ACCEPTED, veo=state)

        if operation.error:
            message = getattr(operation.error, "message", None) or str(operation.error)
            return self._failed(manifest, item, fingerprint, "veo_generation_failed", message, now)

        video = self._first_video(operation)
        if video is None:
            return self._failed(
                manifest,
                item,
                fingerprint,
                "veo_generation_failed",
                "Generation completed but no video returned",
                now,
            )

        planned = manifest.generator.planned_extends
        completed = len(synthesis.extends)
        if synthesis.clip_id is None:
            synthesis = synthesis.model_copy(
                update={"clip_id": operation_name, "source_uri": video.uri}
            )

        if completed < planned and video.uri:
            return await self._start_extend(
                manifest, tier, item, synthesis, video.uri, duration, fingerprint, now
            )

        return await self._complete(
            manifest, tier, item, synthesis, video, duration, fingerprint, now
        )

    async def _start_extend(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
        synthesis: Synthesis,
        source_uri: str,
        duration: int,
        fingerprint: str,
        now: datetime,
    ) -> RenderOutcome:
        hop = len(synthesis.extends) + 1
        operation = await asyncio.get_event_loop().run_in_executor(
            None,
            lambda: self._generate_sync(
                EXTEND_PROMPT,
                {"number_of_videos": 1, "resolution": EXTEND_RESOLUTION},
                video_uri=source_uri,
            ),
        )

        logger.info(
            "veo_extend_started",
            item_id=item.id,
            hop=hop,
            planned_extends=manifest.generator.planned_extends,
            operation_name=operation.name,
        )

        synthesis = synthesis.model_copy(
            update={"extends": [*synthesis.extends, ExtendHop(hop=hop, clip_id=operation.name)]}
        )
        task = self._pending_task(manifest, tier, duration, synthesis)
        veo = VeoState(
            operation_name=operation.name,
            status=VeoStatus.PREDICTING,
            attempts=0,
            last_fetch_at=now,
            hash=fingerprint,
        )
        return RenderOutcome(
            render_task=task, http_status=HTTP_ACCEPTED, veo=veo, extending=True
        )

    async def _complete(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
        synthesis: Synthesis,
        video: Any,
        duration: int,
        fingerprint: str,
        now: datetime,
    ) -> RenderOutcome:
        hops = len(synthesis.extends)
        seconds = float(duration + hops * EXTEND_SECONDS)
        clip = await self.asset_store.materialize_clip(
            manifest,
            duration_seconds=seconds,
            video_url=video.uri,
            video_bytes=getattr(video, "video_bytes", None),
            headers={"x-goog-api-key": self.api_key},
        )

        price = (
            settings.veo_standard_price_per_second
            if tier == RenderTier.STANDARD
            else settings.veo_fast_price_per_second
        )

        logger.info(
            "veo_generation_completed",
            item_id=item.id,
            seconds_generated=seconds,
            extends_completed=hops,
        )

        task = RenderTask(
            manifest_version=manifest.version,
            mode=RenderMode.FILE,
            status=RenderStatus.COMPLETED,
            renderer=self.name,
            completed_at=now,
            metrics=GenerationMetrics(
                seconds_generated=seconds,
                extends_requested=manifest.generator.planned_extends,
                extends_completed=hops,
                model=self.model,
                tier=tier,
                cost_estimate_usd=round(seconds * price, 2),
                synth_id_watermark=True,
            ),
            result=RenderResult(
                video_url=clip.video_url,
                caption_file_url=clip.caption_file_url,
                poster_url=clip.poster_url,
                synthesis=synthesis,
            ),
        )
        veo = VeoState(
            operation_name=None,
            status=VeoStatus.READY,
            attempts=0,
            last_fetch_at=now,
            hash=fingerprint,
        )
        return RenderOutcome(render_task=task, http_status=HTTP_OK, veo=veo)

    def _failed(
        self,
        manifest: VideoAssetManifest,
        item: VideoLibraryItem,
        fingerprint: str,
        reason: str,
        message: str,
        now: datetime,
    ) -> RenderOutcome:
        logger.error("veo_generation_failed", item_id=item.id, reason=reason, error=message)
        task = build_dry_run_task(
            manifest,
            renderer=self.name,
            status=RenderStatus.FAILED,
            reason=reason,
            message=message,
        )
        veo = VeoState(
            operation_name=None,
            status=VeoStatus.FAILED,
            attempts=item.veo.attempts,
            last_fetch_at=now,
            hash=fingerprint,
        )
        return RenderOutcome(render_task=task, http_status=HTTP_PROVIDER_FAILED, veo=veo)

    def _rate_limited(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
        duration: int,
        fingerprint: str,
    ) -> RenderOutcome:
        logger.warning("veo_rate_limited", item_id=item.id)
        task = self._pending_task(
            manifest,
            tier,
            duration,
            self._progress(item, manifest),
            qa=RenderQA(notes=["vertex-429: backoff recommended"]),
        )
        task = task.model_copy(
            update={
                "error": TaskError(
                    reason="veo_rate_limited", message="Veo quota exhausted, retrying later"
                )
            }
        )
        veo = item.veo.model_copy(
            update={
                "status": VeoStatus.RATE_LIMITED,
                "last_fetch_at": utcnow(),
                "hash": item.veo.hash or fingerprint,
            }
        )
        return RenderOutcome(
            render_task=task,
            http_status=HTTP_ACCEPTED,
            veo=veo,
            poll_delay_seconds=settings.video_rate_limit_poll_delay_seconds,
        )

    def _pending_task(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        duration: float,
        synthesis: Synthesis,
        qa: RenderQA | None = None,
    ) -> RenderTask:
        hops = len(synthesis.extends)
        finished_seconds = duration + (hops - 1) * EXTEND_SECONDS if hops else 0
        return RenderTask(
            manifest_version=manifest.version,
            mode=RenderMode.DRY_RUN,
            status=RenderStatus.RENDERING,
            renderer=self.name,
            metrics=GenerationMetrics(
                seconds_generated=finished_seconds,
                extends_requested=manifest.generator.planned_extends,
                extends_completed=max(0, hops - 1),
                model=self.model,
                tier=tier,
                synth_id_watermark=True,
            ),
            result=RenderResult(synthesis=synthesis, qa=qa),
        )

    @staticmethod
    def _progress(item: VideoLibraryItem, manifest: VideoAssetManifest) -> Synthesis:
        """Clip and extend hops already started for this manifest."""
        task = item.render_task
        if (
            task is None
            or task.manifest_version != manifest.version
            or task.status.is_terminal
            or task.result is None
            or task.result.synthesis is None
        ):
            return Synthesis()
        return task.result.synthesis

    @staticmethod
    def _first_video(operation: Any) -> Any:
        response = getattr(operation, "response", None)
        videos = getattr(response, "generated_videos", None) if response else None
        if not videos:
            return None
        return videos[0].video

    def _generate_sync(
        self, prompt: str, config_kwargs: dict[str, Any], video_uri: str | None = None
    ) -> Any:
        """Submit a generation or extend request (runs in thread pool)."""
        from google.genai import types

        client = self._get_client()
        kwargs: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "config": types.GenerateVideosConfig(**config_kwargs),
        }
        if video_uri:
            kwargs["video"] = types.Video(uri=video_uri)
        return client.models.generate_videos(**kwargs)

    def _get_operation_sync(self, operation_name: str | None) -> Any:
        from google.genai import types

        client = self._get_client()
        return client.operations.get(types.GenerateVideosOperation(name=operation_name))

    async def health_check(self) -> bool:
        """Check if Veo API is accessible.

        Returns:
            True if renderer is operational, False otherwise
        """
        if not self.api_key:
            return False

        try:
            self._get_client()
            return True
        except Exception as e:
            logger.error("veo_health_check_failed", error=str(e))
            return False
