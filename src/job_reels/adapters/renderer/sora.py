"""OpenAI Sora renderer.

Sora jobs finish in a couple of minutes, so this strategy polls in-call and
returns a terminal task: it never hands a 202 back to the orchestrator.
"""

import asyncio
import time
from typing import Any

import httpx

from job_reels.adapters.renderer.base import (
    HTTP_CREATED,
    HTTP_OK,
    HTTP_PROVIDER_FAILED,
    Renderer,
    RenderOutcome,
    build_director_prompt,
    build_dry_run_task,
)
from job_reels.config import settings
from job_reels.domain.enums import RenderMode, RenderStatus, RenderTier
from job_reels.domain.models import (
    GenerationMetrics,
    RenderResult,
    RenderTask,
    Synthesis,
    TaskError,
    VideoAssetManifest,
    VideoLibraryItem,
    utcnow,
)
from job_reels.errors import ProviderError
from job_reels.logging import get_logger
from job_reels.video.assets import AssetStore
from job_reels.video.capabilities import SORA_ALLOWED_SECONDS
from job_reels.video.render_planner import snap_to_supported_duration

logger = get_logger(__name__)

ASPECT_TO_SIZE = {
    "9:16": "720x1280",
    "16:9": "1280x720",
    "4:5": "1024x1792",
    "5:4": "1792x1024",
}


class SoraRenderer(Renderer):
    """Renders a manifest with the OpenAI videos API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        poll_interval: float | None = None,
        timeout: float | None = None,
        asset_store: AssetStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Sora renderer.

        Args:
            api_key: OpenAI API key. Falls back to settings.
            model: Sora model id. Falls back to settings.
            base_url: OpenAI API base URL.
            poll_interval: Seconds between status checks.
            timeout: Give up after this many seconds.
            asset_store: Where finished clips are written.
            transport: Optional httpx transport (tests).
        """
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.sora_model
        self.base_url = (base_url or settings.sora_base_url).rstrip("/")
        self.poll_interval = poll_interval if poll_interval is not None else (
            settings.sora_poll_interval_seconds
        )
        self.timeout = timeout or settings.sora_poll_timeout_seconds
        self.asset_store = asset_store or AssetStore()
        self._transport = transport

        if not self.api_key:
            logger.warning("sora_api_key_missing")

    @property
    def name(self) -> str:
        return "sora"

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=60.0, transport=self._transport)

    def _build_payload(self, manifest: VideoAssetManifest) -> dict[str, Any]:
        plan = manifest.generator.render_plan
        target = plan.segments[0].seconds if plan else manifest.storyboard_seconds
        seconds = snap_to_supported_duration(
            target, SORA_ALLOWED_SECONDS, max(SORA_ALLOWED_SECONDS)
        )
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": build_director_prompt(manifest),
            "seconds": str(seconds),
        }
        size = ASPECT_TO_SIZE.get(manifest.spec.aspect_ratio)
        if size:
            payload["size"] = size
        return payload

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code == 429:
            raise ProviderError("Sora rate limited", code="rate_limited")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Sora error: HTTP {response.status_code}",
                context={"provider": "sora", "body": response.text[:500]},
            ) from e

    async def render(
        self,
        manifest: VideoAssetManifest,
        tier: RenderTier,
        item: VideoLibraryItem,
    ) -> RenderOutcome:
        requested_at = utcnow()
        if not self.api_key:
            task = build_dry_run_task(
                manifest,
                renderer="sora-missing-creds",
                reason="missing_credentials",
                message="An OpenAI API key is required for Sora rendering",
                requested_at=requested_at,
            )
            return RenderOutcome(render_task=task, http_status=HTTP_OK, veo=item.veo)

        payload = self._build_payload(manifest)
        logger.info(
            "sora_generation_started",
            item_id=item.id,
            model=payload["model"],
            seconds=payload["seconds"],
            size=payload.get("size"),
        )

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/videos", headers=self._headers, json=payload
                )
                self._raise_for_status(response)
                video_id = response.json().get("id")
                if not video_id:
                    raise ProviderError("Sora response did not include a job id")

                status = await self._wait_for_completion(client, video_id)
        except httpx.HTTPError as e:
            raise ProviderError(f"Sora request failed: {e}", context={"provider": "sora"}) from e

        if status.get("status") == "failed":
            message = (status.get("error") or {}).get("message") or "Sora generation failed"
            logger.error("sora_generation_failed", item_id=item.id, video_id=video_id)
            task = RenderTask(
                manifest_version=manifest.version,
                mode=RenderMode.FILE,
                status=RenderStatus.FAILED,
                renderer=self.name,
                requested_at=requested_at,
                completed_at=utcnow(),
                error=TaskError(reason="sora_generation_failed", message=message),
            )
            return RenderOutcome(
                render_task=task, http_status=HTTP_PROVIDER_FAILED, veo=item.veo
            )

        seconds = float(status.get("seconds") or payload["seconds"])
        clip = await self.asset_store.materialize_clip(
            manifest,
            duration_seconds=seconds,
            video_url=f"{self.base_url}/videos/{video_id}/content",
            headers=self._headers,
        )

        logger.info("sora_generation_completed", item_id=item.id, video_id=video_id)

        task = RenderTask(
            manifest_version=manifest.version,
            mode=RenderMode.FILE,
            status=RenderStatus.COMPLETED,
            renderer=self.name,
            requested_at=requested_at,
            completed_at=utcnow(),
            metrics=GenerationMetrics(
                seconds_generated=seconds,
                model=self.model,
                tier=tier,
                synth_id_watermark=False,
            ),
            result=RenderResult(
                video_url=clip.video_url,
                caption_file_url=clip.caption_file_url,
                poster_url=clip.poster_url,
                synthesis=Synthesis(clip_id=video_id),
            ),
        )
        return RenderOutcome(render_task=task, http_status=HTTP_CREATED, veo=item.veo)

    async def _wait_for_completion(
        self, client: httpx.AsyncClient, video_id: str
    ) -> dict[str, Any]:
        deadline = time.monotonic() + self.timeout
        attempt = 0
        while time.monotonic() < deadline:
            attempt += 1
            response = await client.get(
                f"{self.base_url}/videos/{video_id}", headers=self._headers
            )
            self._raise_for_status(response)
            data = response.json()
            status = data.get("status")

            logger.debug("sora_poll_status", video_id=video_id, status=status, attempt=attempt)

            if status in ("succeeded", "completed"):
                return {**data, "status": "completed"}
            if status == "failed":
                return data
            await asyncio.sleep(self.poll_interval)

        raise ProviderError(
            f"Sora generation timed out after {self.timeout:.0f} seconds",
            code="timeout",
            context={"video_id": video_id},
        )

    async def health_check(self) -> bool:
        return bool(self.api_key)
