"""Tests for the render strategies and the asset store."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

from job_reels.adapters.renderer.base import (
    HTTP_ACCEPTED,
    HTTP_CREATED,
    HTTP_OK,
    HTTP_PROVIDER_FAILED,
    build_director_prompt,
)
from job_reels.adapters.renderer.dry_run import DryRunRenderer
from job_reels.adapters.renderer.registry import RendererRegistry, default_registry
from job_reels.adapters.renderer.sora import SoraRenderer
from job_reels.adapters.renderer.veo import (
    VeoRenderer,
    normalize_vertex_resolution,
    request_hash,
)
from job_reels.domain.enums import RenderMode, RenderStatus, RenderTier, VeoStatus
from job_reels.domain.models import Caption
from job_reels.errors import ProviderError
from job_reels.video.assets import (
    AssetStore,
    MaterializedClip,
    build_caption_file,
    format_srt_timestamp,
)
from job_reels.video.manifest_builder import ManifestBuilder

CLIP = MaterializedClip(
    video_url="http://localhost:4000/video-assets/clip.mp4",
    caption_file_url="http://localhost:4000/video-assets/clip.srt",
)


def _asset_store() -> AsyncMock:
    store = AsyncMock(spec=AssetStore)
    store.materialize_clip.return_value = CLIP
    return store


async def _manifest(content_generator, job, provider: str, channel_id: str):
    builder = ManifestBuilder(content_generator, provider=provider)
    return await builder.build(job, channel_id)


class TestDryRunRenderer:
    @pytest.mark.asyncio
    async def test_render(self, manifest_builder, job, make_item) -> None:
        manifest = await manifest_builder.build(job, "TIKTOK_LEAD")
        outcome = await DryRunRenderer().render(manifest, RenderTier.FAST, make_item(manifest))

        assert outcome.http_status == HTTP_OK
        assert not outcome.is_pending
        task = outcome.render_task
        assert task.mode == RenderMode.DRY_RUN
        assert task.status == RenderStatus.COMPLETED
        assert task.manifest_version == 1
        bundle = task.result.dry_run_bundle
        assert len(bundle.storyboard) == len(manifest.storyboard)
        assert bundle.caption == manifest.caption
        assert not task.has_video_file

    @pytest.mark.asyncio
    async def test_director_prompt(self, manifest_builder, job) -> None:
        manifest = await manifest_builder.build(job, "TIKTOK_LEAD")
        prompt = build_director_prompt(manifest)

        assert "Line Cook" in prompt
        assert "Aspect 9:16" in prompt
        assert "HOOK:" in prompt
        assert "$22-$26/hour" in prompt


class TestRegistry:
    def test_default_registry(self) -> None:
        registry = default_registry(_asset_store())
        assert registry.names == ["dry_run", "sora", "veo"]
        assert "veo" in registry
        assert registry.get("VEO").name == "veo"
        assert registry.get(None) is None
        assert registry.get("kling") is None

    def test_register(self) -> None:
        registry = RendererRegistry()
        assert "dry_run" not in registry
        registry.register(DryRunRenderer())
        assert registry.names == ["dry_run"]


class TestSoraRenderer:
    @pytest_asyncio.fixture
    async def manifest(self, content_generator, job):
        return await _manifest(content_generator, job, "sora", "TIKTOK_LEAD")

    def _renderer(self, handler, asset_store=None) -> SoraRenderer:
        return SoraRenderer(
            api_key="sk-test",
            base_url="https://api.test/v1",
            poll_interval=0,
            timeout=5,
            asset_store=asset_store or _asset_store(),
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_render_success(self, manifest, make_item) -> None:
        """Test submit, poll until completed and store the clip."""
        requests: list[httpx.Request] = []
        statuses = iter(
            [
                {"id": "video_123", "status": "in_progress"},
                {"id": "video_123", "status": "completed", "seconds": "12"},
            ]
        )

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "POST":
                return httpx.Response(200, json={"id": "video_123", "status": "queued"})
            return httpx.Response(200, json=next(statuses))

        asset_store = _asset_store()
        renderer = self._renderer(handler, asset_store)
        outcome = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))

        assert outcome.http_status == HTTP_CREATED
        task = outcome.render_task
        assert task.mode == RenderMode.FILE
        assert task.status == RenderStatus.COMPLETED
        assert task.renderer == "sora"
        assert task.result.video_url == CLIP.video_url
        assert task.result.synthesis.clip_id == "video_123"
        assert task.metrics.seconds_generated == 12
        assert task.metrics.synth_id_watermark is False
        assert task.has_video_file

        payload = json.loads(requests[0].content)
        assert payload["seconds"] == "12"
        assert payload["size"] == "720x1280"
        assert "Line Cook" in payload["prompt"]
        assert requests[0].headers["Authorization"] == "Bearer sk-test"
        assert len(requests) == 3

        kwargs = asset_store.materialize_clip.call_args.kwargs
        assert kwargs["video_url"] == "https://api.test/v1/videos/video_123/content"
        assert kwargs["headers"] == {"Authorization": "Bearer sk-test"}

    @pytest.mark.asyncio
    async def test_generation_failed(self, manifest, make_item) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"id": "video_9"})
            return httpx.Response(
                200, json={"status": "failed", "error": {"message": "moderation_blocked"}}
            )

        outcome = await self._renderer(handler).render(
            manifest, RenderTier.FAST, make_item(manifest)
        )

        assert outcome.http_status == HTTP_PROVIDER_FAILED
        assert outcome.render_task.status == RenderStatus.FAILED
        assert outcome.render_task.error.reason == "sora_generation_failed"
        assert outcome.render_task.error.message == "moderation_blocked"

    @pytest.mark.asyncio
    async def test_rate_limited(self, manifest, make_item) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": {"message": "slow down"}})

        with pytest.raises(ProviderError) as exc_info:
            await self._renderer(handler).render(manifest, RenderTier.FAST, make_item(manifest))
        assert exc_info.value.code == "rate_limited"

    @pytest.mark.asyncio
    async def test_server_error(self, manifest, make_item) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="internal error")

        with pytest.raises(ProviderError) as exc_info:
            await self._renderer(handler).render(manifest, RenderTier.FAST, make_item(manifest))
        assert exc_info.value.code == "PROVIDER_ERROR"

    @pytest.mark.asyncio
    async def test_missing_credentials(self, manifest, make_item) -> None:
        """Test that a missing key degrades to a storyboard bundle."""
        renderer = SoraRenderer(api_key="", asset_store=_asset_store())
        outcome = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))

        assert outcome.http_status == HTTP_OK
        assert outcome.render_task.renderer == "sora-missing-creds"
        assert outcome.render_task.error.reason == "missing_credentials"
        assert outcome.render_task.mode == RenderMode.DRY_RUN
        assert await renderer.health_check() is False


def _operation(name: str | None = None, done: bool = False, uri: str | None = None):
    operation = MagicMock()
    operation.name = name
    operation.done = done
    operation.error = None
    if uri:
        video = MagicMock()
        video.uri = uri
        video.video_bytes = None
        operation.response.generated_videos = [MagicMock(video=video)]
    return operation


class TestVeoRenderer:
    @pytest_asyncio.fixture
    async def manifest(self, content_generator, job):
        return await _manifest(content_generator, job, "veo", "SNAPCHAT_LEADS")

    def _renderer(self, client, asset_store=None) -> VeoRenderer:
        return VeoRenderer(
            api_key="g-key",
            client=client,
            fetch_interval=0,
            asset_store=asset_store or _asset_store(),
        )

    def test_normalize_resolution(self) -> None:
        assert normalize_vertex_resolution("1080x1920") == "1080p"
        assert normalize_vertex_resolution("1080p") == "1080p"
        assert normalize_vertex_resolution("1080x1080") == "720p"
        assert normalize_vertex_resolution(None) == "720p"

    def test_request_hash_is_stable(self) -> None:
        first = request_hash("prompt", "9:16", "720p", 8)
        assert first == request_hash("prompt", "9:16", "720p", 8)
        assert first != request_hash("prompt", "9:16", "720p", 6)

    @pytest.mark.asyncio
    async def test_start_returns_accepted(self, manifest, make_item) -> None:
        client = MagicMock()
        client.models.generate_videos.return_value = _operation("operations/gen-1")

        outcome = await self._renderer(client).render(
            manifest, RenderTier.FAST, make_item(manifest)
        )

        assert outcome.http_status == HTTP_ACCEPTED
        assert outcome.is_pending
        assert outcome.veo.operation_name == "operations/gen-1"
        assert outcome.veo.status == VeoStatus.PREDICTING
        assert outcome.veo.attempts == 0
        assert outcome.render_task.status == RenderStatus.RENDERING

        config = client.models.generate_videos.call_args.kwargs["config"]
        assert config.aspect_ratio == "9:16"
        assert config.duration_seconds == 8
        assert config.resolution == "1080p"
        assert config.number_of_videos == 1

    @pytest.mark.asyncio
    async def test_fetch_not_done(self, manifest, make_item) -> None:
        client = MagicMock()
        client.models.generate_videos.return_value = _operation("operations/gen-1")
        client.operations.get.return_value = _operation("operations/gen-1", done=False)
        renderer = self._renderer(client)

        started = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))
        item = make_item(manifest, veo=started.veo, render_task=started.render_task)
        outcome = await renderer.render(manifest, RenderTier.FAST, item)

        assert outcome.http_status == HTTP_ACCEPTED
        assert outcome.veo.status == VeoStatus.FETCHING
        assert outcome.veo.attempts == 1
        assert outcome.veo.last_fetch_at is not None
        client.models.generate_videos.assert_called_once()

    @pytest.mark.asyncio
    async def test_changed_request_resumes_in_flight_operation(self, manifest, make_item) -> None:
        client = MagicMock()
        client.models.generate_videos.return_value = _operation("operations/gen-1")
        client.operations.get.return_value = _operation("operations/gen-1", done=False)
        renderer = self._renderer(client)

        started = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))
        edited = manifest.model_copy(update={"caption": Caption(text="Apply today", hashtags=[])})
        item = make_item(edited, veo=started.veo, render_task=started.render_task)
        outcome = await renderer.render(edited, RenderTier.FAST, item)

        assert outcome.veo.operation_name == "operations/gen-1"
        assert outcome.veo.hash == started.veo.hash
        client.models.generate_videos.assert_called_once()
        client.operations.get.assert_called_once()

    @pytest.mark.asyncio
    async def test_fetch_throttled(self, manifest, make_item) -> None:
        client = MagicMock()
        client.models.generate_videos.return_value = _operation("operations/gen-1")
        client.operations.get.return_value = _operation("operations/gen-1", done=False)
        renderer = VeoRenderer(
            api_key="g-key", client=client, fetch_interval=3600, asset_store=_asset_store()
        )

        started = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))
        item = make_item(manifest, veo=started.veo, render_task=started.render_task)
        first = await renderer.render(manifest, RenderTier.FAST, item)
        item = make_item(manifest, veo=first.veo, render_task=first.render_task)
        second = await renderer.render(manifest, RenderTier.FAST, item)

        assert second.http_status == HTTP_ACCEPTED
        assert client.operations.get.call_count == 1

    @pytest.mark.asyncio
    async def test_fetch_completed(self, manifest, make_item) -> None:
        """Test that a finished operation is downloaded and priced."""
        client = MagicMock()
        client.models.generate_videos.return_value = _operation("operations/gen-1")
        client.operations.get.return_value = _operation(
            "operations/gen-1", done=True, uri="https://files.example.com/gen-1.mp4"
        )
        asset_store = _asset_store()
        renderer = self._renderer(client, asset_store)

        started = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))
        item = make_item(manifest, veo=started.veo, render_task=started.render_task)
        outcome = await renderer.render(manifest, RenderTier.FAST, item)

        assert outcome.http_status == HTTP_OK
        task = outcome.render_task
        assert task.status == RenderStatus.COMPLETED
        assert task.mode == RenderMode.FILE
        assert task.metrics.seconds_generated == 8
        assert task.metrics.cost_estimate_usd == 1.2
        assert task.metrics.synth_id_watermark is True
        assert task.result.synthesis.clip_id == "operations/gen-1"
        assert outcome.veo.status == VeoStatus.READY
        assert outcome.veo.operation_name is None

        kwargs = asset_store.materialize_clip.call_args.kwargs
        assert kwargs["video_url"] == "https://files.example.com/gen-1.mp4"
        assert kwargs["headers"] == {"x-goog-api-key": "g-key"}

    @pytest.mark.asyncio
    async def test_completed_render_is_reused(self, manifest, make_item) -> None:
        client = MagicMock()
        client.models.generate_videos.return_value = _operation("operations/gen-1")
        client.operations.get.return_value = _operation(
            "operations/gen-1", done=True, uri="https://files.example.com/gen-1.mp4"
        )
        renderer = self._renderer(client)

        started = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))
        item = make_item(manifest, veo=started.veo, render_task=started.render_task)
        done = await renderer.render(manifest, RenderTier.FAST, item)
        item = make_item(manifest, veo=done.veo, render_task=done.render_task)
        again = await renderer.render(manifest, RenderTier.FAST, item)

        assert again.http_status == HTTP_OK
        assert again.render_task.id == done.render_task.id
        client.models.generate_videos.assert_called_once()
        client.operations.get.assert_called_once()

    @pytest.mark.asyncio
    async def test_operation_error(self, manifest, make_item) -> None:
        client = MagicMock()
        client.models.generate_videos.return_value = _operation("operations/gen-1")
        failed = _operation("operations/gen-1", done=True)
        failed.error = MagicMock(message="Prompt blocked by safety filters")
        client.operations.get.return_value = failed
        renderer = self._renderer(client)

        started = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))
        item = make_item(manifest, veo=started.veo, render_task=started.render_task)
        outcome = await renderer.render(manifest, RenderTier.FAST, item)

        assert outcome.http_status == HTTP_PROVIDER_FAILED
        assert outcome.render_task.status == RenderStatus.FAILED
        assert outcome.render_task.error.reason == "veo_generation_failed"
        assert outcome.render_task.error.message == "Prompt blocked by safety filters"
        assert outcome.veo.status == VeoStatus.FAILED

    @pytest.mark.asyncio
    async def test_rate_limited(self, manifest, make_item) -> None:
        class QuotaExceeded(Exception):
            code = 429

        client = MagicMock()
        client.models.generate_videos.side_effect = QuotaExceeded("RESOURCE_EXHAUSTED")

        outcome = await self._renderer(client).render(
            manifest, RenderTier.FAST, make_item(manifest)
        )

        assert outcome.http_status == HTTP_ACCEPTED
        assert outcome.veo.status == VeoStatus.RATE_LIMITED
        assert outcome.poll_delay_seconds == 90
        assert outcome.render_task.error.reason == "veo_rate_limited"
        assert "vertex-429: backoff recommended" in outcome.render_task.result.qa.notes

    @pytest.mark.asyncio
    async def test_sdk_error_is_provider_error(self, manifest, make_item) -> None:
        client = MagicMock()
        client.models.generate_videos.side_effect = RuntimeError("connection reset")

        with pytest.raises(ProviderError):
            await self._renderer(client).render(manifest, RenderTier.FAST, make_item(manifest))

    @pytest.mark.asyncio
    async def test_missing_credentials(self, manifest, make_item) -> None:
        renderer = VeoRenderer(api_key="", client=MagicMock(), asset_store=_asset_store())
        outcome = await renderer.render(manifest, RenderTier.FAST, make_item(manifest))

        assert outcome.http_status == HTTP_OK
        assert outcome.render_task.renderer == "veo-missing-creds"
        assert outcome.render_task.error.reason == "missing_credentials"

    @pytest.mark.asyncio
    async def test_extend_hop(self, content_generator, job, make_item) -> None:
        """Test base clip, one extend hop, then completion at 15 seconds."""
        manifest = await _manifest(content_generator, job, "veo", "YOUTUBE_LEAD")
        assert manifest.generator.planned_extends == 1

        client = MagicMock()
        client.models.generate_videos.side_effect = [
            _operation("operations/gen-1"),
            _operation("operations/ext-1"),
        ]
        client.operations.get.side_effect = [
            _operation("operations/gen-1", done=True, uri="https://files.example.com/gen-1.mp4"),
            _operation("operations/ext-1", done=True, uri="https://files.example.com/ext-1.mp4"),
        ]
        asset_store = _asset_store()
        renderer = self._renderer(client, asset_store)

        started = await renderer.render(manifest, RenderTier.STANDARD, make_item(manifest))
        item = make_item(manifest, veo=started.veo, render_task=started.render_task)
        extending = await renderer.render(manifest, RenderTier.STANDARD, item)

        assert extending.http_status == HTTP_ACCEPTED
        assert extending.extending is True
        assert extending.veo.operation_name == "operations/ext-1"
        synthesis = extending.render_task.result.synthesis
        assert [hop.clip_id for hop in synthesis.extends] == ["operations/ext-1"]
        assert extending.render_task.metrics.seconds_generated == 8

        extend_call = client.models.generate_videos.call_args_list[1].kwargs
        assert extend_call["video"].uri == "https://files.example.com/gen-1.mp4"
        assert extend_call["config"].resolution == "720p"

        item = make_item(manifest, veo=extending.veo, render_task=extending.render_task)
        done = await renderer.render(manifest, RenderTier.STANDARD, item)

        assert done.http_status == HTTP_OK
        assert done.render_task.metrics.seconds_generated == 15
        assert done.render_task.metrics.extends_completed == 1
        assert done.render_task.metrics.cost_estimate_usd == 6.0
        assert done.render_task.result.synthesis.source_uri == (
            "https://files.example.com/gen-1.mp4"
        )
        kwargs = asset_store.materialize_clip.call_args.kwargs
        assert kwargs["video_url"] == "https://files.example.com/ext-1.mp4"


class TestAssetStore:
    def test_srt_timestamp(self) -> None:
        assert format_srt_timestamp(0) == "00:00:00,000"
        assert format_srt_timestamp(61.5) == "00:01:01,500"
        assert format_srt_timestamp(3725.042) == "01:02:05,042"

    def test_caption_file(self) -> None:
        caption = Caption(text="Join the kitchen team", hashtags=["jobs", "#hiring"])
        assert build_caption_file(caption, 12) == (
            "1\n00:00:00,000 --> 00:00:12,000\nJoin the kitchen team\n#jobs #hiring\n"
        )

    def test_caption_file_defaults(self) -> None:
        assert build_caption_file(None, None) == (
            "1\n00:00:00,000 --> 00:00:30,000\nApply now to join the team.\n"
        )

    @pytest.mark.asyncio
    async def test_materialize_bytes(self, manifest_builder, job, tmp_path) -> None:
        manifest = await manifest_builder.build(job, "TIKTOK_LEAD")
        store = AssetStore(output_dir=tmp_path, public_base_url="https://cdn.example.com/v/")

        clip = await store.materialize_clip(manifest, 8, video_bytes=b"\x00\x01mp4")

        assert clip.video_url.startswith("https://cdn.example.com/v/")
        assert clip.video_url.endswith(".mp4")
        assert clip.caption_file_url.endswith(".srt")
        assert clip.poster_url is None
        video_file = tmp_path / clip.video_url.rsplit("/", 1)[1]
        assert video_file.read_bytes() == b"\x00\x01mp4"
        srt_file = tmp_path / clip.caption_file_url.rsplit("/", 1)[1]
        assert "00:00:08,000" in srt_file.read_text()

    @pytest.mark.asyncio
    async def test_materialize_without_payload(self, manifest_builder, job, tmp_path) -> None:
        manifest = await manifest_builder.build(job, "TIKTOK_LEAD")
        store = AssetStore(output_dir=tmp_path)

        with pytest.raises(ProviderError) as exc_info:
            await store.materialize_clip(manifest, 8)
        assert exc_info.value.code == "missing_video_payload"
