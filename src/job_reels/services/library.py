"""Video library service: creates items, drives renders and applies the lifecycle."""

import asyncio
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from job_reels.adapters.content.base import ContentGenerator
from job_reels.adapters.renderer.base import RenderOutcome
from job_reels.config import settings
from job_reels.domain.enums import (
    BulkAction,
    PublishStatus,
    RenderStatus,
    VeoStatus,
    VideoStatus,
)
from job_reels.domain.lifecycle import (
    RENDERING_STATES,
    append_audit,
    ensure_regenerable,
    ensure_transition,
    render_path,
)
from job_reels.domain.models import (
    AuditEntry,
    Caption,
    JobPosting,
    ListFilters,
    RenderTask,
    TaskError,
    VeoState,
    VideoLibraryItem,
    new_id,
    utcnow,
)
from job_reels.errors import InvalidTransitionError, ProviderError, VideoValidationError
from job_reels.logging import bind_item_context, clear_item_context, get_logger
from job_reels.services import metrics as metric_names
from job_reels.services.metrics import MetricsCollector
from job_reels.services.poller import AsyncCompletionPoller
from job_reels.services.publisher import PublisherDispatcher
from job_reels.services.render_orchestrator import (
    RenderOrchestrator,
    resolve_tier,
    status_for_outcome,
)
from job_reels.services.store import VideoItemStore, get_store
from job_reels.video.manifest_builder import ManifestBuilder
from job_reels.video.utils import job_posting_from_snapshot

logger = get_logger(__name__)


class VideoLibraryService:
    """Public surface of the video library.

    Every operation takes the acting owner and returns None when the item is
    missing or belongs to someone else. Operations on one item are
    serialised by a per-item lock; items are always saved whole.
    """

    def __init__(
        self,
        store: VideoItemStore | None = None,
        manifest_builder: ManifestBuilder | None = None,
        orchestrator: RenderOrchestrator | None = None,
        publisher: PublisherDispatcher | None = None,
        poller: AsyncCompletionPoller | None = None,
        metrics: MetricsCollector | None = None,
        autostart: bool | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Item store (defaults to ``settings.video_store``)
            manifest_builder: Manifest builder (defaults to the configured LLM)
            orchestrator: Render orchestrator (defaults to all built-in renderers)
            publisher: Publisher dispatcher
            poller: Completion poller (defaults to one calling poll_render)
            metrics: Metrics collector
            autostart: Render right after create/regenerate
        """
        self.store = store or get_store()
        self.manifest_builder = manifest_builder or ManifestBuilder(
            self._get_default_content_generator()
        )
        self.orchestrator = orchestrator or RenderOrchestrator()
        self.publisher = publisher or PublisherDispatcher()
        self.poller = poller or AsyncCompletionPoller(self.poll_render)
        self.metrics = metrics or MetricsCollector()
        self.autostart = settings.video_render_autostart if autostart is None else autostart
        self._locks: dict[str, asyncio.Lock] = {}

    def _get_default_content_generator(self) -> ContentGenerator | None:
        """Content generator for ``settings.llm_provider``, or None to always fall back."""
        from job_reels.adapters.content.llm import LLMContentGenerator

        provider_name = settings.llm_provider.lower()
        if provider_name == "stub":
            from job_reels.adapters.llm.stub import StubLLMProvider

            return LLMContentGenerator(StubLLMProvider())
        if provider_name == "openai" and settings.openai_api_key:
            from job_reels.adapters.llm.openai import OpenAIProvider

            return LLMContentGenerator(OpenAIProvider())

        logger.warning("content_generator_unavailable", llm_provider=provider_name)
        return None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _lock(self, item_id: str) -> asyncio.Lock:
        lock = self._locks.get(item_id)
        if lock is None:
            lock = self._locks[item_id] = asyncio.Lock()
        return lock

    async def _load(self, owner_user_id: str, item_id: str) -> VideoLibraryItem | None:
        item = await self.store.get(item_id)
        if item is None or item.owner_user_id != owner_user_id:
            return None
        return item

    @staticmethod
    def _audit(
        item: VideoLibraryItem, entry_type: str, message: str, **metadata: Any
    ) -> None:
        entry = AuditEntry(type=entry_type, message=message, metadata=metadata)
        item.audit_log = append_audit(item.audit_log, entry)

    async def _save(self, item: VideoLibraryItem) -> VideoLibraryItem:
        item.updated_at = utcnow()
        return await self.store.save(item.id, item)

    @staticmethod
    def _ensure_not_archived(item: VideoLibraryItem, action: str) -> None:
        if item.status == VideoStatus.ARCHIVED:
            raise InvalidTransitionError(item.status.value, item.status.value, action=action)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def list_items(
        self, owner_user_id: str, filters: ListFilters | None = None
    ) -> list[VideoLibraryItem]:
        return await self.store.list(owner_user_id, filters)

    async def get_item(self, owner_user_id: str, item_id: str) -> VideoLibraryItem | None:
        return await self._load(owner_user_id, item_id)

    # -------------------------------------------------------------------------
    # Manifests
    # -------------------------------------------------------------------------

    async def create_item(
        self,
        job: JobPosting,
        channel_id: str,
        owner_user_id: str,
        recommended_medium: str | None = None,
    ) -> VideoLibraryItem:
        """Build manifest v1 for a job on a channel and store a new item.

        Raises:
            VideoValidationError: If the channel id is unknown
        """
        manifest = await self.manifest_builder.build(
            job, channel_id, recommended_medium=recommended_medium, version=1
        )
        now = utcnow()
        item = VideoLibraryItem(
            id=new_id(),
            job_id=job.id,
            owner_user_id=owner_user_id,
            channel_id=channel_id,
            channel_name=manifest.channel_name,
            placement_name=manifest.placement_name,
            status=VideoStatus.PLANNED,
            manifest_version=1,
            manifests=[manifest],
            active_manifest=manifest,
            job_snapshot=manifest.job,
            created_at=now,
            updated_at=now,
        )
        self._audit(
            item,
            "manifest_created",
            f"Manifest v1 created for {manifest.channel_name}",
            version=1,
            generator_mode=manifest.generator.mode.value,
        )
        self.metrics.counter(
            metric_names.MANIFESTS_CREATED, labels={"channel_id": channel_id}, item_id=item.id
        )
        item = await self._save(item)
        logger.info("video_item_created", item_id=item.id, channel_id=channel_id)

        if self.autostart:
            async with self._lock(item.id):
                item = await self._autostart_render(item)
        return item

    async def regenerate_manifest(
        self, owner_user_id: str, item_id: str, job: JobPosting | None = None
    ) -> VideoLibraryItem | None:
        """Append a new manifest version and reset all render and publish state.

        Args:
            owner_user_id: Acting owner
            item_id: Item to regenerate
            job: Fresh job data (rebuilt from the stored snapshot when omitted)

        Raises:
            InvalidTransitionError: If the item is archived
        """
        async with self._lock(item_id):
            item = await self._load(owner_user_id, item_id)
            if item is None:
                return None
            ensure_regenerable(item.status)

            version = item.manifest_version + 1
            source = job or job_posting_from_snapshot(item.job_snapshot, item.owner_user_id)
            manifest = await self.manifest_builder.build(
                source, item.channel_id, channel_name=item.channel_name, version=version
            )

            self.poller.cancel(item.id)
            previous = item.status
            item.manifests = [*item.manifests, manifest]
            item.active_manifest = manifest
            item.manifest_version = version
            item.job_snapshot = manifest.job
            item.veo = VeoState.empty()
            item.render_task = None
            item.publish_task = None
            item.next_poll_at = None
            item.status = VideoStatus.PLANNED
            self._audit(
                item,
                "manifest_regenerated",
                f"Manifest v{version} generated",
                version=version,
                previous_status=previous.value,
                generator_mode=manifest.generator.mode.value,
            )
            self.metrics.counter(
                metric_names.MANIFESTS_CREATED,
                labels={"channel_id": item.channel_id},
                item_id=item.id,
            )
            item = await self._save(item)
            logger.info("manifest_regenerated", item_id=item.id, version=version)

            if self.autostart:
                item = await self._autostart_render(item)
            return item

    async def update_caption(
        self,
        owner_user_id: str,
        item_id: str,
        text: str,
        hashtags: list[str] | None = None,
    ) -> VideoLibraryItem | None:
        """Replace the caption of the active manifest in place (no version bump).

        Raises:
            VideoValidationError: If the caption breaks the length limits
            InvalidTransitionError: If the item is archived
        """
        try:
            caption = Caption(text=text, hashtags=[tag.lstrip("#") for tag in hashtags or []])
        except ValidationError as e:
            raise VideoValidationError(
                f"Invalid caption: {e.error_count()} errors", context={"item_id": item_id}
            ) from e

        async with self._lock(item_id):
            item = await self._load(owner_user_id, item_id)
            if item is None:
                return None
            self._ensure_not_archived(item, "update_caption")

            manifest = item.active_manifest.model_copy(update={"caption": caption})
            item.manifests = [*item.manifests[:-1], manifest]
            item.active_manifest = manifest
            self._audit(
                item,
                "caption_updated",
                "Caption updated",
                version=item.manifest_version,
                hashtags=len(caption.hashtags),
            )
            return await self._save(item)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    async def trigger_render(self, owner_user_id: str, item_id: str) -> VideoLibraryItem | None:
        """Render the active manifest, or advance a render already in flight.

        Raises:
            InvalidTransitionError: If the item cannot start rendering
            VideoValidationError: If the render request is invalid
            ProviderError: If the provider failed (the failure is persisted)
        """
        async with self._lock(item_id):
            item = await self._load(owner_user_id, item_id)
            if item is None:
                return None
            if item.status not in RENDERING_STATES:
                ensure_transition(item.status, VideoStatus.GENERATING, action="render")
            return await self._run_render(item, from_poll=False)

    async def poll_render(self, owner_user_id: str, item_id: str) -> VideoLibraryItem | None:
        """Completion check for an async render. Fired by the poller and the sweep."""
        async with self._lock(item_id):
            item = await self._load(owner_user_id, item_id)
            if item is None:
                return None
            if item.status not in RENDERING_STATES:
                logger.info("poll_skipped", item_id=item.id, status=item.status.value)
                if item.next_poll_at is not None:
                    item.next_poll_at = None
                    item = await self._save(item)
                return item

            max_attempts = settings.video_poll_max_attempts
            if max_attempts is not None and item.veo.attempts >= max_attempts:
                return await self._give_up(item, max_attempts)

            return await self._run_render(item, from_poll=True)

    async def reconcile_due_polls(self, now: datetime | None = None) -> list[str]:
        """Poll every item whose durable poll marker is due.

        Returns:
            Ids of the items that were polled
        """
        due = await self.store.list_due_for_poll(now or utcnow())
        polled: list[str] = []
        for item in due:
            try:
                await self.poll_render(item.owner_user_id, item.id)
                polled.append(item.id)
            except Exception as e:
                logger.warning("reconcile_poll_failed", item_id=item.id, error=str(e))
        if due:
            logger.info("reconcile_completed", due=len(due), polled=len(polled))
        return polled

    async def _autostart_render(self, item: VideoLibraryItem) -> VideoLibraryItem:
        try:
            return await self._run_render(item, from_poll=False)
        except (ProviderError, VideoValidationError) as e:
            logger.warning("autostart_render_failed", item_id=item.id, error=e.message)
            return await self.store.get(item.id) or item

    async def _run_render(self, item: VideoLibraryItem, from_poll: bool) -> VideoLibraryItem:
        """Call the orchestrator and apply the outcome. Caller holds the item lock."""
        bind_item_context(item.id, item.owner_user_id)
        try:
            manifest = item.active_manifest
            tier = resolve_tier(item)
            try:
                outcome = await self.orchestrator.render(manifest, tier, item)
            except ProviderError as e:
                if from_poll:
                    item.next_poll_at = utcnow() + timedelta(seconds=self.poller.interval)
                    await self._save(item)
                    raise
                await self._record_provider_failure(item, e)
                raise
            return await self._apply_outcome(item, outcome)
        finally:
            clear_item_context()

    async def _apply_outcome(
        self, item: VideoLibraryItem, outcome: RenderOutcome
    ) -> VideoLibraryItem:
        task = outcome.render_task
        previous = item.status
        target = status_for_outcome(outcome)
        render_path(previous, target)

        item.status = target
        item.render_task = task
        if outcome.veo is not None:
            item.veo = outcome.veo

        delay: float | None = None
        if outcome.is_pending:
            delay = outcome.poll_delay_seconds or self.poller.interval
            item.next_poll_at = utcnow() + timedelta(seconds=delay)
        else:
            item.next_poll_at = None
            self.poller.cancel(item.id)

        if task.status == RenderStatus.COMPLETED:
            seconds = task.metrics.seconds_generated if task.metrics else 0
            self._audit(
                item,
                "render_completed",
                f"Render completed by {task.renderer}",
                mode=task.mode.value,
                seconds_generated=seconds,
                reason=task.error.reason if task.error else None,
            )
            self.metrics.counter(
                metric_names.RENDERS_COMPLETED,
                labels={"renderer": task.renderer or "unknown"},
                item_id=item.id,
            )
        elif task.status in (RenderStatus.FAILED, RenderStatus.SKIPPED):
            self._audit(
                item,
                "render_failed",
                f"Render failed: {task.error.message if task.error else 'unknown error'}",
                reason=task.error.reason if task.error else None,
            )
            self.metrics.counter(
                metric_names.RENDERS_FAILED,
                labels={"renderer": task.renderer or "unknown"},
                item_id=item.id,
            )
        elif outcome.extending:
            self._audit(
                item,
                "render_extending",
                "Extend hop started",
                extends_completed=task.metrics.extends_completed if task.metrics else 0,
            )
        elif previous not in RENDERING_STATES:
            self._audit(item, "render_started", f"Render started on {task.renderer}")

        item = await self._save(item)
        if delay is not None:
            self.poller.schedule(item.owner_user_id, item.id, delay)
        return item

    async def _record_provider_failure(
        self, item: VideoLibraryItem, error: ProviderError
    ) -> None:
        render_path(item.status, VideoStatus.PLANNED)
        self.poller.cancel(item.id)
        item.status = VideoStatus.PLANNED
        item.next_poll_at = None
        item.render_task = RenderTask(
            manifest_version=item.manifest_version,
            status=RenderStatus.FAILED,
            renderer=self.orchestrator.provider_for(item.active_manifest),
            completed_at=utcnow(),
            error=TaskError(reason=error.code.lower(), message=error.message),
        )
        self._audit(item, "render_failed", f"Render failed: {error.message}", reason=error.code)
        self.metrics.counter(metric_names.RENDERS_FAILED, item_id=item.id)
        await self._save(item)

    async def _give_up(self, item: VideoLibraryItem, max_attempts: int) -> VideoLibraryItem:
        render_path(item.status, VideoStatus.PLANNED)
        logger.warning("poll_attempts_exhausted", item_id=item.id, attempts=item.veo.attempts)
        self.poller.cancel(item.id)
        item.status = VideoStatus.PLANNED
        item.next_poll_at = None
        item.veo = item.veo.model_copy(
            update={"status": VeoStatus.FAILED, "operation_name": None}
        )
        item.render_task = RenderTask(
            manifest_version=item.manifest_version,
            status=RenderStatus.FAILED,
            renderer=self.orchestrator.provider_for(item.active_manifest),
            completed_at=utcnow(),
            error=TaskError(
                reason="poll_attempts_exhausted",
                message=f"No result after {max_attempts} completion checks",
            ),
        )
        self._audit(
            item, "render_failed", "Gave up waiting for the provider", attempts=max_attempts
        )
        self.metrics.counter(metric_names.RENDERS_FAILED, item_id=item.id)
        return await self._save(item)

    # -------------------------------------------------------------------------
    # Approval and publishing
    # -------------------------------------------------------------------------

    async def approve_item(self, owner_user_id: str, item_id: str) -> VideoLibraryItem | None:
        """Approve a ready item. Approving an approved item changes nothing.

        Raises:
            InvalidTransitionError: If the item is not ready
        """
        async with self._lock(item_id):
            item = await self._load(owner_user_id, item_id)
            if item is None or item.status == VideoStatus.APPROVED:
                return item
            ensure_transition(item.status, VideoStatus.APPROVED, action="approve")

            item.status = VideoStatus.APPROVED
            self._audit(item, "approved", "Video approved", version=item.manifest_version)
            self.metrics.counter(metric_names.APPROVALS, item_id=item.id)
            return await self._save(item)

    async def archive_item(self, owner_user_id: str, item_id: str) -> VideoLibraryItem | None:
        """Archive an item. Archived items are kept, never deleted."""
        async with self._lock(item_id):
            item = await self._load(owner_user_id, item_id)
            if item is None or item.status == VideoStatus.ARCHIVED:
                return item
            ensure_transition(item.status, VideoStatus.ARCHIVED, action="archive")

            self.poller.cancel(item.id)
            previous = item.status
            item.status = VideoStatus.ARCHIVED
            item.next_poll_at = None
            self._audit(item, "archived", "Video archived", previous_status=previous.value)
            return await self._save(item)

    async def publish_item(self, owner_user_id: str, item_id: str) -> VideoLibraryItem | None:
        """Publish an approved item through its channel adapter.

        Only a ``published`` outcome moves the item to published; a manual
        upload flag or an adapter failure is recorded on the publish task.

        Raises:
            InvalidTransitionError: If the item is not approved
        """
        async with self._lock(item_id):
            item = await self._load(owner_user_id, item_id)
            if item is None:
                return None
            if item.status != VideoStatus.APPROVED:
                raise InvalidTransitionError(
                    item.status.value, VideoStatus.PUBLISHED.value, action="publish"
                )

            publish_task = await self.publisher.publish(item.active_manifest, item.render_task)
            item.publish_task = publish_task
            if publish_task.status == PublishStatus.PUBLISHED:
                ensure_transition(item.status, VideoStatus.PUBLISHED, action="publish")
                item.status = VideoStatus.PUBLISHED
                self.metrics.counter(
                    metric_names.PUBLISHES,
                    labels={"adapter": publish_task.adapter},
                    item_id=item.id,
                )
            self._audit(
                item,
                f"publish_{publish_task.status.value}",
                f"Publish via {publish_task.adapter}: {publish_task.status.value}",
                adapter=publish_task.adapter,
            )
            return await self._save(item)

    async def bulk_update(
        self, owner_user_id: str, item_ids: list[str], action: BulkAction
    ) -> list[VideoLibraryItem]:
        """Apply approve or archive to each item in turn.

        Missing, foreign and illegal items are skipped.

        Returns:
            The items that ended up in the requested state
        """
        operation = self.approve_item if action == BulkAction.APPROVE else self.archive_item
        updated: list[VideoLibraryItem] = []
        for item_id in item_ids:
            try:
                item = await operation(owner_user_id, item_id)
            except InvalidTransitionError as e:
                logger.info(
                    "bulk_item_skipped", item_id=item_id, action=action.value, reason=e.message
                )
                continue
            if item is not None:
                updated.append(item)
        logger.info(
            "bulk_update_completed",
            action=action.value,
            requested=len(item_ids),
            updated=len(updated),
        )
        return updated
