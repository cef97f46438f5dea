"""Celery tasks that drive async renders from outside the request path.

The in-process poller dies with its event loop. These tasks read the
durable ``next_poll_at`` marker instead, so a render started before a
restart still reaches a terminal state.
"""

from typing import Any

from job_reels.errors import VideoPipelineError
from job_reels.logging import get_logger
from job_reels.services.library import VideoLibraryService
from job_reels.utils.async_utils import run_async
from job_reels.worker import celery_app

logger = get_logger(__name__)


def _service() -> VideoLibraryService:
    return VideoLibraryService(autostart=False)


@celery_app.task(bind=True, name="video.reconcile_pending_renders")
def reconcile_pending_renders_task(self: Any) -> dict[str, Any]:
    """Poll every item whose next_poll_at is due."""
    logger.info("reconcile_pending_renders_started", task_id=self.request.id)
    service = _service()
    try:
        polled = run_async(service.reconcile_due_polls())
    finally:
        # Timers armed on the reused loop would fire during some later task.
        service.poller.cancel_all()
    return {"polled": len(polled), "item_ids": polled}


@celery_app.task(
    bind=True,
    name="video.poll_render",
    max_retries=3,
    default_retry_delay=30,
)
def poll_render_task(self: Any, owner_user_id: str, item_id: str) -> dict[str, Any]:
    """Run one completion check for an item."""
    service = _service()
    try:
        item = run_async(service.poll_render(owner_user_id, item_id))
    except VideoPipelineError as e:
        logger.warning("poll_render_task_failed", item_id=item_id, error=e.message)
        raise self.retry(exc=e) from e
    finally:
        service.poller.cancel_all()
    if item is None:
        return {"item_id": item_id, "found": False}
    return {"item_id": item_id, "found": True, "status": item.status.value}


@celery_app.task(bind=True, name="video.trigger_render")
def trigger_render_task(self: Any, owner_user_id: str, item_id: str) -> dict[str, Any]:
    """Start (or advance) a render outside the request path."""
    logger.info("trigger_render_task_started", task_id=self.request.id, item_id=item_id)
    service = _service()
    try:
        item = run_async(service.trigger_render(owner_user_id, item_id))
    except VideoPipelineError as e:
        logger.error("trigger_render_task_failed", item_id=item_id, error=e.to_dict())
        return {"item_id": item_id, "success": False, "error": e.to_dict()}
    finally:
        service.poller.cancel_all()
    if item is None:
        return {"item_id": item_id, "success": False, "error": {"code": "NOT_FOUND"}}
    return {"item_id": item_id, "success": True, "status": item.status.value}
