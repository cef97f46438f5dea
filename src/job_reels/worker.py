"""Celery app for background renders and the poll reconcile sweep."""

from celery import Celery

from job_reels.config import settings
from job_reels.logging import setup_logging

setup_logging()

# Sora renders poll in-call; leave room for the clip download after the poll timeout.
RENDER_SOFT_TIME_LIMIT = int(settings.sora_poll_timeout_seconds) + 300
RENDER_TIME_LIMIT = RENDER_SOFT_TIME_LIMIT + 60

celery_app = Celery(
    "job_reels",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=RENDER_TIME_LIMIT,
    task_soft_time_limit=RENDER_SOFT_TIME_LIMIT,
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    # Keep the structlog handler installed by setup_logging
    worker_hijack_root_logger=False,
    result_expires=86400,
    task_routes={
        "video.reconcile_pending_renders": {"queue": "default"},
        "video.poll_render": {"queue": "high"},
        "video.trigger_render": {"queue": "high"},
    },
    beat_schedule={
        "reconcile-pending-renders": {
            "task": "video.reconcile_pending_renders",
            "schedule": settings.video_poll_interval_seconds,
            "options": {"queue": "default", "expires": settings.video_poll_interval_seconds},
        },
    },
)

celery_app.autodiscover_tasks(["job_reels.jobs"], related_name="render_polling")
