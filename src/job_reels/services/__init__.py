"""Application services."""

from job_reels.services.metrics import MetricsCollector
from job_reels.services.poller import AsyncCompletionPoller
from job_reels.services.publisher import PublisherDispatcher
from job_reels.services.store import (
    InMemoryVideoItemStore,
    SqlVideoItemStore,
    VideoItemStore,
    get_store,
)
from job_reels.services.render_orchestrator import RenderOrchestrator, resolve_tier
from job_reels.services.library import VideoLibraryService

__all__ = [
    "AsyncCompletionPoller",
    "InMemoryVideoItemStore",
    "MetricsCollector",
    "PublisherDispatcher",
    "RenderOrchestrator",
    "SqlVideoItemStore",
    "VideoItemStore",
    "VideoLibraryService",
    "get_store",
    "resolve_tier",
]
