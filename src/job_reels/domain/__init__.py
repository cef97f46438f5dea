"""Domain models, channel rules and the item lifecycle."""

from job_reels.domain.enums import (
    BulkAction,
    PublishStatus,
    RenderMode,
    RenderStatus,
    RenderTier,
    VeoStatus,
    VideoStatus,
)
from job_reels.domain.models import (
    Caption,
    JobPosting,
    JobSnapshot,
    ListFilters,
    PublishTask,
    RenderTask,
    VeoState,
    VideoAssetManifest,
    VideoLibraryItem,
    VideoSpec,
)

__all__ = [
    "BulkAction",
    "Caption",
    "JobPosting",
    "JobSnapshot",
    "ListFilters",
    "PublishStatus",
    "PublishTask",
    "RenderMode",
    "RenderStatus",
    "RenderTask",
    "RenderTier",
    "VeoState",
    "VeoStatus",
    "VideoAssetManifest",
    "VideoLibraryItem",
    "VideoSpec",
    "VideoStatus",
]
