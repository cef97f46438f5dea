"""Channel publishing adapters."""

from job_reels.adapters.publisher.base import (
    PublisherAdapter,
    PublishOutcome,
    build_publish_payload,
)
from job_reels.adapters.publisher.channel import ChannelPublisherAdapter

__all__ = [
    "ChannelPublisherAdapter",
    "PublishOutcome",
    "PublisherAdapter",
    "build_publish_payload",
]
