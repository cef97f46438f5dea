"""Database layer."""

from job_reels.db.models import Base, VideoLibraryItemModel
from job_reels.db.session import get_engine, get_session_context, get_session_factory, init_db

__all__ = [
    "Base",
    "VideoLibraryItemModel",
    "get_engine",
    "get_session_context",
    "get_session_factory",
    "init_db",
]
