"""Document store for video library items.

Items are saved whole: every save overwrites the stored document and the
last writer wins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from job_reels.config import settings
from job_reels.db.models import VideoLibraryItemModel
from job_reels.db.session import get_session_context, get_session_factory
from job_reels.domain.enums import VideoStatus
from job_reels.domain.models import ListFilters, VideoLibraryItem
from job_reels.logging import get_logger

logger = get_logger(__name__)


class VideoItemStore(ABC):
    """Persistence for VideoLibraryItem documents."""

    @abstractmethod
    async def get(self, item_id: str) -> VideoLibraryItem | None:
        ...

    @abstractmethod
    async def save(self, item_id: str, item: VideoLibraryItem) -> VideoLibraryItem:
        ...

    @abstractmethod
    async def list(
        self, owner_user_id: str, filters: ListFilters | None = None
    ) -> list[VideoLibraryItem]:
        """Items owned by ``owner_user_id``, newest first."""
        ...

    @abstractmethod
    async def list_due_for_poll(self, now: datetime) -> list[VideoLibraryItem]:
        """Items whose ``next_poll_at`` is at or before ``now``."""
        ...


class InMemoryVideoItemStore(VideoItemStore):
    """Keeps serialised documents in a dict. Used by tests and the CLI demo."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    async def get(self, item_id: str) -> VideoLibraryItem | None:
        document = self._documents.get(item_id)
        return VideoLibraryItem.from_document(document) if document else None

    async def save(self, item_id: str, item: VideoLibraryItem) -> VideoLibraryItem:
        self._documents[item_id] = item.to_document()
        return item

    async def list(
        self, owner_user_id: str, filters: ListFilters | None = None
    ) -> list[VideoLibraryItem]:
        items = [
            VideoLibraryItem.from_document(document)
            for document in self._documents.values()
            if document.get("owner_user_id") == owner_user_id
        ]
        if filters:
            items = [item for item in items if filters.matches(item)]
        return sorted(items, key=lambda item: item.created_at, reverse=True)

    async def list_due_for_poll(self, now: datetime) -> list[VideoLibraryItem]:
        items = [VideoLibraryItem.from_document(doc) for doc in self._documents.values()]
        due = [
            item
            for item in items
            if item.next_poll_at
            and item.next_poll_at <= now
            and item.status != VideoStatus.ARCHIVED
        ]
        return sorted(due, key=lambda item: item.next_poll_at)


class SqlVideoItemStore(VideoItemStore):
    """Stores documents in the ``video_library_items`` table."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory

    def _session(self):
        return get_session_context(self._session_factory or get_session_factory())

    async def get(self, item_id: str) -> VideoLibraryItem | None:
        with self._session() as session:
            row = session.get(VideoLibraryItemModel, item_id)
            return VideoLibraryItem.from_document(row.document) if row else None

    async def save(self, item_id: str, item: VideoLibraryItem) -> VideoLibraryItem:
        document = item.to_document()
        with self._session() as session:
            row = session.get(VideoLibraryItemModel, item_id)
            if row is None:
                row = VideoLibraryItemModel(id=item_id, created_at=item.created_at)
                session.add(row)
            row.owner_user_id = item.owner_user_id
            row.job_id = item.job_id
            row.channel_id = item.channel_id
            row.status = item.status.value
            row.manifest_version = item.manifest_version
            row.next_poll_at = item.next_poll_at
            row.document = document
            row.updated_at = item.updated_at
        logger.debug("video_item_saved", item_id=item_id, status=item.status.value)
        return item

    async def list(
        self, owner_user_id: str, filters: ListFilters | None = None
    ) -> list[VideoLibraryItem]:
        stmt = select(VideoLibraryItemModel).where(
            VideoLibraryItemModel.owner_user_id == owner_user_id
        )
        if filters and filters.status:
            stmt = stmt.where(VideoLibraryItemModel.status == filters.status.value)
        if filters and filters.channel_id:
            stmt = stmt.where(VideoLibraryItemModel.channel_id == filters.channel_id)
        stmt = stmt.order_by(VideoLibraryItemModel.created_at.desc())

        with self._session() as session:
            documents = [row.document for row in session.scalars(stmt)]
        items = [VideoLibraryItem.from_document(document) for document in documents]
        # geo/role_family live only in the document
        if filters:
            items = [item for item in items if filters.matches(item)]
        return items

    async def list_due_for_poll(self, now: datetime) -> list[VideoLibraryItem]:
        stmt = (
            select(VideoLibraryItemModel)
            .where(VideoLibraryItemModel.next_poll_at.is_not(None))
            .where(VideoLibraryItemModel.next_poll_at <= now)
            .where(VideoLibraryItemModel.status != VideoStatus.ARCHIVED.value)
            .order_by(VideoLibraryItemModel.next_poll_at)
        )
        with self._session() as session:
            documents = [row.document for row in session.scalars(stmt)]
        return [VideoLibraryItem.from_document(document) for document in documents]


def get_store() -> VideoItemStore:
    """Store selected by ``settings.video_store``."""
    if settings.video_store == "memory":
        return InMemoryVideoItemStore()
    return SqlVideoItemStore()
