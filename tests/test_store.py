"""Tests for the SQL-backed video item store."""

from datetime import timedelta
from typing import get_type_hints

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from job_reels.db.models import Base
from job_reels.domain.enums import VideoStatus
from job_reels.domain.models import ListFilters, VideoLibraryItem, utcnow
from job_reels.services.store import (
    InMemoryVideoItemStore,
    SqlVideoItemStore,
    VideoItemStore,
    get_store,
)


@pytest.fixture
def sql_store() -> SqlVideoItemStore:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return SqlVideoItemStore(factory)


@pytest_asyncio.fixture
async def manifest(manifest_builder, job):
    return await manifest_builder.build(job, "TIKTOK_LEAD")


@pytest.mark.asyncio
async def test_save_and_get(sql_store, manifest, make_item) -> None:
    item = make_item(manifest)
    await sql_store.save(item.id, item)

    restored = await sql_store.get(item.id)
    assert restored == item
    assert await sql_store.get("missing") is None


@pytest.mark.asyncio
async def test_save_overwrites_document(sql_store, manifest, make_item) -> None:
    """Test that a second save replaces the whole stored document."""
    item = make_item(manifest)
    await sql_store.save(item.id, item)

    ready = item.model_copy(update={"status": VideoStatus.READY, "updated_at": utcnow()})
    await sql_store.save(item.id, ready)

    restored = await sql_store.get(item.id)
    assert restored.status == VideoStatus.READY
    assert await sql_store.list("user-1", ListFilters(status=VideoStatus.PLANNED)) == []


@pytest.mark.asyncio
async def test_list_newest_first(sql_store, manifest, make_item) -> None:
    now = utcnow()
    older = make_item(manifest, id="item-old", created_at=now - timedelta(hours=1))
    newer = make_item(manifest, id="item-new", created_at=now)
    other_owner = make_item(manifest, id="item-other", owner_user_id="user-2")
    for item in (older, newer, other_owner):
        await sql_store.save(item.id, item)

    items = await sql_store.list("user-1")
    assert [item.id for item in items] == ["item-new", "item-old"]


@pytest.mark.asyncio
async def test_list_filters(sql_store, manifest, make_item) -> None:
    planned = make_item(manifest, id="item-planned")
    ready = make_item(manifest, id="item-ready", status=VideoStatus.READY)
    for item in (planned, ready):
        await sql_store.save(item.id, item)

    by_status = await sql_store.list("user-1", ListFilters(status=VideoStatus.READY))
    assert [item.id for item in by_status] == ["item-ready"]

    by_channel = await sql_store.list("user-1", ListFilters(channel_id="X_HIRING"))
    assert by_channel == []

    by_geo = await sql_store.list("user-1", ListFilters(geo="Austin"))
    assert {item.id for item in by_geo} == {"item-planned", "item-ready"}

    by_role = await sql_store.list("user-1", ListFilters(role_family="retail"))
    assert by_role == []


@pytest.mark.asyncio
async def test_list_due_for_poll(sql_store, manifest, make_item) -> None:
    """Test that only live items with an elapsed poll time are returned."""
    now = utcnow()
    due = make_item(
        manifest,
        id="item-due",
        status=VideoStatus.GENERATING,
        next_poll_at=now - timedelta(seconds=5),
    )
    later = make_item(
        manifest,
        id="item-later",
        status=VideoStatus.GENERATING,
        next_poll_at=now + timedelta(minutes=5),
    )
    archived = make_item(
        manifest,
        id="item-archived",
        status=VideoStatus.ARCHIVED,
        next_poll_at=now - timedelta(seconds=5),
    )
    idle = make_item(manifest, id="item-idle")
    for item in (due, later, archived, idle):
        await sql_store.save(item.id, item)

    items = await sql_store.list_due_for_poll(now)
    assert [item.id for item in items] == ["item-due"]


@pytest.mark.asyncio
async def test_memory_store_due_for_poll(manifest, make_item) -> None:
    store = InMemoryVideoItemStore()
    now = utcnow()
    due = make_item(
        manifest,
        id="item-due",
        status=VideoStatus.GENERATING,
        next_poll_at=now - timedelta(seconds=1),
    )
    await store.save(due.id, due)
    await store.save("item-idle", make_item(manifest, id="item-idle"))

    assert [item.id for item in await store.list_due_for_poll(now)] == ["item-due"]


def test_get_store_uses_settings() -> None:
    assert isinstance(get_store(), InMemoryVideoItemStore)


def test_list_return_annotations_resolve_to_builtin_list() -> None:
    """The ``list`` method must not shadow the builtin in sibling annotations."""
    for store_cls in (VideoItemStore, InMemoryVideoItemStore, SqlVideoItemStore):
        hints = get_type_hints(store_cls.list_due_for_poll)
        assert hints["return"] == list[VideoLibraryItem]
