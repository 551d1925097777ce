"""
Postgres-backed store and account services. Runs only when TEST_DATABASE_URL is set
(postgresql+asyncpg://...); tables are created from the models and dropped afterwards.
"""
import base64
import os
import uuid
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from content_studio.config import Settings
from content_studio.db import Base
from content_studio.errors import NotFound, StaleItem
from content_studio.models import User
from content_studio.schemas.content import ContentStatus
from content_studio.services import auth_service, context_service, image_service
from content_studio.services.media_storage import LocalMediaStorage
from content_studio.services.scheduler_service import SessionSchedulers
from content_studio.services.sql_item_store import SqlItemStore

from conftest import T0, make_item

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set")


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_user(session_factory) -> str:
    async with session_factory() as db:
        user = User(email=f"{uuid.uuid4()}@example.com", name="Store Test")
        db.add(user)
        await db.commit()
        return str(user.id)


@pytest.mark.asyncio
async def test_crud_roundtrip(session_factory, sql_user: str) -> None:
    store = SqlItemStore(session_factory)
    item = await store.create(sql_user, make_item())
    assert (await store.get(sql_user, item.id)).data == item.data

    approved = await store.update(sql_user, item.id, {"status": ContentStatus.APPROVED}, expect={"status": ContentStatus.PENDING})
    assert approved.status == ContentStatus.APPROVED
    assert [i.id for i in await store.list(sql_user)] == [item.id]

    await store.delete(sql_user, item.id, expect={"status": ContentStatus.APPROVED})
    with pytest.raises(NotFound):
        await store.get(sql_user, item.id)


@pytest.mark.asyncio
async def test_compare_and_set(session_factory, sql_user: str) -> None:
    store = SqlItemStore(session_factory)
    item = await store.create(sql_user, make_item())
    with pytest.raises(StaleItem):
        await store.update(sql_user, item.id, {"status": ContentStatus.REJECTED}, expect={"status": ContentStatus.APPROVED})
    assert (await store.get(sql_user, item.id)).status == ContentStatus.PENDING


@pytest.mark.asyncio
async def test_scope_and_bad_ids(session_factory, sql_user: str) -> None:
    store = SqlItemStore(session_factory)
    item = await store.create(sql_user, make_item())
    with pytest.raises(NotFound):
        await store.get(str(uuid.uuid4()), item.id)
    with pytest.raises(NotFound):
        await store.get(sql_user, "not-a-uuid")


@pytest.mark.asyncio
async def test_scheduler_promotes_in_database(session_factory, sql_user: str) -> None:
    store = SqlItemStore(session_factory)
    due = await store.create(sql_user, make_item(ContentStatus.SCHEDULED, schedule=T0))
    later = await store.create(sql_user, make_item(ContentStatus.SCHEDULED, schedule=T0 + timedelta(days=1)))
    registry = SessionSchedulers(store, interval_seconds=3600, clock=lambda: T0)
    scheduler = registry.ensure(sql_user)
    try:
        result = await scheduler.tick()
        assert [i.id for i in result.promoted] == [due.id]
    finally:
        await registry.shutdown()
    assert (await store.get(sql_user, due.id)).status == ContentStatus.POSTED
    assert (await store.get(sql_user, later.id)).status == ContentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_context_images_and_sessions(session_factory, tmp_path) -> None:
    settings = Settings(DEMO_LOGIN_ENABLED=True, SESSION_TTL_MINUTES=5)
    media = LocalMediaStorage(str(tmp_path))
    async with session_factory() as db:
        token, user = await auth_service.login(db, settings, None)
        await db.commit()
        assert (await auth_service.get_user_for_token(db, token)).id == user.id

        assert await context_service.get_brand_context(db, user.id) == ("", "")
        await context_service.save_brand_context(db, user.id, "notes", "links")
        await db.commit()
        assert await context_service.get_brand_context(db, user.id) == ("notes", "links")

        png = base64.b64encode(b"\x89PNG").decode()
        image = await image_service.add_image(db, media, user.id, "logo.png", "image/png", png, max_mb=1)
        await db.commit()
        start = await image_service.load_start_image(db, media, user.id)
        assert start.content == b"\x89PNG" and start.mime_type == "image/png"
        await image_service.delete_image(db, media, user.id, str(image.id))
        await db.commit()
        assert await image_service.list_images(db, user.id) == []

        assert await auth_service.logout(db, token) is True
        await db.commit()
        assert await auth_service.get_user_for_token(db, token) is None
        assert await auth_service.logout(db, token) is False
