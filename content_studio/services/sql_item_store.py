"""Item store backed by the content_items table (SQLAlchemy async)."""
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from content_studio.db import async_session_factory
from content_studio.errors import NotFound, StoreError
from content_studio.logging_config import get_logger
from content_studio.models import ContentItemRecord
from content_studio.schemas.content import ContentItem
from content_studio.services.item_store import apply_patch, check_expectation

logger = get_logger(__name__)


def _parse_uuid(value: str, what: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFound(f"{what} {value} not found")


def record_to_item(row: ContentItemRecord) -> ContentItem:
    """ORM row -> immutable content item."""
    return ContentItem(
        id=str(row.id),
        type=row.type,
        data=row.data or "",
        prompt=row.prompt,
        status=row.status,
        schedule=row.schedule,
        error_message=row.error_message,
        created_at=row.created_at,
        posted_at=row.posted_at,
    )


def _copy_onto(row: ContentItemRecord, item: ContentItem) -> None:
    row.status = item.status.value
    row.data = item.data
    row.schedule = item.schedule
    row.error_message = item.error_message
    row.posted_at = item.posted_at


class SqlItemStore:
    """
    One short transaction per call. update/delete lock the row (SELECT ... FOR UPDATE)
    so the read-check-write sequence is atomic per item.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None) -> None:
        self._session_factory = session_factory or async_session_factory

    @asynccontextmanager
    async def _transaction(self, op: str) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as db:
            try:
                yield db
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning("item_store.db_error", op=op, error=str(e))
                raise StoreError(f"Content store unavailable ({op})") from e

    async def _locked_row(self, db: AsyncSession, user_id: str, item_id: str) -> ContentItemRecord:
        q = (
            select(ContentItemRecord)
            .where(
                ContentItemRecord.id == _parse_uuid(item_id, "Content item"),
                ContentItemRecord.user_id == _parse_uuid(user_id, "User"),
            )
            .with_for_update()
        )
        r = await db.execute(q)
        row = r.scalar_one_or_none()
        if row is None:
            raise NotFound(f"Content item {item_id} not found", item_id=item_id)
        return row

    async def list(self, user_id: str) -> List[ContentItem]:
        uid = _parse_uuid(user_id, "User")
        async with self._transaction("list") as db:
            q = (
                select(ContentItemRecord)
                .where(ContentItemRecord.user_id == uid)
                .order_by(ContentItemRecord.created_at.asc(), ContentItemRecord.id.asc())
            )
            r = await db.execute(q)
            return [record_to_item(row) for row in r.scalars().all()]

    async def get(self, user_id: str, item_id: str) -> ContentItem:
        async with self._transaction("get") as db:
            q = select(ContentItemRecord).where(
                ContentItemRecord.id == _parse_uuid(item_id, "Content item"),
                ContentItemRecord.user_id == _parse_uuid(user_id, "User"),
            )
            r = await db.execute(q)
            row = r.scalar_one_or_none()
            if row is None:
                raise NotFound(f"Content item {item_id} not found", item_id=item_id)
            return record_to_item(row)

    async def create(self, user_id: str, item: ContentItem) -> ContentItem:
        async with self._transaction("create") as db:
            row = ContentItemRecord(
                id=_parse_uuid(item.id, "Content item"),
                user_id=_parse_uuid(user_id, "User"),
                type=item.type.value,
                prompt=item.prompt,
            )
            _copy_onto(row, item)
            if item.created_at is not None:
                row.created_at = item.created_at
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return record_to_item(row)

    async def update(
        self,
        user_id: str,
        item_id: str,
        patch: Mapping[str, Any],
        expect: Optional[Mapping[str, Any]] = None,
    ) -> ContentItem:
        async with self._transaction("update") as db:
            row = await self._locked_row(db, user_id, item_id)
            current = record_to_item(row)
            check_expectation(current, expect)
            updated = apply_patch(current, patch)
            _copy_onto(row, updated)
            await db.commit()
            return updated

    async def delete(
        self,
        user_id: str,
        item_id: str,
        expect: Optional[Mapping[str, Any]] = None,
    ) -> None:
        async with self._transaction("delete") as db:
            row = await self._locked_row(db, user_id, item_id)
            check_expectation(record_to_item(row), expect)
            await db.delete(row)
            await db.commit()
