"""Brand context service: per-user notes / links that generation prompts are built from."""
from typing import Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from content_studio.logging_config import get_logger
from content_studio.models import BrandContext

logger = get_logger(__name__)


async def get_brand_context(db: AsyncSession, user_id: UUID) -> Tuple[str, str]:
    """(notes, links); empty strings when nothing was saved yet."""
    r = await db.execute(select(BrandContext).where(BrandContext.user_id == user_id))
    row = r.scalar_one_or_none()
    if row is None:
        return "", ""
    return row.notes or "", row.links or ""


async def save_brand_context(db: AsyncSession, user_id: UUID, notes: str, links: str) -> BrandContext:
    """Upsert the user's context. Caller commits session."""
    r = await db.execute(select(BrandContext).where(BrandContext.user_id == user_id))
    row = r.scalar_one_or_none()
    if row is None:
        row = BrandContext(user_id=user_id, notes=notes, links=links)
        db.add(row)
    else:
        row.notes = notes
        row.links = links
    await db.flush()
    logger.info("context.saved", user_id=str(user_id), notes_chars=len(notes), links_chars=len(links))
    return row
