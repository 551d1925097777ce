"""Brand context API: the notes / links generation prompts are built from."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from content_studio.db import get_db
from content_studio.dependencies import get_current_user
from content_studio.models import User
from content_studio.schemas.content import BrandContextIn
from content_studio.services.context_service import get_brand_context, save_brand_context

router = APIRouter(prefix="/api/data", tags=["context"])


@router.get("/context", response_model=BrandContextIn)
async def get_context(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> BrandContextIn:
    notes, links = await get_brand_context(db, user.id)
    return BrandContextIn(notes=notes, links=links)


@router.put("/context", response_model=BrandContextIn)
async def put_context(
    payload: BrandContextIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> BrandContextIn:
    row = await save_brand_context(db, user.id, payload.notes, payload.links)
    return BrandContextIn(notes=row.notes, links=row.links)
