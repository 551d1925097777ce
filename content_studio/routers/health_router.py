"""Liveness check for Content Studio (no database or provider calls)."""
from fastapi import APIRouter

from content_studio import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    """Process is up; readiness (DB + Redis) lives at /api/readyz."""
    return {"status": "ok", "service": "content_studio", "version": __version__}
