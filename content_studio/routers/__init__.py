"""API routers."""
from content_studio.routers.api_health_router import router as api_health_router
from content_studio.routers.health_router import router as health_router
from content_studio.routers.auth_router import router as auth_router
from content_studio.routers.context_router import router as context_router
from content_studio.routers.images_router import router as images_router
from content_studio.routers.content_router import router as content_router
from content_studio.routers.scheduler_router import router as scheduler_router

__all__ = [
    "api_health_router",
    "health_router",
    "auth_router",
    "context_router",
    "images_router",
    "content_router",
    "scheduler_router",
]
