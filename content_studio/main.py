"""FastAPI application entrypoint."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from content_studio import __version__
from content_studio.config import Settings, get_settings
from content_studio.errors import (
    ApiKeyInvalid,
    ApiKeyRequired,
    AuthError,
    ContentValidationError,
    InvalidTransition,
    NotFound,
    ProviderError,
    StoreError,
    StudioError,
)
from content_studio.logging_config import configure_logging, get_logger
from content_studio.middleware.correlation_id import CorrelationIdMiddleware
from content_studio.middleware.rate_limit import RateLimitMiddleware
from content_studio.routers import (
    api_health_router,
    auth_router,
    content_router,
    context_router,
    health_router,
    images_router,
    scheduler_router,
)
from content_studio.schemas.common import ErrorResponse
from content_studio.services.generation_service import GenerationService
from content_studio.services.item_store import ItemStore
from content_studio.services.media_storage import LocalMediaStorage
from content_studio.services.provider_service import ContentProvider, OpenAIContentProvider
from content_studio.services.scheduler_service import Clock, SessionSchedulers
from content_studio.services.sql_item_store import SqlItemStore

logger = get_logger(__name__)

# Most specific class first.
ERROR_STATUS = (
    (ApiKeyRequired, 401),
    (ApiKeyInvalid, 401),
    (ProviderError, 502),
    (InvalidTransition, 409),
    (ContentValidationError, 422),
    (NotFound, 404),
    (StoreError, 503),
    (AuthError, 401),
)


def status_for(error: StudioError) -> int:
    for cls, status_code in ERROR_STATUS:
        if isinstance(error, cls):
            return status_code
    return 400


def init_app_state(
    app: FastAPI,
    settings: Optional[Settings] = None,
    store: Optional[ItemStore] = None,
    provider: Optional[ContentProvider] = None,
    media: Optional[LocalMediaStorage] = None,
    clock: Optional[Clock] = None,
) -> None:
    """Wire the shared services onto app.state (tests pass in-memory / fake replacements)."""
    settings = settings or get_settings()
    app.state.item_store = store or SqlItemStore()
    app.state.media = media or LocalMediaStorage(settings.local_media_dir)
    app.state.schedulers = SessionSchedulers(
        app.state.item_store,
        interval_seconds=settings.scheduler_interval_seconds,
        enabled=settings.scheduler_enabled,
        clock=clock,
    )
    app.state.generation = GenerationService(
        provider or OpenAIContentProvider(settings),
        app.state.media,
        max_count=settings.max_generate_count,
        progress_delay_seconds=settings.video_progress_delay_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown: logging; stop session schedulers and background generations on exit."""
    configure_logging()
    logger.info("app_started", version=__version__)
    yield
    await app.state.schedulers.shutdown()
    await app.state.generation.shutdown()
    logger.info("app_shutdown")


app = FastAPI(
    title="Content Studio",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(CorrelationIdMiddleware)
init_app_state(app)


@app.exception_handler(StudioError)
async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.warning if status_code >= 500 else logger.info
    log("api.error", path=request.url.path, code=exc.code, status=status_code, error=exc.message)
    body = ErrorResponse(detail=exc.message, code=exc.code, extra=exc.context or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


app.include_router(api_health_router)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(context_router)
app.include_router(images_router)
app.include_router(content_router)
app.include_router(scheduler_router)


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint: app name and version."""
    return {"name": "content_studio", "version": __version__}
