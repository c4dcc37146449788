from contextlib import asynccontextmanager

from fastapi import FastAPI

from .auth.sessions import InMemorySessionStore
from .background import PeriodicSweeper
from .config import Settings, settings
from .errors import GatewayError, gateway_error_handler
from .logger import logger
from .metrics import RequestMetrics
from .middleware import AccessPolicyMiddleware, RequestContextMiddleware
from .rate_limit import FixedWindowRateLimiter
from .routers import auth, cdn, files, system
from .storage import THUMBNAIL_DIR_NAME, create_storage
from .thumbnails import ThumbnailService


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    logger.info(f"Starting up, storage root: {state.settings.storage.root}")
    await state.storage.initialize()
    await state.thumbnails.initialize()

    sweepers = [
        PeriodicSweeper(
            "sessions",
            state.settings.session.cleanup_interval_seconds,
            state.sessions.cleanup_expired,
        ),
        PeriodicSweeper(
            "rate-limit",
            state.settings.rate_limit.cleanup_interval_seconds,
            state.rate_limiter.cleanup,
        ),
    ]
    for sweeper in sweepers:
        await sweeper.start()
    if state.settings.readonly:
        logger.warning("Running in read-only mode; writes are rejected")
    logger.info("Startup complete.")

    yield

    for sweeper in sweepers:
        await sweeper.stop()
    logger.info("Shutdown complete.")


def create_app(app_settings: Settings = settings) -> FastAPI:
    app = FastAPI(lifespan=lifespan, title="CDN Gateway")

    storage = create_storage(app_settings)
    app.state.settings = app_settings
    app.state.storage = storage
    app.state.thumbnails = ThumbnailService(
        storage.local_path("") / THUMBNAIL_DIR_NAME,
        size=app_settings.thumbnail.size,
        quality=app_settings.thumbnail.quality,
    )
    app.state.sessions = InMemorySessionStore(
        expiry_seconds=app_settings.session.expiry_seconds
    )
    app.state.rate_limiter = FixedWindowRateLimiter(
        max_requests=app_settings.rate_limit.requests,
        window_seconds=app_settings.rate_limit.window_seconds,
    )
    app.state.metrics = RequestMetrics()

    app.add_exception_handler(GatewayError, gateway_error_handler)

    # Later middleware runs first: request context wraps the access policy
    app.add_middleware(AccessPolicyMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(system.router)
    app.include_router(auth.router)
    app.include_router(files.router)
    app.include_router(cdn.router)

    return app


app = create_app()
