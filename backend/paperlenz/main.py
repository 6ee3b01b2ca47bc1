import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from paperlenz.core.config import Settings, get_settings
from paperlenz.core.database import engine, Base
from paperlenz.core.middleware import CSRFMiddleware
from paperlenz.api.v1 import router as api_router
from paperlenz.api.v1.auth import ACCESS_COOKIE
# Registers the ORM tables on Base.metadata
from paperlenz import models  # noqa: F401

APP_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Root logging from LOG_LEVEL, defaulting to DEBUG in debug mode."""
    level = os.getenv("LOG_LEVEL") or ("DEBUG" if settings.debug else "INFO")
    logging.basicConfig(level=level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # Client libraries log every request at INFO/DEBUG.
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("PaperLenz %s ready", APP_VERSION)
    yield
    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    application = FastAPI(
        title=settings.app_name,
        version=APP_VERSION,
        description="Scientific paper analysis adapted to the reader's academic level",
        lifespan=lifespan,
    )

    # Added first so it runs inside CORS.
    application.add_middleware(
        CSRFMiddleware,
        allowed_origins=settings.allowed_origins,
        cookie_name=ACCESS_COOKIE,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Origin", "X-Requested-With"],
    )

    application.include_router(api_router, prefix=settings.api_v1_prefix)

    async def health_check():
        return {"status": "healthy", "version": APP_VERSION}

    for path in ("/health", f"{settings.api_v1_prefix}/health"):
        application.add_api_route(path, health_check, methods=["GET"])

    return application


app = create_app()
