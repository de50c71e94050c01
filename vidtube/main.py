"""FastAPI application initialization."""

from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vidtube.api.errors import register_exception_handlers
from vidtube.api.health import router as health_router
from vidtube.api.middleware import CorrelationIdMiddleware
from vidtube.api.users import router as users_router
from vidtube.config import get_settings
from vidtube.services.logging_service import configure_logging, get_logger
from vidtube.services.media_service import MediaStoreConfig, MediaUploadGateway


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("main")

    try:
        from vidtube.database import init_database, run_migrations

        await init_database()
        await run_migrations()
        logger.info("database_initialized")
    except Exception as e:
        logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - account endpoints will fail until it is reachable",
        )

    media_config = MediaStoreConfig.from_settings(settings)
    app.state.media_gateway = MediaUploadGateway(media_config)
    if not media_config.cloud_name:
        logger.warning("media_store_not_configured", note="Uploads will be rejected")

    logger.info("application_started", log_level=settings.log_level, api_prefix=settings.api_prefix)

    yield

    try:
        from vidtube.database import close_database

        await close_database()
    except Exception as e:
        logger.warning("database_close_failed", error=str(e))

    logger.info("application_shutdown")


settings = get_settings()

app = FastAPI(
    title="VidTube Accounts API",
    description="User accounts, token sessions, profile media and channel views",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Correlation ID middleware for request tracking and observability
app.add_middleware(CorrelationIdMiddleware)

app.include_router(users_router, prefix=settings.api_prefix)
app.include_router(health_router)
