"""
engagehub.api.main - FastAPI Application Factory

Creates and configures the FastAPI application serving adapter
observability, rollout administration and the adapter demo routes.

Usage:
    # Development
    uvicorn engagehub.api.main:app --reload

    # Production
    uvicorn engagehub.api.main:app --host 0.0.0.0 --port 8000

Environment Variables:
    DATABASE_URL: Async SQLAlchemy database URL
    ENGAGEHUB_ENV: Deployment environment (development, staging, production)
    ENGAGEHUB_CORS_ORIGINS: JSON list of allowed CORS origins
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from engagehub.adapters.factory import create_adapter_factory
from engagehub.api.v1.router import api_router
from engagehub.models.database import get_engine, get_sessionmaker
from engagehub.services.feature_flags import FeatureFlagService
from engagehub.settings import EngageSettings, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Sets up the database connection pool, the feature flag service (with
    the adapter flag definitions seeded) and the adapter factory on
    startup, cleans up on shutdown.
    """
    settings: EngageSettings = app.state.settings

    # Startup
    logger.info(f"Starting engagehub API server ({settings.env})...")

    engine = get_engine(settings.database_url, settings.database_echo)
    app.state.engine = engine
    app.state.sessionmaker = get_sessionmaker(engine)

    flag_service = FeatureFlagService(app.state.sessionmaker, settings)
    app.state.flag_service = flag_service
    await flag_service.seed_adapter_flags()
    app.state.adapter_factory = create_adapter_factory(
        app.state.sessionmaker, flag_service, settings
    )

    logger.info("Database connection pool and adapters initialized")

    yield

    # Shutdown
    logger.info("Shutting down engagehub API server...")
    await engine.dispose()
    logger.info("Database connections closed")


def create_app(settings: EngageSettings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment-derived ones

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    app = FastAPI(
        title="engagehub API",
        description="Feature-flag gated data adapters for employee engagement",
        version="0.1.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    logger.info(f"Configuring CORS for origins: {settings.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Create the application instance
app = create_app()
