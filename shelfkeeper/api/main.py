"""
Shelfkeeper API

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI
from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from .schemas import HealthResponse
from .routes import auth, books, genres, stats, transfer
from .middleware import (
    setup_cors,
    setup_logging,
    setup_exception_handlers,
    LoggingConfig,
    get_cors_config,
)
from .dependencies import (
    get_settings,
    init_database,
    dispose_database,
    create_tables,
    get_db,
    Settings,
)

VERSION = "1.0.0"


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup: database engine, tables, system genres.
    Shutdown: dispose of pooled connections.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting Shelfkeeper in {settings.environment} mode")

    try:
        logger.info("Initializing database...")
        init_database(settings)
        await create_tables()

        logger.info("Shelfkeeper started successfully")

        yield

    finally:
        logger.info("Shutting down Shelfkeeper...")
        await dispose_database()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Shelfkeeper",
        description="Multi-user personal book collection service.",
        version=VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ==========================================================================
    # Middleware (order matters - last added = outermost)
    # ==========================================================================

    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug,
        ),
        structured=settings.environment != "development",
    )

    setup_exception_handlers(app)

    setup_cors(app, config=get_cors_config(settings.environment))

    # ==========================================================================
    # Routers
    # ==========================================================================

    api_prefix = "/api/v1"

    app.include_router(auth.router, prefix=api_prefix)
    app.include_router(books.router, prefix=api_prefix)
    app.include_router(genres.router, prefix=api_prefix)
    app.include_router(stats.router, prefix=api_prefix)
    app.include_router(transfer.router, prefix=api_prefix)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Shelfkeeper",
            "version": VERSION,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
        """Health check endpoint. Reports database reachability."""
        try:
            await db.execute(text("SELECT 1"))
            database = "connected"
        except Exception as e:
            logger.error(f"Health check database failure: {e}")
            database = "unavailable"

        return HealthResponse(
            status="healthy" if database == "connected" else "degraded",
            version=VERSION,
            database=database,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "shelfkeeper.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
