"""FastAPI application entry point.

Run with: uvicorn src.api.main:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from src.api.routes import documents, health
from src.core.config import Settings, get_settings
from src.core.logging import configure_logging
from src.db.database import close_db, init_db
from src.rag.embedder import build_embedder

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared embedding client on startup; release it and the pool on shutdown."""
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

    # Alembic owns the schema outside development
    if settings.environment == "development":
        try:
            await init_db()
            logger.info("Database tables ensured")
        except Exception as e:
            logger.warning(f"Database initialization skipped: {e}")

    app.state.embedder = build_embedder(settings)
    app.state.startup_complete = True
    logger.info("Startup complete - ready to accept requests")

    yield

    logger.info("Shutting down...")
    await app.state.embedder.close()
    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Legal document ingestion and semantic retrieval API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.startup_complete = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(documents.router, prefix=settings.api_prefix, tags=["Documents"])
    app.mount("/metrics", make_asgi_app())

    @app.get("/")
    async def root():
        """Service info."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "ingest": f"{settings.api_prefix}/documents/ingest",
            "retrieve": f"{settings.api_prefix}/retrieve",
            "health": "/health/ready",
        }

    return app


app = create_app()
