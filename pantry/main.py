"""FastAPI application entry point"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from pantry.domain.repositories.blob_store import BlobStore
from pantry.domain.repositories.inventory_repository import DocumentStore
from pantry.infrastructure.config.settings import Settings, settings as default_settings
from pantry.infrastructure.storage import ImageLimits, LocalBlobStore
from pantry.presentation.api.v1.routers import inventory

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging from LOG_LEVEL"""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_document_store(settings: Settings) -> DocumentStore:
    """Build the document store selected by DOCUMENT_STORE"""
    if settings.DOCUMENT_STORE == "memory":
        from pantry.infrastructure.repositories.inventory_repository_memory import InventoryRepositoryMemory

        logger.info("Using in-memory document store")
        return InventoryRepositoryMemory()

    if settings.DOCUMENT_STORE == "sql":
        from pantry.infrastructure.database.base import create_db_engine, create_session_factory, init_db
        from pantry.infrastructure.repositories.inventory_repository_db import InventoryRepositoryDB

        engine = create_db_engine(settings)
        init_db(engine)
        logger.info("Database initialized")
        return InventoryRepositoryDB(create_session_factory(engine), engine=engine)

    raise ValueError(f"Unsupported document store: {settings.DOCUMENT_STORE}")


def create_blob_store(settings: Settings) -> LocalBlobStore:
    """Build the local blob store served under /uploads"""
    return LocalBlobStore(settings.UPLOAD_DIR, settings.uploads_base_url)


def create_app(
    settings: Optional[Settings] = None,
    document_store: Optional[DocumentStore] = None,
    blob_store: Optional[BlobStore] = None,
) -> FastAPI:
    """Create the application.

    Stores passed in are used as-is and left open; stores built from
    settings are created at startup and closed at shutdown.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events"""
        configure_logging(settings)
        logger.info("Initializing %s", settings.APP_NAME)
        owned_store = None
        if getattr(app.state, "document_store", None) is None:
            owned_store = create_document_store(settings)
            app.state.document_store = owned_store

        try:
            yield
        finally:
            if owned_store is not None:
                await owned_store.close()
                app.state.document_store = None
            logger.info("Shutting down application")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.document_store = document_store
    if blob_store is None:
        blob_store = create_blob_store(settings)
    app.state.blob_store = blob_store
    app.state.image_limits = ImageLimits.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    # Include routers
    app.include_router(inventory.router, prefix=settings.API_V1_PREFIX)

    # Mount static files for uploads; the directory is created on first upload
    if isinstance(blob_store, LocalBlobStore):
        app.mount("/uploads", StaticFiles(directory=str(blob_store.upload_dir), check_dir=False), name="uploads")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok"}

    return app


app = create_app()
