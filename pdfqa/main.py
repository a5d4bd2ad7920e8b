"""
FastAPI application entry point.

Sets up the app, lifespan, CORS, logging and the API routers. The lifespan
owns the process-wide resources: the Mongo connection, the OpenAI-backed index
client, the services built on them and the scheduler running the background
status sweep. Route handlers get the services from app.state.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pdfqa.api import documents
from pdfqa.config import get_settings
from pdfqa.database import close_mongo_connection, connect_to_mongo
from pdfqa.services.document_service import DocumentService
from pdfqa.services.document_store import BeanieDocumentStore
from pdfqa.services.index_client import IndexClient
from pdfqa.services.status_reconciler import StatusReconciler
from pdfqa.workers.status_sweep import StatusSweeper

# Configure logging - single place for log format and level
logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context: runs on startup and shutdown.
    """
    # Startup
    settings = get_settings()
    settings.validate_for_startup()
    secret = settings.jwt_secret or ""
    if not secret:
        logger.warning("JWT_SECRET is not set. Every authenticated request will be rejected.")
    elif len(secret) < 32 or "secret" in secret.lower() or "your-" in secret.lower():
        logger.warning("JWT_SECRET looks like a placeholder. Set a long random value in .env.")

    await connect_to_mongo(settings)
    index_client = IndexClient.from_settings(settings)
    store = BeanieDocumentStore()
    reconciler = StatusReconciler(
        index_client,
        store,
        processing_timeout=timedelta(minutes=settings.processing_timeout_minutes),
    )
    app.state.document_service = DocumentService(store, index_client, reconciler, settings)

    sweeper = StatusSweeper(
        store,
        reconciler,
        interval_minutes=settings.status_sweep_interval_minutes,
        concurrency=settings.status_sweep_concurrency,
    )
    sweeper.start()
    yield
    # Shutdown
    sweeper.shutdown()
    await index_client.close()
    await close_mongo_connection()


def create_application() -> FastAPI:
    """Factory for the FastAPI app. Keeps main.py clean and testable."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Upload PDFs and ask questions answered from your active documents, with citations.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(documents.router, prefix="/api/documents", tags=["documents"])

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_application()
