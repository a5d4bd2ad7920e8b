"""
Database connection and Beanie ODM initialization.

The Motor client is created once at startup, kept at module level so shutdown
can close it, and shared by the API process and the maintenance CLI.
"""

import logging
from typing import List, Optional, Type

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from pdfqa.config import Settings, get_settings
from pdfqa.models.document import PdfDocument
from pdfqa.models.user import User

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


async def connect_to_mongo(settings: Optional[Settings] = None) -> None:
    """
    Create Motor client and initialize Beanie with document models.
    Called once at application startup.
    """
    global _client
    settings = settings or get_settings()
    _client = AsyncIOMotorClient(settings.mongodb_url)
    database = _client[settings.mongodb_database]

    # Document models that Beanie will manage (collections + indexes)
    document_models: List[Type] = [User, PdfDocument]

    await init_beanie(
        database=database,
        document_models=document_models,
    )
    logger.info("MongoDB connection established; Beanie initialized.")


async def close_mongo_connection() -> None:
    """Close the Motor client created by connect_to_mongo()."""
    global _client
    if _client is None:
        return
    logger.info("Closing MongoDB connection.")
    _client.close()
    _client = None
