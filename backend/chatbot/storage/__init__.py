"""Storage backends - MongoDB when configured, otherwise an in-memory map."""

import logging

from chatbot.config import Settings

from .base import ChatStore
from .memory_store import MemoryChatStore
from .mongo_store import MongoChatStore

logger = logging.getLogger(__name__)

__all__ = ["ChatStore", "MemoryChatStore", "MongoChatStore", "open_store"]


async def open_store(settings: Settings) -> ChatStore:
    """Build and initialize the store selected by configuration.

    A configured but unreachable MongoDB degrades to the in-memory store
    so the server still starts.
    """
    if settings.uses_mongodb:
        store = MongoChatStore(
            settings.mongodb_uri,
            settings.mongodb_database,
            default_provider=settings.default_provider,
            default_model=settings.default_model,
        )
        try:
            await store.initialize()
            logger.info("Using MongoDB storage")
            return store
        except Exception as exc:
            logger.warning("MongoDB connection failed: %s", exc)
            logger.warning("Using in-memory storage instead (data will not persist)")
    else:
        logger.info("MONGODB_URI not set - using in-memory storage (data will not persist)")

    store = MemoryChatStore(
        default_provider=settings.default_provider,
        default_model=settings.default_model,
    )
    await store.initialize()
    return store
