"""Process-wide collaborators shared by request handlers.

Built once by the application lifespan and torn down at shutdown.  Tests
build their own with an in-memory store and scripted providers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from chatbot.chat.orchestrator import ChatOrchestrator
from chatbot.config import Settings
from chatbot.providers.registry import ProviderRegistry, build_registry
from chatbot.quota import QuotaTracker
from chatbot.storage import ChatStore, open_store

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    store: ChatStore
    registry: ProviderRegistry
    orchestrator: ChatOrchestrator
    chat_rate_limiter: QuotaTracker
    user_quota: QuotaTracker

    @classmethod
    def build(
        cls, settings: Settings, store: ChatStore, registry: ProviderRegistry
    ) -> "AppContext":
        return cls(
            store=store,
            registry=registry,
            orchestrator=ChatOrchestrator(
                store, registry, max_tokens=settings.max_tokens
            ),
            chat_rate_limiter=QuotaTracker(settings.chat_rate_limit_per_minute, 60.0),
            user_quota=QuotaTracker(settings.quota_per_minute, 60.0),
        )

    async def close(self) -> None:
        await self.store.close()


async def create_context(settings: Settings) -> AppContext:
    store = await open_store(settings)
    registry = build_registry(settings)
    logger.info(
        "Providers registered: %s (default=%s)",
        ", ".join(registry.names),
        registry.default.name,
    )
    return AppContext.build(settings, store, registry)
