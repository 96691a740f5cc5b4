"""Name to adapter lookup with a lenient fallback."""

from __future__ import annotations

import logging
from typing import Iterable

from chatbot.config import Settings
from chatbot.providers.base import ChatProvider
from chatbot.providers.cohere_provider import CohereProvider
from chatbot.providers.gemini_provider import GeminiProvider
from chatbot.providers.openai_provider import OpenAIProvider
from chatbot.providers.simulated_provider import SimulatedProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Maps provider names (case-insensitive) to adapter instances.

    Unknown names resolve to the default adapter with a warning, so a stale
    client setting never fails a chat turn.
    """

    def __init__(self, providers: Iterable[ChatProvider], default: str) -> None:
        self._providers = {p.name.lower(): p for p in providers}
        self._default = default.lower()
        if self._default not in self._providers:
            raise ValueError(f"Default provider {default!r} is not registered")

    @property
    def default(self) -> ChatProvider:
        return self._providers[self._default]

    @property
    def names(self) -> list[str]:
        return sorted(self._providers)

    def get(self, name: str | None) -> ChatProvider:
        provider = self._providers.get((name or "").strip().lower())
        if provider is None:
            logger.warning(
                'Provider "%s" not found, falling back to %s', name, self._default
            )
            return self.default
        return provider


def build_registry(settings: Settings) -> ProviderRegistry:
    """Register every known adapter; credentials are only checked on use."""
    return ProviderRegistry(
        [
            CohereProvider(settings.cohere_api_key),
            OpenAIProvider(settings.openai_api_key),
            GeminiProvider(settings.google_api_key),
            SimulatedProvider(),
        ],
        default=settings.default_provider,
    )
