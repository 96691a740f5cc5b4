"""Cohere chat adapter (the default provider)."""

from __future__ import annotations

from langchain_cohere import ChatCohere

from chatbot.errors import ProviderAuthError
from chatbot.providers.base import LangChainProvider, ProviderConfig

DEFAULT_COHERE_MODEL = "command-r-08-2024"


class CohereProvider(LangChainProvider):
    name = "cohere"
    label = "Cohere"

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    def build_chat_model(self, config: ProviderConfig) -> ChatCohere:
        if not self._api_key:
            raise ProviderAuthError(
                "COHERE_API_KEY is not set in environment variables",
                provider=self.name,
            )
        return ChatCohere(
            model=config.model or DEFAULT_COHERE_MODEL,
            cohere_api_key=self._api_key,
            max_tokens=config.max_tokens,
            streaming=True,
        )
