"""OpenAI chat-completions adapter."""

from __future__ import annotations

from langchain_openai import ChatOpenAI

from chatbot.errors import ProviderAuthError
from chatbot.providers.base import LangChainProvider, ProviderConfig


class OpenAIProvider(LangChainProvider):
    name = "openai"
    label = "OpenAI"

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    def build_chat_model(self, config: ProviderConfig) -> ChatOpenAI:
        if not self._api_key:
            raise ProviderAuthError(
                "OPENAI_API_KEY is not set in environment variables",
                provider=self.name,
            )
        return ChatOpenAI(
            model=config.model,
            api_key=self._api_key,
            max_tokens=config.max_tokens,
            streaming=True,
        )
