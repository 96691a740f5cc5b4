"""Google Gemini adapter via langchain-google-genai."""

from __future__ import annotations

from langchain_google_genai import ChatGoogleGenerativeAI

from chatbot.errors import ProviderAuthError
from chatbot.providers.base import LangChainProvider, ProviderConfig


class GeminiProvider(LangChainProvider):
    name = "gemini"
    label = "Gemini"

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    def build_chat_model(self, config: ProviderConfig) -> ChatGoogleGenerativeAI:
        if not self._api_key:
            raise ProviderAuthError(
                "GOOGLE_API_KEY is not set in environment variables",
                provider=self.name,
            )
        return ChatGoogleGenerativeAI(
            model=config.model,
            google_api_key=self._api_key,
            max_output_tokens=config.max_tokens,
            temperature=0.7,
            streaming=True,
        )
