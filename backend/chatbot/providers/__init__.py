"""Provider adapters - one streaming interface over several LLM backends."""

from .base import ChatCompletionChunk, ChatProvider, ProviderConfig
from .registry import ProviderRegistry, build_registry

__all__ = [
    "ChatCompletionChunk",
    "ChatProvider",
    "ProviderConfig",
    "ProviderRegistry",
    "build_registry",
]
