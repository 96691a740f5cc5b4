"""Credential-free adapter that streams a canned reply word by word.

Useful for local development and demos when no provider key is configured.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Sequence

from chatbot.models.messages import Message
from chatbot.providers.base import ChatProvider, ProviderConfig


class SimulatedProvider(ChatProvider):
    name = "simulated"
    label = "Simulated"

    def __init__(self, delay: float = 0.05) -> None:
        self._delay = delay

    async def astream_text(
        self, messages: Sequence[Message], config: ProviderConfig
    ) -> AsyncIterator[str]:
        if not messages:
            raise ValueError("No messages provided")

        reply = (
            f'[Simulated] This is a simulated response to: "{messages[-1].content}". '
            "Configure a provider API key to talk to a real model."
        )
        words = reply.split(" ")
        for i, word in enumerate(words):
            yield word if i == len(words) - 1 else word + " "
            if self._delay:
                await asyncio.sleep(self._delay)
