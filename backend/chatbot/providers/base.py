"""Provider adapter contract.

Every adapter turns a session's message history into a stream of text.
``ChatProvider`` owns the parts of the contract that must not differ
between backends:

- chunks are emitted in upstream order, followed by exactly one
  ``done=True`` chunk with empty content;
- once the cancel event is set the stream fails with ``StreamAbortedError``
  without waiting for the upstream to produce another fragment;
- the upstream iterator is always closed, however the stream ends;
- SDK failures are re-raised as a ``ProviderError`` subclass.

Concrete adapters only implement ``astream_text``.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from chatbot.errors import (
    ProviderError,
    StreamAbortedError,
    classify_provider_exception,
)
from chatbot.models.messages import Message, MessageRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatCompletionChunk:
    content: str
    done: bool = False


@dataclass(frozen=True)
class ProviderConfig:
    model: str
    system_prompt: str | None = None
    max_tokens: int | None = None


class ChatProvider(ABC):
    """Uniform streaming interface over one LLM backend."""

    #: Registry key, lower case.
    name: str = ""
    #: Human-readable name used in user-facing error messages.
    label: str = ""

    @abstractmethod
    def astream_text(
        self, messages: Sequence[Message], config: ProviderConfig
    ) -> AsyncIterator[str]:
        """Yield response text fragments as the upstream produces them."""

    async def stream_completion(
        self,
        messages: Sequence[Message],
        config: ProviderConfig,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[ChatCompletionChunk]:
        """Stream the reply to ``messages`` (oldest first) as chunks."""
        if cancel is not None and cancel.is_set():
            raise StreamAbortedError()

        # The pump task owns the upstream iterator from first read to close.
        queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue(maxsize=1)
        pump = asyncio.create_task(_pump(self.astream_text(messages, config), queue))
        try:
            while True:
                kind, value = await _next_or_cancel(queue, cancel)
                if kind == _END:
                    break
                if kind == _FAILED:
                    raise value
                if cancel is not None and cancel.is_set():
                    raise StreamAbortedError()
                if value:
                    yield ChatCompletionChunk(content=value)
        except StreamAbortedError:
            raise
        except Exception as exc:
            if cancel is not None and cancel.is_set():
                raise StreamAbortedError() from exc
            if isinstance(exc, ProviderError):
                raise
            raise classify_provider_exception(exc, self.name) from exc
        finally:
            if not pump.done():
                pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)

        if cancel is not None and cancel.is_set():
            raise StreamAbortedError()
        yield ChatCompletionChunk(content="", done=True)

    async def complete(
        self,
        messages: Sequence[Message],
        config: ProviderConfig,
        on_chunk: Callable[[ChatCompletionChunk], None],
        cancel: asyncio.Event | None = None,
    ) -> str:
        """Callback form of ``stream_completion``; returns the full reply."""
        parts: list[str] = []
        stream = self.stream_completion(messages, config, cancel)
        async with aclosing(stream):
            async for chunk in stream:
                if not chunk.done:
                    parts.append(chunk.content)
                on_chunk(chunk)
        return "".join(parts)


_TEXT = "text"
_FAILED = "failed"
_END = "end"


async def _pump(
    upstream: AsyncIterator[str], queue: asyncio.Queue[tuple[str, Any]]
) -> None:
    """Drain ``upstream`` into ``queue``, then report how it ended."""
    async with aclosing(upstream):
        try:
            async for text in upstream:
                await queue.put((_TEXT, text))
        except Exception as exc:
            await queue.put((_FAILED, exc))
            return
    await queue.put((_END, None))


async def _next_or_cancel(
    queue: asyncio.Queue[tuple[str, Any]], cancel: asyncio.Event | None
) -> tuple[str, Any]:
    """Wait for the next queued item, or raise once ``cancel`` is set first."""
    if cancel is None:
        return await queue.get()
    if cancel.is_set():
        raise StreamAbortedError()

    getter = asyncio.ensure_future(queue.get())
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({getter, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        getter.cancel()
        waiter.cancel()

    if getter.done() and not getter.cancelled():
        return getter.result()
    raise StreamAbortedError()


# ----------------------------------------------------------------------
# LangChain-backed adapters
# ----------------------------------------------------------------------


def to_langchain_messages(
    messages: Sequence[Message], system_prompt: str | None = None
) -> list[BaseMessage]:
    """Convert stored history to LangChain messages, system prompt first."""
    converted: list[BaseMessage] = []
    if system_prompt:
        converted.append(SystemMessage(content=system_prompt))
    for msg in messages:
        if msg.role == MessageRole.USER:
            converted.append(HumanMessage(content=msg.content))
        elif msg.role == MessageRole.ASSISTANT:
            converted.append(AIMessage(content=msg.content))
        else:
            converted.append(SystemMessage(content=msg.content))
    return converted


def chunk_text(chunk: BaseMessage) -> str:
    """Extract plain text from a streamed message chunk.

    Some models stream ``content`` as a list of typed parts rather than a
    string.
    """
    content = chunk.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class LangChainProvider(ChatProvider):
    """Adapter that streams from a LangChain chat model."""

    @abstractmethod
    def build_chat_model(self, config: ProviderConfig) -> BaseChatModel:
        """Return a chat model for this request; raise if unconfigured."""

    async def astream_text(
        self, messages: Sequence[Message], config: ProviderConfig
    ) -> AsyncIterator[str]:
        llm = self.build_chat_model(config)
        lc_messages = to_langchain_messages(messages, config.system_prompt)
        logger.debug(
            "Streaming %d messages to %s model=%s", len(lc_messages), self.name, config.model
        )
        async with aclosing(llm.astream(lc_messages)) as stream:
            async for chunk in stream:
                text = chunk_text(chunk)
                if text:
                    yield text
