"""Per-request coordinator for a chat turn.

A turn moves through::

    RECEIVED -> VALIDATED -> PERSISTED_USER_MSG -> STREAMING
        -> COMPLETED | ABORTED | FAILED

``start_turn`` covers everything up to the user message being stored and
raises request errors (``ValidationError``, ``PolicyBlockedError``,
``NotFoundError``) while an ordinary HTTP error can still be returned.
``stream_turn`` then yields SSE frames; from that point errors are only
reported in-band and every non-aborted stream ends with ``[DONE]``.

Turns are never retried here.  Concurrent turns on one session are not
serialised; the client is expected to wait for the previous turn to end.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Callable

from pydantic import ValidationError as SchemaError

from chatbot.chat import sse
from chatbot.errors import (
    NotFoundError,
    PolicyBlockedError,
    ProviderError,
    StreamAbortedError,
    ValidationError,
    describe_provider_error,
)
from chatbot.models.messages import ChatRequest, Message, MessageCreate, MessageRole
from chatbot.models.sessions import DEFAULT_SESSION_TITLE, Session, SessionUpdate
from chatbot.providers.base import ChatProvider, ProviderConfig
from chatbot.providers.registry import ProviderRegistry
from chatbot.safety import PolicyResult, validate_message_content
from chatbot.storage.base import ChatStore

logger = logging.getLogger(__name__)

TITLE_PREFIX_LENGTH = 50
GENERIC_FAILURE_MESSAGE = "An error occurred while generating response"


class TurnState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    PERSISTED_USER_MSG = "persisted_user_msg"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class ChatTurn:
    """State carried from ``start_turn`` into ``stream_turn``."""

    session: Session
    content: str
    user_message: Message
    history: list[Message]
    provider: ChatProvider
    config: ProviderConfig
    state: TurnState = TurnState.PERSISTED_USER_MSG
    cancel: asyncio.Event = field(default_factory=asyncio.Event)


def title_from_content(content: str) -> str:
    """Session title derived from the first user message."""
    if len(content) > TITLE_PREFIX_LENGTH:
        return content[:TITLE_PREFIX_LENGTH] + "..."
    return content


class ChatOrchestrator:
    def __init__(
        self,
        store: ChatStore,
        registry: ProviderRegistry,
        *,
        max_tokens: int | None = None,
        content_policy: Callable[[str], PolicyResult] = validate_message_content,
    ) -> None:
        self._store = store
        self._registry = registry
        self._max_tokens = max_tokens
        self._content_policy = content_policy

    # ------------------------------------------------------------------
    # Before the stream
    # ------------------------------------------------------------------

    async def start_turn(self, request: ChatRequest) -> ChatTurn:
        """Validate the request and persist the user message."""
        if not request.session_id or not request.content:
            raise ValidationError("Session ID and content are required")

        verdict = self._content_policy(request.content)
        if not verdict.ok:
            reason = verdict.reason or "Message blocked by safety policy"
            await self._record_block(request.session_id, reason)
            raise PolicyBlockedError(reason)

        session = await self._store.get_session(request.session_id)
        if session is None:
            raise NotFoundError("Session not found")

        content = request.content.strip()
        try:
            fields = MessageCreate(
                session_id=session.id, role=MessageRole.USER, content=content
            )
        except SchemaError as exc:
            raise ValidationError(
                "Invalid message data",
                details=exc.errors(include_url=False, include_context=False),
            ) from exc

        user_message = await self._store.create_message(fields)
        history = await self._store.list_messages(session.id)

        provider = self._registry.get(request.provider or session.provider)
        config = ProviderConfig(
            model=request.model or session.model,
            system_prompt=request.system_prompt or session.system_prompt,
            max_tokens=self._max_tokens,
        )
        logger.info(
            "Chat turn for session %s via %s (model=%s, history=%d)",
            session.id,
            provider.name,
            config.model,
            len(history),
        )
        return ChatTurn(
            session=session,
            content=content,
            user_message=user_message,
            history=history,
            provider=provider,
            config=config,
        )

    async def _record_block(self, session_id: str, reason: str) -> None:
        # Blocked input is kept in the transcript, but only for real sessions
        if await self._store.get_session(session_id) is None:
            logger.info("Blocked message for unknown session %s: %s", session_id, reason)
            return
        await self._store.create_message(
            MessageCreate(
                session_id=session_id,
                role=MessageRole.ASSISTANT,
                content=f"Message blocked: {reason}",
            )
        )
        logger.info("Blocked message in session %s: %s", session_id, reason)

    # ------------------------------------------------------------------
    # The stream
    # ------------------------------------------------------------------

    async def stream_turn(self, turn: ChatTurn) -> AsyncIterator[str]:
        """Relay provider output as SSE frames and record the outcome."""
        turn.state = TurnState.STREAMING
        buffer: list[str] = []
        try:
            stream = turn.provider.stream_completion(
                turn.history, turn.config, turn.cancel
            )
            async with aclosing(stream):
                async for chunk in stream:
                    if chunk.done:
                        continue
                    buffer.append(chunk.content)
                    yield sse.encode_chunk(chunk.content)

        except StreamAbortedError:
            turn.state = TurnState.ABORTED
            logger.info("Chat stream aborted by client (session=%s)", turn.session.id)
            return
        except asyncio.CancelledError:
            turn.state = TurnState.ABORTED
            logger.info("Chat stream cancelled (session=%s)", turn.session.id)
            raise
        except ProviderError as exc:
            turn.state = TurnState.FAILED
            logger.error(
                "Provider %s failed for session %s: %s",
                turn.provider.name,
                turn.session.id,
                exc,
                exc_info=exc,
            )
            message = describe_provider_error(exc, turn.provider.label)
            for frame in await self._fail(turn, message):
                yield frame
            return

        try:
            await self._complete(turn, "".join(buffer))
        except Exception:
            turn.state = TurnState.FAILED
            logger.exception("Failed to record reply for session %s", turn.session.id)
            yield sse.encode_error(GENERIC_FAILURE_MESSAGE)
        yield sse.DONE_FRAME

    async def _complete(self, turn: ChatTurn, reply: str) -> None:
        if reply:
            await self._store.create_message(
                MessageCreate(
                    session_id=turn.session.id,
                    role=MessageRole.ASSISTANT,
                    content=reply,
                )
            )
            current = await self._store.get_session(turn.session.id)
            if current is not None and current.title == DEFAULT_SESSION_TITLE:
                await self._store.update_session(
                    turn.session.id,
                    SessionUpdate(title=title_from_content(turn.content)),
                )
        turn.state = TurnState.COMPLETED

    async def _fail(self, turn: ChatTurn, message: str) -> list[str]:
        try:
            await self._store.create_message(
                MessageCreate(
                    session_id=turn.session.id,
                    role=MessageRole.ASSISTANT,
                    content=f"Error: {message}",
                )
            )
        except Exception:
            logger.exception("Failed to record error for session %s", turn.session.id)
        return [sse.encode_error(message), sse.DONE_FRAME]
