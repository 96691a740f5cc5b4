"""Message models for persisted chat history and the chat endpoint."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from chatbot.models.base import CamelModel

CONTENT_MAX_LENGTH = 50_000


class MessageRole(str, Enum):
    """Message sender role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(CamelModel):
    """Persisted chat message. Never mutated after creation."""

    id: str
    session_id: str
    role: MessageRole
    content: str
    created_at: datetime
    token_count: Optional[int] = None


class MessageCreate(CamelModel):
    """Fields accepted by ``ChatStore.create_message``."""

    session_id: str = Field(min_length=1)
    role: MessageRole
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LENGTH)
    token_count: Optional[int] = None


class ChatRequest(CamelModel):
    """Body of ``POST /api/chat``.

    ``session_id`` and ``content`` are optional here so that their absence
    is reported by the orchestrator rather than as a schema error.
    """

    session_id: Optional[str] = None
    content: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    system_prompt: Optional[str] = None
