"""Storage contract shared by the MongoDB and in-memory backends.

Both backends must behave identically:

- sessions are listed most-recent first by ``last_message_at``;
- messages are listed oldest first, ties broken by insertion order;
- ``create_message`` moves the owning session's ``last_message_at`` to the
  new message's ``created_at``;
- deleting a session deletes its messages.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from chatbot.models.messages import Message, MessageCreate
from chatbot.models.sessions import Session, SessionCreate, SessionUpdate
from chatbot.models.users import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatStore(ABC):
    """Async persistence for users, sessions and messages."""

    #: Short backend name reported by the health endpoint.
    backend: str = "abstract"

    def __init__(self, default_provider: str, default_model: str) -> None:
        self.default_provider = default_provider
        self.default_model = default_model

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect and prepare indexes. No-op by default."""

    async def close(self) -> None:
        """Release connections. No-op by default."""

    async def ping(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def create_user(self, username: str) -> User: ...

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_sessions(self) -> list[Session]: ...

    @abstractmethod
    async def get_session(self, session_id: str) -> Session | None: ...

    @abstractmethod
    async def create_session(self, fields: SessionCreate) -> Session: ...

    @abstractmethod
    async def update_session(
        self, session_id: str, fields: SessionUpdate
    ) -> Session | None: ...

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool: ...

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_messages(self, session_id: str) -> list[Message]: ...

    @abstractmethod
    async def create_message(self, fields: MessageCreate) -> Message: ...

    @abstractmethod
    async def delete_messages_by_session(self, session_id: str) -> None: ...

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _new_session_record(
        self, fields: SessionCreate, session_id: str, now: datetime
    ) -> dict[str, Any]:
        return {
            "id": session_id,
            "title": fields.title,
            "created_at": now,
            "last_message_at": now,
            "provider": fields.provider or self.default_provider,
            "model": fields.model or self.default_model,
            "system_prompt": fields.system_prompt or None,
        }

    @staticmethod
    def _new_message_record(
        fields: MessageCreate, message_id: str, now: datetime
    ) -> dict[str, Any]:
        return {
            "id": message_id,
            "session_id": fields.session_id,
            "role": fields.role.value,
            "content": fields.content,
            "created_at": now,
            "token_count": fields.token_count,
        }
