"""Volatile in-process store used when no MongoDB URI is configured.

Data lives in plain dicts and is lost on restart.  Every operation runs
without awaiting in between reads and writes, so each one is atomic with
respect to other tasks on the event loop.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import uuid4

from chatbot.models.messages import Message, MessageCreate
from chatbot.models.sessions import Session, SessionCreate, SessionUpdate
from chatbot.models.users import User
from chatbot.storage.base import ChatStore, utcnow

logger = logging.getLogger(__name__)


class MemoryChatStore(ChatStore):
    """Dict-backed ``ChatStore``."""

    backend = "memory"

    def __init__(self, default_provider: str, default_model: str) -> None:
        super().__init__(default_provider, default_model)
        self._users: dict[str, User] = {}
        self._sessions: dict[str, Session] = {}
        # Insertion-ordered, so a stable sort on created_at keeps call order on ties
        self._messages: dict[str, Message] = {}
        self._last_timestamp: datetime | None = None

    def _now(self) -> datetime:
        # Never hand out a timestamp earlier than the previous one
        now = utcnow()
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def get_user_by_username(self, username: str) -> User | None:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    async def create_user(self, username: str) -> User:
        user = User(id=str(uuid4()), username=username)
        self._users[user.id] = user
        return user

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def list_sessions(self) -> list[Session]:
        return sorted(
            self._sessions.values(),
            key=lambda s: s.last_message_at,
            reverse=True,
        )

    async def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    async def create_session(self, fields: SessionCreate) -> Session:
        record = self._new_session_record(fields, str(uuid4()), self._now())
        session = Session(**record)
        self._sessions[session.id] = session
        logger.debug("Created session %s", session.id)
        return session

    async def update_session(
        self, session_id: str, fields: SessionUpdate
    ) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        updated = session.model_copy(update=fields.changes())
        self._sessions[session_id] = updated
        return updated

    async def delete_session(self, session_id: str) -> bool:
        existed = self._sessions.pop(session_id, None) is not None
        self._drop_messages(session_id)
        return existed

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def list_messages(self, session_id: str) -> list[Message]:
        return sorted(
            (m for m in self._messages.values() if m.session_id == session_id),
            key=lambda m: m.created_at,
        )

    async def create_message(self, fields: MessageCreate) -> Message:
        message = Message(**self._new_message_record(fields, str(uuid4()), self._now()))
        self._messages[message.id] = message

        session = self._sessions.get(fields.session_id)
        if session is not None:
            self._sessions[session.id] = session.model_copy(
                update={"last_message_at": message.created_at}
            )
        return message

    async def delete_messages_by_session(self, session_id: str) -> None:
        self._drop_messages(session_id)

    def _drop_messages(self, session_id: str) -> None:
        doomed = [mid for mid, m in self._messages.items() if m.session_id == session_id]
        for message_id in doomed:
            del self._messages[message_id]
