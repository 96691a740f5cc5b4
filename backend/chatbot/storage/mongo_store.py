"""MongoDB-backed store using motor.

Document schema (one document per record, ``_id`` never leaves the store)::

    sessions: { id, title, created_at, last_message_at, provider, model,
                system_prompt }
    messages: { id, session_id, role, content, created_at, token_count }
    users:    { id, username }

BSON dates only keep millisecond precision, so timestamps are truncated
before they are written; otherwise a message's ``created_at`` returned to
the caller would not equal the value read back later.  Messages sharing a
millisecond are ordered by ``_id``, which grows with insertion order.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import uuid4

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from chatbot.models.messages import Message, MessageCreate
from chatbot.models.sessions import Session, SessionCreate, SessionUpdate
from chatbot.models.users import User
from chatbot.storage.base import ChatStore, utcnow

logger = logging.getLogger(__name__)

SESSIONS_COLLECTION = "sessions"
MESSAGES_COLLECTION = "messages"
USERS_COLLECTION = "users"

_NO_OBJECT_ID = {"_id": 0}


def _now_ms() -> datetime:
    now = utcnow()
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class MongoChatStore(ChatStore):
    """``ChatStore`` persisted in MongoDB.

    Lifecycle:
        store = MongoChatStore(uri, database, ...)
        await store.initialize()   # ping + indexes, call once at startup
        ...
        await store.close()
    """

    backend = "mongodb"

    def __init__(
        self,
        connection_string: str,
        database_name: str,
        default_provider: str,
        default_model: str,
    ) -> None:
        super().__init__(default_provider, default_model)
        self._connection_string = connection_string
        self._database_name = database_name
        self._client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect, verify the server answers, and ensure indexes exist."""
        if self._client is not None:
            logger.warning("MongoChatStore already initialized - skipping")
            return

        self._client = AsyncIOMotorClient(
            self._connection_string,
            serverSelectionTimeoutMS=5_000,
            tz_aware=True,
        )
        self._db = self._client[self._database_name]
        try:
            await self._client.admin.command("ping")
        except Exception:
            self._client.close()
            self._client = None
            self._db = None
            raise
        logger.info("MongoDB connection established (database=%s)", self._database_name)

        await self._sessions.create_index("id", unique=True)
        await self._sessions.create_index([("last_message_at", DESCENDING)])
        await self._messages.create_index("id", unique=True)
        await self._messages.create_index(
            [("session_id", ASCENDING), ("created_at", ASCENDING)]
        )
        await self._users.create_index("id", unique=True)
        await self._users.create_index("username", unique=True)

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except Exception as exc:
            logger.warning("MongoDB ping failed: %s", exc)
            return False
        return True

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise RuntimeError("MongoChatStore not initialized - call initialize() first")
        return self._db

    @property
    def _sessions(self) -> AsyncIOMotorCollection:
        return self.db[SESSIONS_COLLECTION]

    @property
    def _messages(self) -> AsyncIOMotorCollection:
        return self.db[MESSAGES_COLLECTION]

    @property
    def _users(self) -> AsyncIOMotorCollection:
        return self.db[USERS_COLLECTION]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        doc = await self._users.find_one({"id": user_id}, _NO_OBJECT_ID)
        return User(**doc) if doc else None

    async def get_user_by_username(self, username: str) -> User | None:
        doc = await self._users.find_one({"username": username}, _NO_OBJECT_ID)
        return User(**doc) if doc else None

    async def create_user(self, username: str) -> User:
        user = User(id=str(uuid4()), username=username)
        await self._users.insert_one(user.model_dump())
        return user

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def list_sessions(self) -> list[Session]:
        cursor = self._sessions.find({}, _NO_OBJECT_ID).sort(
            [("last_message_at", DESCENDING), ("_id", DESCENDING)]
        )
        return [Session(**doc) async for doc in cursor]

    async def get_session(self, session_id: str) -> Session | None:
        doc = await self._sessions.find_one({"id": session_id}, _NO_OBJECT_ID)
        return Session(**doc) if doc else None

    async def create_session(self, fields: SessionCreate) -> Session:
        record = self._new_session_record(fields, str(uuid4()), _now_ms())
        # insert_one adds _id to the dict it is given
        await self._sessions.insert_one(dict(record))
        logger.debug("Created session %s", record["id"])
        return Session(**record)

    async def update_session(
        self, session_id: str, fields: SessionUpdate
    ) -> Session | None:
        changes = fields.changes()
        if not changes:
            return await self.get_session(session_id)
        doc = await self._sessions.find_one_and_update(
            {"id": session_id},
            {"$set": changes},
            projection=_NO_OBJECT_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Session(**doc) if doc else None

    async def delete_session(self, session_id: str) -> bool:
        result = await self._sessions.delete_one({"id": session_id})
        await self._messages.delete_many({"session_id": session_id})
        return result.deleted_count == 1

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def list_messages(self, session_id: str) -> list[Message]:
        cursor = self._messages.find({"session_id": session_id}, _NO_OBJECT_ID).sort(
            [("created_at", ASCENDING), ("_id", ASCENDING)]
        )
        return [Message(**doc) async for doc in cursor]

    async def create_message(self, fields: MessageCreate) -> Message:
        record: dict[str, Any] = self._new_message_record(
            fields, str(uuid4()), _now_ms()
        )
        await self._messages.insert_one(dict(record))
        await self._sessions.update_one(
            {"id": fields.session_id},
            {"$set": {"last_message_at": record["created_at"]}},
        )
        return Message(**record)

    async def delete_messages_by_session(self, session_id: str) -> None:
        await self._messages.delete_many({"session_id": session_id})
