"""Session models for conversation management."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from chatbot.models.base import CamelModel

DEFAULT_SESSION_TITLE = "New Conversation"
TITLE_MAX_LENGTH = 200


class Session(CamelModel):
    """Conversation session metadata."""

    id: str
    title: str
    created_at: datetime
    last_message_at: datetime
    provider: str
    model: str
    system_prompt: Optional[str] = None


class SessionCreate(CamelModel):
    """Body of ``POST /api/sessions``."""

    title: str = Field(
        default=DEFAULT_SESSION_TITLE, min_length=1, max_length=TITLE_MAX_LENGTH
    )
    provider: Optional[str] = None
    model: Optional[str] = None
    system_prompt: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value


class SessionUpdate(CamelModel):
    """Partial update; ``None`` fields are left untouched."""

    title: Optional[str] = Field(default=None, max_length=TITLE_MAX_LENGTH)
    provider: Optional[str] = None
    model: Optional[str] = None
    system_prompt: Optional[str] = None
    last_message_at: Optional[datetime] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class SessionRename(CamelModel):
    """Body of ``PATCH /api/sessions/{id}``."""

    title: Optional[str] = None
