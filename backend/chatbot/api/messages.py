"""Message history endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from chatbot.auth import get_current_user_id
from chatbot.dependencies import get_store
from chatbot.errors import ValidationError
from chatbot.models.messages import Message
from chatbot.storage import ChatStore

router = APIRouter(dependencies=[Depends(get_current_user_id)])


@router.get("", response_model=list[Message])
async def list_messages(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    store: ChatStore = Depends(get_store),
) -> list[Message]:
    """Return a session's messages in chronological order."""
    if not session_id:
        raise ValidationError("Session ID is required")
    return await store.list_messages(session_id)
