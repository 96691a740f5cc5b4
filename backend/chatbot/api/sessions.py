"""Session management endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from chatbot.auth import get_current_user_id
from chatbot.dependencies import get_store
from chatbot.errors import NotFoundError, ValidationError
from chatbot.models.sessions import Session, SessionCreate, SessionRename, SessionUpdate
from chatbot.storage import ChatStore

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(get_current_user_id)])


@router.get("", response_model=list[Session])
async def list_sessions(store: ChatStore = Depends(get_store)) -> list[Session]:
    """Return all sessions, most recently active first."""
    return await store.list_sessions()


@router.get("/{session_id}", response_model=Session)
async def get_session(session_id: str, store: ChatStore = Depends(get_store)) -> Session:
    session = await store.get_session(session_id)
    if session is None:
        raise NotFoundError("Session not found")
    return session


@router.post("", response_model=Session, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: SessionCreate,
    store: ChatStore = Depends(get_store),
) -> Session:
    session = await store.create_session(body)
    logger.info("Session %s created (provider=%s)", session.id, session.provider)
    return session


@router.patch("/{session_id}", response_model=Session)
async def rename_session(
    session_id: str,
    body: SessionRename,
    store: ChatStore = Depends(get_store),
) -> Session:
    title = (body.title or "").strip()
    if not title:
        raise ValidationError("Title is required")

    try:
        update = SessionUpdate(title=title)
    except ValueError as exc:
        raise ValidationError("Title too long") from exc

    session = await store.update_session(session_id, update)
    if session is None:
        raise NotFoundError("Session not found")
    return session


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, store: ChatStore = Depends(get_store)) -> Response:
    """Delete a session and all of its messages."""
    if not await store.delete_session(session_id):
        raise NotFoundError("Session not found")
    logger.info("Session %s deleted", session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{session_id}/messages", status_code=status.HTTP_204_NO_CONTENT)
async def clear_messages(session_id: str, store: ChatStore = Depends(get_store)) -> Response:
    """Remove every message in a session but keep the session itself."""
    await store.delete_messages_by_session(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
