"""Streaming chat endpoint.

``POST /api/chat`` validates the turn and stores the user message before
any bytes are sent, so request errors still get a normal HTTP status.
The reply is then streamed as server-sent events.
"""

import asyncio
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from chatbot.chat import sse
from chatbot.chat.orchestrator import ChatOrchestrator, ChatTurn
from chatbot.dependencies import enforce_chat_limits, get_orchestrator
from chatbot.models.messages import ChatRequest

logger = logging.getLogger(__name__)
router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.25


@router.post("")
async def chat(
    request: Request,
    body: ChatRequest,
    user_id: str = Depends(enforce_chat_limits),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Send a message and stream the assistant's reply."""
    turn = await orchestrator.start_turn(body)
    logger.debug("Streaming reply for user %s in session %s", user_id, turn.session.id)
    return StreamingResponse(
        _relay(request, orchestrator, turn),
        media_type=sse.MEDIA_TYPE,
        headers=sse.STREAM_HEADERS,
    )


async def _relay(
    request: Request, orchestrator: ChatOrchestrator, turn: ChatTurn
) -> AsyncIterator[str]:
    watcher = asyncio.create_task(_watch_disconnect(request, turn.cancel))
    try:
        async for frame in orchestrator.stream_turn(turn):
            yield frame
    finally:
        watcher.cancel()


async def _watch_disconnect(request: Request, cancel: asyncio.Event) -> None:
    """Set ``cancel`` once the client connection closes."""
    while not cancel.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected from chat stream")
            cancel.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)
