"""Dependency injection providers for FastAPI."""

from fastapi import Depends, Request

from chatbot.auth import get_current_user_id
from chatbot.chat.orchestrator import ChatOrchestrator
from chatbot.context import AppContext
from chatbot.errors import RateLimitError
from chatbot.storage import ChatStore


def get_context(request: Request) -> AppContext:
    """Return the context installed on ``app.state`` at startup."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("Application context not initialized")
    return context


def get_store(context: AppContext = Depends(get_context)) -> ChatStore:
    return context.store


def get_orchestrator(context: AppContext = Depends(get_context)) -> ChatOrchestrator:
    return context.orchestrator


def enforce_chat_limits(
    request: Request,
    context: AppContext = Depends(get_context),
    user_id: str = Depends(get_current_user_id),
) -> str:
    """Apply the per-IP rate limit, then the per-user quota."""
    client_ip = request.client.host if request.client else "unknown"
    if not context.chat_rate_limiter.hit(client_ip):
        raise RateLimitError("Too many requests, please try again later")
    if not context.user_quota.hit(user_id):
        raise RateLimitError("Quota exceeded")
    return user_id
