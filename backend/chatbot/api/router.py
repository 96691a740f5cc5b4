"""Central API router that aggregates all route modules."""

from fastapi import APIRouter

from chatbot.api.auth import router as auth_router
from chatbot.api.chat import router as chat_router
from chatbot.api.health import router as health_router
from chatbot.api.messages import router as messages_router
from chatbot.api.sessions import router as sessions_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(sessions_router, prefix="/sessions", tags=["sessions"])
api_router.include_router(messages_router, prefix="/messages", tags=["messages"])
api_router.include_router(chat_router, prefix="/chat", tags=["chat"])
