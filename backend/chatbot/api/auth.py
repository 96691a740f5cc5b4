"""Token login and current-user endpoints."""

import logging

from fastapi import APIRouter, Depends

from chatbot.auth import create_access_token, create_or_get_user, get_current_user_id
from chatbot.config import Settings, get_settings
from chatbot.dependencies import get_store
from chatbot.errors import NotFoundError, ValidationError
from chatbot.models.users import LoginRequest, LoginResponse, User
from chatbot.storage import ChatStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    store: ChatStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """Issue a bearer token, creating the user on first login."""
    username = body.username.strip()
    if not username:
        raise ValidationError("username required")

    user = await create_or_get_user(store, username)
    token = create_access_token(user, settings)
    return LoginResponse(token=token, user=user)


@router.get("/me", response_model=User)
async def current_user(
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store),
) -> User:
    user = await store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user
