"""User models for token login."""

from chatbot.models.base import CamelModel


class User(CamelModel):
    id: str
    username: str


class LoginRequest(CamelModel):
    username: str = ""


class LoginResponse(CamelModel):
    token: str
    user: User
