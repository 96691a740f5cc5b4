"""Shared test fixtures for the chat backend."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from chatbot.auth import create_access_token
from chatbot.config import Settings, get_settings
from chatbot.context import AppContext
from chatbot.main import app
from chatbot.models.users import User
from chatbot.providers.registry import ProviderRegistry
from chatbot.storage import MemoryChatStore

from tests.fakes import ScriptedProvider


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        mongodb_uri="",
        jwt_secret="test-secret",
        auth_required=True,
        quota_per_minute=60,
        chat_rate_limit_per_minute=20,
    )


@pytest.fixture
def store(test_settings: Settings) -> MemoryChatStore:
    return MemoryChatStore(
        default_provider=test_settings.default_provider,
        default_model=test_settings.default_model,
    )


@pytest.fixture
def cohere() -> ScriptedProvider:
    return ScriptedProvider("cohere", tokens=["Hel", "lo"])


@pytest.fixture
def openai() -> ScriptedProvider:
    return ScriptedProvider("openai", tokens=["Hi", " there"], label="OpenAI")


@pytest.fixture
def registry(cohere: ScriptedProvider, openai: ScriptedProvider) -> ProviderRegistry:
    return ProviderRegistry([cohere, openai], default="cohere")


@pytest.fixture
def context(
    test_settings: Settings, store: MemoryChatStore, registry: ProviderRegistry
) -> AppContext:
    return AppContext.build(test_settings, store, registry)


@pytest.fixture
def auth_headers(test_settings: Settings) -> dict[str, str]:
    token = create_access_token(User(id="user-1", username="tester"), test_settings)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(
    context: AppContext, test_settings: Settings
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    app.state.context = context
    app.dependency_overrides[get_settings] = lambda: test_settings
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
        app.state.context = None
