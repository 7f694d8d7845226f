"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - chat_config: ChatConfig with a dummy API key
    - fake_remote: Scriptable stand-in for the Gemini chat API
    - session_manager / reducer / chat_service: Core wired to the fake
    - async_client: HTTPX client for API testing against the fake
"""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from scholarmate.agent.chat_service import ChatService
from scholarmate.agent.config import ChatConfig
from scholarmate.agent.session_manager import SessionManager
from scholarmate.agent.stream_reducer import StreamReducer
from scholarmate.api.app import create_app
from tests.fakes import FakeRemote


@pytest.fixture
def chat_config() -> ChatConfig:
    """Return a config that never reads the real environment key."""
    return ChatConfig(api_key="test-key", model_name="gemini-test")


@pytest.fixture
def fake_remote() -> FakeRemote:
    """Return a fake remote with no scripted replies (echo mode)."""
    return FakeRemote()


@pytest.fixture
def session_manager(chat_config: ChatConfig, fake_remote: FakeRemote) -> SessionManager:
    return SessionManager(config=chat_config, chat_factory=fake_remote)


@pytest.fixture
def reducer(session_manager: SessionManager) -> StreamReducer:
    return StreamReducer(session_manager)


@pytest.fixture
def chat_service(session_manager: SessionManager, reducer: StreamReducer) -> ChatService:
    return ChatService(session_manager, reducer)


@pytest.fixture
async def async_client(
    chat_config: ChatConfig, fake_remote: FakeRemote
) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    app = create_app(config=chat_config, chat_factory=fake_remote)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
