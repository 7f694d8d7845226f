"""SessionManager owns the single live Gemini chat session.

The session is bound at creation time to the ScholarMate persona and the
Google Search tool. Resetting the conversation replaces the whole session,
so the remote side forgets everything said before the reset.
"""

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from google import genai
from google.genai import types

from scholarmate.agent.config import ChatConfig, get_chat_config
from scholarmate.agent.errors import SessionUnavailable

logger = logging.getLogger(__name__)

# Builds a remote chat object exposing `await send_message_stream(message)`
ChatFactory = Callable[[ChatConfig], Any]


@dataclass(frozen=True)
class SessionHandle:
    """An established conversation context with the remote model."""

    chat: Any
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=datetime.now)


class GeminiChatFactory:
    """Creates Gemini async chats configured with persona and toolset."""

    def __init__(self) -> None:
        self._client: genai.Client | None = None

    def _get_client(self, config: ChatConfig) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=config.api_key or None)
        return self._client

    def __call__(self, config: ChatConfig) -> Any:
        tools = [types.Tool(google_search=types.GoogleSearch())] if config.enable_search else None
        return self._get_client(config).aio.chats.create(
            model=config.model_name,
            config=types.GenerateContentConfig(
                system_instruction=config.system_instruction,
                tools=tools,
                temperature=config.temperature,
            ),
        )


class SessionManager:
    """Holds at most one session handle and recreates it on demand.

    States:
    - Unbound: no handle (initial state, or the last creation failed)
    - Bound: a handle is current

    `initialize()` always replaces the current handle. Creation failures are
    logged and deferred: they surface as `SessionUnavailable` from
    `current_or_initialize()`.
    """

    def __init__(
        self,
        config: ChatConfig | None = None,
        chat_factory: ChatFactory | None = None,
    ) -> None:
        """Initialize the session manager.

        Args:
            config: Chat configuration. Loads from environment if not provided.
            chat_factory: Callable building a remote chat from the config.
                Defaults to a Gemini async chat.
        """
        self._config = config or get_chat_config()
        self._chat_factory = chat_factory or GeminiChatFactory()
        self._handle: SessionHandle | None = None
        self._last_error: Exception | None = None
        self._lock = threading.Lock()

    @property
    def config(self) -> ChatConfig:
        return self._config

    @property
    def current(self) -> SessionHandle | None:
        """The current handle, or None while unbound."""
        with self._lock:
            return self._handle

    @property
    def is_bound(self) -> bool:
        return self.current is not None

    def initialize(self) -> SessionHandle | None:
        """Create a new session, unconditionally replacing the current one.

        Returns:
            The new handle, or None if the session could not be created.
        """
        try:
            chat = self._chat_factory(self._config)
        except Exception as e:
            logger.error(f"Failed to create chat session: {e}")
            with self._lock:
                self._handle = None
                self._last_error = e
            return None

        handle = SessionHandle(chat=chat)
        with self._lock:
            previous = self._handle
            self._handle = handle
            self._last_error = None

        if previous is None:
            logger.info(f"Created chat session {handle.session_id}")
        else:
            logger.info(
                f"Replaced chat session {previous.session_id} with {handle.session_id}"
            )
        return handle

    def current_or_initialize(self) -> SessionHandle:
        """Return the current handle, creating one first if unbound.

        Raises:
            SessionUnavailable: If no session could be created.
        """
        handle = self.current
        if handle is not None:
            return handle

        handle = self.initialize()
        if handle is None:
            raise SessionUnavailable(
                "Failed to initialize chat session."
            ) from self._last_error
        return handle
