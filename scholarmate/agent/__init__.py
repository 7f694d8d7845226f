"""Gemini chat core for streaming conversations.

Responsibilities:
    - Session lifecycle bound to the ScholarMate persona and Google Search
    - Streaming a reply fragment by fragment with citation metadata
    - Keeping the transcript and flagging failed replies

The session is owned by a SessionManager instance built by the application,
never by a module-level global.
"""

from scholarmate.agent.chat_service import ChatService
from scholarmate.agent.config import ChatConfig, get_chat_config
from scholarmate.agent.errors import (
    ChatError,
    SessionBusy,
    SessionUnavailable,
    StreamError,
)
from scholarmate.agent.session_manager import (
    GeminiChatFactory,
    SessionHandle,
    SessionManager,
)
from scholarmate.agent.stream_reducer import StreamReducer

__all__ = [
    "ChatConfig",
    "ChatError",
    "ChatService",
    "GeminiChatFactory",
    "SessionBusy",
    "SessionHandle",
    "SessionManager",
    "SessionUnavailable",
    "StreamError",
    "StreamReducer",
    "get_chat_config",
]
