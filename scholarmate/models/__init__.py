"""Pydantic models for the conversation and the HTTP API.

Models:
    - Message: One transcript turn, grown fragment by fragment
    - GroundingMetadata / GroundingSource: Web citations for a reply
    - Fragment: One incremental piece of a streamed reply
    - Transcript: Ordered message list owned by the caller
    - ChatRequest / StreamChunk: Streaming endpoint payloads
"""

from scholarmate.models.chat import (
    Fragment,
    GroundingMetadata,
    GroundingSource,
    Message,
    Role,
    Transcript,
    dedupe_sources,
)
from scholarmate.models.schemas import (
    ChatRequest,
    MessageOut,
    ResetResponse,
    StreamChunk,
    StreamStatus,
)

__all__ = [
    "ChatRequest",
    "Fragment",
    "GroundingMetadata",
    "GroundingSource",
    "Message",
    "MessageOut",
    "ResetResponse",
    "Role",
    "StreamChunk",
    "StreamStatus",
    "Transcript",
    "dedupe_sources",
]
