from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from scholarmate.models.chat import GroundingSource, Message, Role, dedupe_sources


class StreamStatus(str, Enum):
    """Status values for streaming updates."""

    RECEIVED = "received"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


class ChatRequest(BaseModel):
    """Request payload for the streaming chat endpoint.

    Attributes:
        message: User's question or prompt.
    """

    message: str = Field(..., min_length=1)

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, v: str) -> str:
        """Strip whitespace from message before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class StreamChunk(BaseModel):
    """A chunk of streamed response data.

    Attributes:
        content: Text produced since the previous chunk.
        done: Whether this is the final chunk.
        status: Current processing status (received, generating, complete, error).
        error: User-facing explanation if the exchange failed.
        sources: De-duplicated citations known so far for the reply.
        message_id: Id of the model message being streamed.
    """

    content: str
    done: bool
    status: StreamStatus | None = None
    error: str | None = None
    sources: list[GroundingSource] = Field(default_factory=list)
    message_id: str | None = None


class ResetResponse(BaseModel):
    """Response after starting a new chat session."""

    session_id: str | None
    reset: bool = True


class MessageOut(BaseModel):
    """Transcript entry as exposed over HTTP."""

    id: str
    role: Role
    content: str
    timestamp: datetime
    is_error: bool
    error_message: str | None = None
    sources: list[GroundingSource] = Field(default_factory=list)

    @classmethod
    def from_message(cls, message: Message) -> "MessageOut":
        return cls(
            id=message.id,
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            is_error=message.is_error,
            error_message=message.error_message,
            sources=dedupe_sources(message.grounding_metadata),
        )
