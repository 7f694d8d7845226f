"""Chat endpoints: SSE streaming replies, session reset and transcript."""

import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from scholarmate.agent.chat_service import ChatService
from scholarmate.agent.errors import SessionBusy
from scholarmate.models.schemas import (
    ChatRequest,
    MessageOut,
    ResetResponse,
    StreamChunk,
    StreamStatus,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

BUSY_DETAIL = "Session is busy processing another message"


def get_chat_service(request: Request) -> ChatService:
    """Return the ChatService built by the application factory."""
    return request.app.state.chat_service


def _sse(chunk: StreamChunk) -> str:
    return f"data: {chunk.model_dump_json()}\n\n"


@router.post("/stream")
async def chat_stream(
    payload: ChatRequest,
    service: ChatService = Depends(get_chat_service),
) -> StreamingResponse:
    """Stream the model reply for a message as Server-Sent Events.

    Each event is a JSON-encoded StreamChunk. The final event has done=true
    and status complete or error.

    Raises:
        409: A reply is already streaming.
        422: Empty or missing message.
    """
    if service.is_busy:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=BUSY_DETAIL)

    async def event_stream() -> AsyncGenerator[str]:
        try:
            async for chunk in service.stream_reply(payload.message):
                yield _sse(chunk)
        except SessionBusy:
            logger.warning("Rejected overlapping chat request")
            yield _sse(
                StreamChunk(
                    content="", done=True, status=StreamStatus.ERROR, error=BUSY_DETAIL
                )
            )

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/reset", response_model=ResetResponse)
async def reset_chat(service: ChatService = Depends(get_chat_service)) -> ResetResponse:
    """Start a new chat: clear the transcript and replace the remote session."""
    handle = service.initialize_chat()
    logger.info("Chat session reset")
    return ResetResponse(session_id=handle.session_id if handle else None)


@router.get("/messages", response_model=list[MessageOut])
async def list_messages(
    service: ChatService = Depends(get_chat_service),
) -> list[MessageOut]:
    """Return the current transcript in order."""
    return [MessageOut.from_message(m) for m in service.transcript]
