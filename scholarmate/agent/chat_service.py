"""ChatService ties the stream reducer to the visible transcript.

It is the recovery point for failed exchanges: a failed reply keeps its
partial content and is flagged as an error instead of disappearing.
"""

import asyncio
import inspect
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import aclosing

from scholarmate.agent.errors import ChatError, SessionBusy
from scholarmate.agent.prompts import ERROR_EXPLANATION
from scholarmate.agent.session_manager import SessionHandle, SessionManager
from scholarmate.agent.stream_reducer import StreamReducer
from scholarmate.models.chat import (
    GroundingMetadata,
    Message,
    Role,
    Transcript,
    dedupe_sources,
)
from scholarmate.models.schemas import StreamChunk, StreamStatus

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Message], Awaitable[None] | None]


class ChatService:
    """Conversation front-end for a single user.

    Wraps the session manager and stream reducer with:
    - A transcript of user and model messages
    - Error marking for failed replies
    - A chunked streaming interface for the SSE endpoint
    """

    def __init__(
        self,
        session_manager: SessionManager,
        reducer: StreamReducer | None = None,
    ) -> None:
        self._session_manager = session_manager
        self._reducer = reducer or StreamReducer(session_manager)
        self._transcript = Transcript()
        self._exchange_open = False

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def is_busy(self) -> bool:
        """Whether a reply is still being produced."""
        return self._exchange_open or self._reducer.is_busy

    def initialize_chat(self) -> SessionHandle | None:
        """Start a new conversation: clear the transcript and replace the session."""
        self._transcript.clear()
        return self._session_manager.initialize()

    def _begin_exchange(self, text: str) -> Message:
        if self.is_busy:
            raise SessionBusy("Session is busy processing another message")
        self._exchange_open = True
        self._transcript.append(Role.USER, text)
        return self._transcript.append(Role.MODEL)

    async def send(self, text: str, on_update: MessageCallback | None = None) -> Message:
        """Send a message and stream the reply into the transcript.

        Args:
            text: The user's message, already trimmed and non-empty.
            on_update: Optional callback invoked with the model message after
                each fragment is applied.

        Returns:
            The model message, flagged as an error if the exchange failed.

        Raises:
            SessionBusy: If a reply is still streaming. Nothing is appended.
        """
        reply = self._begin_exchange(text)

        async def apply(delta: str, metadata: GroundingMetadata | None) -> None:
            reply.apply_fragment(delta, metadata)
            if on_update is not None:
                result = on_update(reply)
                if inspect.isawaitable(result):
                    await result

        try:
            await self._reducer.send_and_stream(text, apply)
        except ChatError as e:
            logger.warning(f"Reply {reply.id} failed: {e}")
            reply.mark_error(ERROR_EXPLANATION)
        except asyncio.CancelledError:
            logger.warning(f"Reply {reply.id} cancelled")
            reply.mark_error(ERROR_EXPLANATION)
            raise
        finally:
            self._exchange_open = False

        return reply

    async def stream_reply(self, text: str) -> AsyncGenerator[StreamChunk]:
        """Send a message and yield the reply as stream chunks.

        Yields a `received` chunk, one `generating` chunk per fragment, then a
        final `done` chunk whose status is `complete` or `error`.

        Raises:
            SessionBusy: If a reply is still streaming. Nothing is appended.
        """
        reply = self._begin_exchange(text)
        finished = False
        try:
            yield StreamChunk(
                content="", done=False, status=StreamStatus.RECEIVED, message_id=reply.id
            )

            try:
                async with aclosing(self._reducer.stream(text)) as fragments:
                    async for fragment in fragments:
                        reply.apply_fragment(fragment.text, fragment.metadata)
                        yield StreamChunk(
                            content=fragment.text,
                            done=False,
                            status=StreamStatus.GENERATING,
                            sources=dedupe_sources(reply.grounding_metadata),
                            message_id=reply.id,
                        )
            except ChatError as e:
                logger.warning(f"Reply {reply.id} failed: {e}")
                reply.mark_error(ERROR_EXPLANATION)
                finished = True
                yield StreamChunk(
                    content="",
                    done=True,
                    status=StreamStatus.ERROR,
                    error=ERROR_EXPLANATION,
                    sources=dedupe_sources(reply.grounding_metadata),
                    message_id=reply.id,
                )
                return

            finished = True
            yield StreamChunk(
                content="",
                done=True,
                status=StreamStatus.COMPLETE,
                sources=dedupe_sources(reply.grounding_metadata),
                message_id=reply.id,
            )
        finally:
            # Consumer went away before the final chunk.
            if not finished and not reply.is_error:
                logger.warning(f"Reply {reply.id} abandoned before completion")
                reply.mark_error(ERROR_EXPLANATION)
            self._exchange_open = False
