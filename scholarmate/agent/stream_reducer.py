"""StreamReducer drives one request/response exchange with the model.

Each call sends one user turn into the current session and consumes the
incremental response stream, handing out one fragment per remote chunk in
arrival order. The next chunk is not requested until the consumer has
handled the current one.
"""

import inspect
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import aclosing
from typing import Any

from scholarmate.agent.errors import SessionBusy, StreamError
from scholarmate.agent.session_manager import SessionManager
from scholarmate.models.chat import Fragment, GroundingMetadata

logger = logging.getLogger(__name__)

FragmentCallback = Callable[[str, GroundingMetadata | None], Awaitable[None] | None]


def to_fragment(chunk: Any) -> Fragment:
    """Extract the text delta and grounding metadata from a response chunk."""
    text = getattr(chunk, "text", None) or ""

    raw_metadata = None
    candidates = getattr(chunk, "candidates", None)
    if candidates:
        raw_metadata = getattr(candidates[0], "grounding_metadata", None)

    return Fragment(text=text, metadata=GroundingMetadata.from_genai(raw_metadata))


class StreamReducer:
    """Streams model replies for the session held by a SessionManager.

    Only one exchange may be in flight at a time; starting another raises
    `SessionBusy`. No retries are attempted.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager
        self._in_flight = False

    @property
    def is_busy(self) -> bool:
        """Whether an exchange is currently streaming."""
        return self._in_flight

    async def stream(self, text: str) -> AsyncGenerator[Fragment]:
        """Send a user turn and yield reply fragments as they arrive.

        Args:
            text: Non-empty user message. Not re-validated here.

        Yields:
            One Fragment per remote chunk, in arrival order.

        Raises:
            SessionBusy: If another exchange is still streaming.
            SessionUnavailable: If no session could be created. Raised before
                any network call.
            StreamError: If the remote call fails or the stream breaks.
        """
        if self._in_flight:
            raise SessionBusy("Session is busy processing another message")

        self._in_flight = True
        try:
            handle = self._session_manager.current_or_initialize()
            logger.info(f"Sending message on session {handle.session_id}")

            try:
                response_stream = await handle.chat.send_message_stream(text)
            except Exception as e:
                logger.error(f"Error sending message: {e}")
                raise StreamError(f"Failed to send message: {e}") from e

            count = 0
            iterator = aiter(response_stream)
            while True:
                try:
                    chunk = await anext(iterator)
                except StopAsyncIteration:
                    break
                except Exception as e:
                    logger.error(f"Response stream failed after {count} fragment(s): {e}")
                    raise StreamError(f"Response stream interrupted: {e}") from e

                count += 1
                yield to_fragment(chunk)

            logger.info(f"Reply complete on session {handle.session_id} ({count} fragments)")
        finally:
            self._in_flight = False

    async def send_and_stream(self, text: str, on_fragment: FragmentCallback) -> None:
        """Perform one exchange, invoking `on_fragment(delta, metadata)` per fragment.

        The callback runs before the next fragment is requested. If it returns
        an awaitable, that is awaited first. Fragments already delivered are
        never retracted when the exchange fails.

        Raises:
            SessionBusy, SessionUnavailable, StreamError: See `stream`.
        """
        async with aclosing(self.stream(text)) as fragments:
            async for fragment in fragments:
                result = on_fragment(fragment.text, fragment.metadata)
                if inspect.isawaitable(result):
                    await result
