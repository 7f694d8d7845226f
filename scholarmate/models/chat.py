"""Conversation data model: messages, citations and stream fragments.

The core only ever appends text and replaces citation metadata on a model
message. De-duplication of citation sources is a presentation concern and
lives in `dedupe_sources`, outside the reduction rule.
"""

import itertools
import time
from collections.abc import Iterator
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

_sequence = itertools.count()


def new_message_id() -> str:
    """Return an opaque id that sorts lexicographically by creation time."""
    return f"{time.time_ns():020d}-{next(_sequence):06d}"


class Role(str, Enum):
    """Speaker of a transcript message."""

    USER = "user"
    MODEL = "model"


class GroundingSource(BaseModel):
    """A single web citation.

    Attributes:
        uri: Address of the cited page (identity for de-duplication).
        title: Optional page title.
    """

    uri: str
    title: str | None = None


class GroundingMetadata(BaseModel):
    """Citation metadata attached to a model turn.

    Attributes:
        sources: Web sources in the order the remote side reported them.
            May contain duplicate URIs.
        web_search_queries: Search queries the model issued.
    """

    sources: list[GroundingSource] = Field(default_factory=list)
    web_search_queries: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.sources and not self.web_search_queries

    @classmethod
    def from_genai(cls, raw: Any) -> "GroundingMetadata | None":
        """Convert google-genai grounding metadata into our model.

        Grounding chunks without a web URI are dropped. Returns None when
        nothing usable remains, so callers can treat the fragment as
        carrying no metadata.
        """
        if raw is None:
            return None
        if isinstance(raw, cls):
            return None if raw.is_empty else raw

        sources: list[GroundingSource] = []
        for chunk in getattr(raw, "grounding_chunks", None) or []:
            web = getattr(chunk, "web", None)
            uri = getattr(web, "uri", None) if web is not None else None
            if not uri:
                continue
            sources.append(GroundingSource(uri=uri, title=getattr(web, "title", None)))

        queries = [q for q in getattr(raw, "web_search_queries", None) or [] if q]

        metadata = cls(sources=sources, web_search_queries=queries)
        return None if metadata.is_empty else metadata


class Fragment(BaseModel):
    """One incremental piece of a streamed model reply.

    Attributes:
        text: Text produced since the previous fragment (never cumulative).
        metadata: Citation metadata carried by this fragment, if any.
    """

    text: str = ""
    metadata: GroundingMetadata | None = None


class Message(BaseModel):
    """One turn in the visible transcript."""

    id: str = Field(default_factory=new_message_id, frozen=True)
    role: Role = Field(frozen=True)
    content: str = ""
    timestamp: datetime = Field(default_factory=datetime.now, frozen=True)
    is_error: bool = False
    error_message: str | None = None
    grounding_metadata: GroundingMetadata | None = None

    def apply_fragment(
        self, text: str, metadata: GroundingMetadata | None = None
    ) -> None:
        """Append a text delta; replace metadata only when the new one is non-empty."""
        self.content += text
        if metadata is not None and not metadata.is_empty:
            self.grounding_metadata = metadata

    def mark_error(self, explanation: str) -> None:
        """Flag this turn as a failed completion, keeping any partial content."""
        if self.is_error:
            return
        self.is_error = True
        self.error_message = explanation


def dedupe_sources(metadata: GroundingMetadata | None) -> list[GroundingSource]:
    """Return citation sources with unique URIs, first occurrence wins."""
    if metadata is None:
        return []
    seen: set[str] = set()
    unique: list[GroundingSource] = []
    for source in metadata.sources:
        if source.uri in seen:
            continue
        seen.add(source.uri)
        unique.append(source)
    return unique


class Transcript:
    """Ordered, caller-owned list of messages for the current conversation."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def append(self, role: Role, content: str = "") -> Message:
        message = Message(role=role, content=content)
        self._messages.append(message)
        return message

    def get(self, message_id: str) -> Message:
        for message in self._messages:
            if message.id == message_id:
                return message
        raise KeyError(message_id)

    def patch(
        self,
        message_id: str,
        text: str,
        metadata: GroundingMetadata | None = None,
    ) -> Message:
        message = self.get(message_id)
        message.apply_fragment(text, metadata)
        return message

    def mark_error(self, message_id: str, explanation: str) -> Message:
        message = self.get(message_id)
        message.mark_error(explanation)
        return message

    def clear(self) -> None:
        self._messages.clear()
