"""Unit tests for StreamReducer against a fake remote chat."""

import pytest
import pytest_check as check

from scholarmate.agent.config import ChatConfig
from scholarmate.agent.errors import (
    SessionBusy,
    SessionUnavailable,
    StreamError,
)
from scholarmate.agent.session_manager import SessionManager
from scholarmate.agent.stream_reducer import StreamReducer, to_fragment
from scholarmate.models.chat import GroundingMetadata, GroundingSource, Message, Role
from tests.fakes import FakeRemote, chunk


def make_reducer(chat_config: ChatConfig, remote: FakeRemote) -> StreamReducer:
    return StreamReducer(SessionManager(config=chat_config, chat_factory=remote))


class Recorder:
    """Collects callback invocations."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, GroundingMetadata | None]] = []

    def __call__(self, text: str, metadata: GroundingMetadata | None) -> None:
        self.calls.append((text, metadata))


class TestToFragment:
    """Tests for chunk-to-fragment extraction."""

    def test_missing_text_is_empty_string(self) -> None:
        fragment = to_fragment(chunk(None))

        check.equal(fragment.text, "")
        check.is_none(fragment.metadata)

    def test_chunk_without_candidates(self) -> None:
        class Bare:
            text = "hi"
            candidates = None

        assert to_fragment(Bare()).metadata is None

    def test_metadata_extracted_from_first_candidate(self) -> None:
        fragment = to_fragment(chunk("x", sources=[("https://x.test", "Physics")]))

        assert fragment.metadata == GroundingMetadata(
            sources=[GroundingSource(uri="https://x.test", title="Physics")]
        )


class TestSendAndStream:
    """Tests for the callback-driven exchange."""

    async def test_fragments_delivered_in_order(self, chat_config: ChatConfig) -> None:
        """Deltas arrive in order, never dropped or duplicated."""
        deltas = ["The", " quick", " brown", "", " fox"]
        remote = FakeRemote(scripts=[[chunk(d) for d in deltas]])
        recorder = Recorder()

        await make_reducer(chat_config, remote).send_and_stream("go", recorder)

        check.equal([text for text, _ in recorder.calls], deltas)
        check.equal("".join(text for text, _ in recorder.calls), "The quick brown fox")

    async def test_end_to_end_explain_gravity(self, chat_config: ChatConfig) -> None:
        """A model message folded from fragments carries text and citations."""
        remote = FakeRemote(
            scripts=[[
                chunk("Gravity"),
                chunk(" pulls"),
                chunk(" masses.", sources=[("https://x.test", "Physics")]),
            ]]
        )
        message = Message(role=Role.MODEL)

        await make_reducer(chat_config, remote).send_and_stream(
            "Explain gravity", message.apply_fragment
        )

        check.equal(message.role, Role.MODEL)
        check.equal(message.content, "Gravity pulls masses.")
        check.equal(
            message.grounding_metadata.sources,
            [GroundingSource(uri="https://x.test", title="Physics")],
        )
        check.is_false(message.is_error)
        check.equal(remote.sent, [(0, "Explain gravity")])

    async def test_metadata_last_write_wins(self, chat_config: ChatConfig) -> None:
        remote = FakeRemote(
            scripts=[[
                chunk("a", sources=[("https://first.test", "First")]),
                chunk("b"),
                chunk("c", sources=[("https://second.test", "Second")]),
                chunk("d"),
            ]]
        )
        message = Message(role=Role.MODEL)

        await make_reducer(chat_config, remote).send_and_stream("q", message.apply_fragment)

        assert message.grounding_metadata.sources == [
            GroundingSource(uri="https://second.test", title="Second")
        ]

    async def test_fragment_without_metadata_passes_none(self, chat_config: ChatConfig) -> None:
        remote = FakeRemote(scripts=[[chunk("a", sources=[("https://x.test", None)]), chunk("b")]])
        recorder = Recorder()

        await make_reducer(chat_config, remote).send_and_stream("q", recorder)

        check.is_not_none(recorder.calls[0][1])
        check.is_none(recorder.calls[1][1])

    async def test_empty_stream_succeeds_without_callbacks(self, chat_config: ChatConfig) -> None:
        recorder = Recorder()

        await make_reducer(chat_config, FakeRemote(scripts=[[]])).send_and_stream("q", recorder)

        assert recorder.calls == []

    async def test_async_callback_is_awaited_before_next_pull(
        self, chat_config: ChatConfig
    ) -> None:
        """The next chunk is not requested until the callback has finished."""
        remote = FakeRemote(scripts=[[chunk("a"), chunk("b"), chunk("c")]])
        pulled_at_callback: list[int] = []

        async def on_fragment(text: str, metadata: GroundingMetadata | None) -> None:
            pulled_at_callback.append(remote.pulled)

        await make_reducer(chat_config, remote).send_and_stream("q", on_fragment)

        assert pulled_at_callback == [1, 2, 3]

    async def test_callback_error_propagates_unwrapped(self, chat_config: ChatConfig) -> None:
        """Errors raised by the caller's callback are not disguised as stream errors."""
        reducer = make_reducer(chat_config, FakeRemote(scripts=[[chunk("a"), chunk("b")]]))

        def on_fragment(text: str, metadata: GroundingMetadata | None) -> None:
            raise RuntimeError("render failed")

        with pytest.raises(RuntimeError, match="render failed"):
            await reducer.send_and_stream("q", on_fragment)

        assert reducer.is_busy is False


class TestFailures:
    """Tests for SessionUnavailable and StreamError."""

    async def test_session_unavailable_before_any_fragment(self, chat_config: ChatConfig) -> None:
        """Creation failure fails fast with zero callbacks and no send."""
        remote = FakeRemote(create_error=ConnectionError("unreachable"))
        recorder = Recorder()

        with pytest.raises(SessionUnavailable):
            await make_reducer(chat_config, remote).send_and_stream("q", recorder)

        check.equal(recorder.calls, [])
        check.equal(remote.sent, [])

    async def test_partial_failure_keeps_prior_fragments(self, chat_config: ChatConfig) -> None:
        """Fragments before a mid-stream failure are delivered exactly once."""
        remote = FakeRemote(
            scripts=[[chunk("Paris"), chunk(" is"), ConnectionResetError("dropped")]]
        )
        recorder = Recorder()
        message = Message(role=Role.MODEL)

        def on_fragment(text: str, metadata: GroundingMetadata | None) -> None:
            recorder(text, metadata)
            message.apply_fragment(text, metadata)

        with pytest.raises(StreamError) as exc_info:
            await make_reducer(chat_config, remote).send_and_stream("q", on_fragment)

        check.equal([text for text, _ in recorder.calls], ["Paris", " is"])
        check.equal(message.content, "Paris is")
        check.is_instance(exc_info.value.__cause__, ConnectionResetError)

    async def test_send_failure_is_stream_error(self, chat_config: ChatConfig) -> None:
        remote = FakeRemote(send_error=PermissionError("API key not valid"))
        recorder = Recorder()

        with pytest.raises(StreamError) as exc_info:
            await make_reducer(chat_config, remote).send_and_stream("q", recorder)

        check.equal(recorder.calls, [])
        check.is_instance(exc_info.value.__cause__, PermissionError)

    async def test_no_retry_after_failure(self, chat_config: ChatConfig) -> None:
        """One call issues at most one send."""
        remote = FakeRemote(send_error=TimeoutError())

        with pytest.raises(StreamError):
            await make_reducer(chat_config, remote).send_and_stream("q", Recorder())

        assert len(remote.sent) == 1

    async def test_reducer_usable_after_failure(self, chat_config: ChatConfig) -> None:
        remote = FakeRemote(scripts=[[ConnectionError("x")], [chunk("ok")]])
        reducer = make_reducer(chat_config, remote)
        recorder = Recorder()

        with pytest.raises(StreamError):
            await reducer.send_and_stream("first", Recorder())
        await reducer.send_and_stream("second", recorder)

        assert recorder.calls == [("ok", None)]


class TestSessionReplacement:
    """Tests that a reset leaves no trace of the previous conversation."""

    async def test_send_after_reset_uses_new_session(self, chat_config: ChatConfig) -> None:
        remote = FakeRemote()
        manager = SessionManager(config=chat_config, chat_factory=remote)
        reducer = StreamReducer(manager)

        await reducer.send_and_stream("My name is Ada", Recorder())
        manager.initialize()
        recorder = Recorder()
        await reducer.send_and_stream("What did I just say?", recorder)

        reply = "".join(text for text, _ in recorder.calls)
        check.equal(remote.sent, [(0, "My name is Ada"), (1, "What did I just say?")])
        check.equal(remote.chats[1].history, ["What did I just say?"])
        check.is_not_in("Ada", reply)


class TestBusy:
    """Tests for overlapping exchanges."""

    async def test_second_exchange_rejected_while_streaming(
        self, chat_config: ChatConfig
    ) -> None:
        remote = FakeRemote(scripts=[[chunk("a"), chunk("b")]])
        reducer = make_reducer(chat_config, remote)

        first = reducer.stream("first")
        await anext(first)
        check.is_true(reducer.is_busy)

        with pytest.raises(SessionBusy):
            await reducer.send_and_stream("second", Recorder())

        await first.aclose()
        check.is_false(reducer.is_busy)
        check.equal(remote.sent, [(0, "first")])

    async def test_not_busy_after_completion(self, reducer: StreamReducer) -> None:
        await reducer.send_and_stream("hello", Recorder())

        assert reducer.is_busy is False
