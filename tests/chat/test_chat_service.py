"""Tests for the chat turn orchestrator."""

import asyncio
import json
from typing import Callable, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from proma.channels.encryption import CredentialEncryption, generate_encryption_key
from proma.channels.repository import SQLiteChannelRepository
from proma.chat.models import ChatSendInput, GenerateTitleInput, TurnState
from proma.chat.service import ChatService, clean_title
from proma.conversation.memory_repository import InMemoryConversationRepository
from proma.conversation.models import Message, MessageRole
from proma.observability.metrics import MetricsCollector


class RecordingPublisher:
    """Publisher that records events and can react to them."""

    def __init__(self) -> None:
        self.events: list = []
        self.on_publish: Optional[Callable] = None

    def publish(self, topic: str, event) -> None:
        assert topic == event.conversation_id
        self.events.append(event)
        if self.on_publish is not None:
            self.on_publish(event)

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.events]


def _delta(content=None, reasoning=None, finish_reason=None) -> str:
    delta = {}
    if content is not None:
        delta["content"] = content
    if reasoning is not None:
        delta["reasoning_content"] = reasoning
    return json.dumps({"choices": [{"delta": delta, "finish_reason": finish_reason}]})


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def metrics() -> MagicMock:
    return MagicMock(spec=MetricsCollector)


@pytest.fixture
async def channel(channel_factory):
    return await channel_factory("openai", name="OpenAI")


@pytest.fixture
async def conversation(memory_conversations: InMemoryConversationRepository):
    return await memory_conversations.create_conversation(title="Test")


@pytest.fixture
async def build_service(
    memory_conversations: InMemoryConversationRepository,
    channels: SQLiteChannelRepository,
    publisher: RecordingPublisher,
    metrics: MagicMock,
    mock_client: Callable,
):
    """Build a ChatService whose provider calls are answered by ``handler``."""
    clients: list[httpx.AsyncClient] = []

    def _build(handler: Callable[[httpx.Request], httpx.Response], **overrides) -> ChatService:
        client = mock_client(handler)
        clients.append(client)
        kwargs = dict(
            conversations=memory_conversations,
            channels=channels,
            publisher=publisher,
            http_client=client,
            metrics=metrics,
        )
        kwargs.update(overrides)
        return ChatService(**kwargs)

    yield _build

    for client in clients:
        await client.aclose()


def _send_input(conversation, channel, **overrides) -> ChatSendInput:
    data = {
        "conversation_id": conversation.id,
        "user_message": "what's 2+2?",
        "channel_id": channel.id,
        "model_id": "gpt-4o",
    }
    data.update(overrides)
    return ChatSendInput(**data)


class TestSendMessage:
    """Tests for ChatService.send_message."""

    async def test_successful_turn(
        self, build_service, publisher, metrics, memory_conversations, conversation, channel, sse_body
    ) -> None:
        """Deltas are relayed, then both messages are stored and complete carries the id."""
        body = sse_body(
            _delta(reasoning="adding"),
            _delta(content="4"),
            _delta(content="."),
            _delta(finish_reason="stop"),
            "[DONE]",
        )
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=body)

        service = build_service(handler)
        await service.send_message(_send_input(conversation, channel))

        assert publisher.types == ["reasoning", "chunk", "chunk", "complete"]
        assert [e.delta for e in publisher.events[1:3]] == ["4", "."]

        messages = await memory_conversations.get_messages(conversation.id)
        assert [(m.role, m.content) for m in messages] == [
            (MessageRole.USER, "what's 2+2?"),
            (MessageRole.ASSISTANT, "4."),
        ]
        assistant = messages[1]
        assert assistant.reasoning == "adding"
        assert assistant.model == "gpt-4o"
        assert assistant.stopped is None

        complete = publisher.events[-1]
        assert complete.message_id == assistant.id
        assert complete.model == "gpt-4o"

        assert requests[0].url == "https://api.example.com/chat/completions"
        assert requests[0].headers["Authorization"] == "Bearer sk-test-key"
        assert service.turn_state(conversation.id) == TurnState.IDLE
        metrics.turn_started.assert_called_once()
        metrics.turn_finished.assert_called_once()
        metrics.record_chat_turn.assert_called_once()
        assert metrics.record_chat_turn.call_args.args[:2] == ("openai", "completed")

    async def test_history_is_windowed_and_excludes_current_message(
        self, build_service, memory_conversations, conversation, channel, sse_body
    ) -> None:
        for role, content in [("user", "u1"), ("assistant", "a1"), ("user", "u2"), ("assistant", "a2")]:
            await memory_conversations.append_message(
                conversation.id, Message(role=role, content=content)
            )
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, content=sse_body(_delta(content="ok", finish_reason="stop")))

        service = build_service(handler)
        await service.send_message(
            _send_input(conversation, channel, context_length=1, system_message="Be brief.")
        )

        assert bodies[0]["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "u2"},
            {"role": "assistant", "content": "a2"},
            {"role": "user", "content": "what's 2+2?"},
        ]

    async def test_stop_before_any_output(
        self, build_service, publisher, metrics, memory_conversations, conversation, channel, sse_body
    ) -> None:
        """Stopping with no text gives complete without id and stores no reply."""
        body = sse_body(_delta(reasoning="hmm"), _delta(content="never"))
        service = build_service(lambda request: httpx.Response(200, content=body))
        publisher.on_publish = lambda event: service.stop_generation(conversation.id)

        await service.send_message(_send_input(conversation, channel))

        assert publisher.types == ["reasoning", "complete"]
        assert publisher.events[-1].message_id is None

        messages = await memory_conversations.get_messages(conversation.id)
        assert [m.role for m in messages] == [MessageRole.USER]
        assert metrics.record_chat_turn.call_args.args[:2] == ("openai", "aborted")

    async def test_stop_after_output_stores_partial(
        self, build_service, publisher, memory_conversations, conversation, channel, sse_body
    ) -> None:
        body = sse_body(_delta(content="Hel"), _delta(content="lo"), _delta(content=" world"))
        service = build_service(lambda request: httpx.Response(200, content=body))

        def stop_after_first_chunk(event) -> None:
            if event.type == "chunk":
                service.stop_generation(conversation.id)

        publisher.on_publish = stop_after_first_chunk

        await service.send_message(_send_input(conversation, channel))

        messages = await memory_conversations.get_messages(conversation.id)
        assert len(messages) == 2
        partial = messages[1]
        assert partial.content == "Hel"
        assert partial.stopped is True
        assert partial.model == "gpt-4o"
        assert publisher.types == ["chunk", "complete"]
        assert publisher.events[-1].message_id == partial.id

    async def test_provider_error_keeps_user_message(
        self, build_service, publisher, memory_conversations, conversation, channel
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": {"message": "rate limited"}})

        service = build_service(handler)
        await service.send_message(_send_input(conversation, channel))

        assert publisher.types == ["error"]
        assert "429" in publisher.events[0].error

        messages = await memory_conversations.get_messages(conversation.id)
        assert [m.content for m in messages] == ["what's 2+2?"]
        assert not service.registry.is_active(conversation.id)

    async def test_stream_error_event_after_partial_output(
        self, build_service, publisher, memory_conversations, conversation, channel, sse_body
    ) -> None:
        body = sse_body(_delta(content="par"), json.dumps({"error": {"message": "overloaded"}}))
        service = build_service(lambda request: httpx.Response(200, content=body))

        await service.send_message(_send_input(conversation, channel))

        assert publisher.types == ["chunk", "error"]
        assert publisher.events[-1].error == "overloaded"
        assert len(await memory_conversations.get_messages(conversation.id)) == 1

    async def test_unknown_channel_writes_nothing(
        self, build_service, publisher, metrics, memory_conversations, conversation
    ) -> None:
        handler_calls = []
        service = build_service(lambda request: handler_calls.append(request))

        await service.send_message(
            ChatSendInput(
                conversation_id=conversation.id,
                user_message="hi",
                channel_id="missing",
                model_id="gpt-4o",
            )
        )

        assert publisher.types == ["error"]
        assert publisher.events[0].error == "Channel not found: missing"
        assert await memory_conversations.get_messages(conversation.id) == []
        assert handler_calls == []
        assert metrics.record_chat_turn.call_args.args[:2] == ("unknown", "errored")

    async def test_undecryptable_key_writes_nothing(
        self, build_service, publisher, memory_conversations, conversation, channel, db
    ) -> None:
        other_key = SQLiteChannelRepository(db, CredentialEncryption(generate_encryption_key()))
        service = build_service(lambda request: httpx.Response(500), channels=other_key)

        await service.send_message(_send_input(conversation, channel))

        assert publisher.types == ["error"]
        assert "sk-test-key" not in publisher.events[0].error
        assert await memory_conversations.get_messages(conversation.id) == []

    async def test_unknown_conversation_emits_error(
        self, build_service, publisher, channel
    ) -> None:
        service = build_service(lambda request: httpx.Response(500))

        await service.send_message(
            ChatSendInput(
                conversation_id="missing", user_message="hi", channel_id=channel.id, model_id="m"
            )
        )

        assert publisher.types == ["error"]
        assert publisher.events[0].error == "Conversation not found: missing"

    async def test_metadata_failure_does_not_fail_turn(
        self, build_service, publisher, memory_conversations, conversation, channel, sse_body
    ) -> None:
        body = sse_body(_delta(content="ok", finish_reason="stop"))
        service = build_service(lambda request: httpx.Response(200, content=body))

        with patch.object(
            memory_conversations, "update_meta", AsyncMock(side_effect=RuntimeError("disk full"))
        ):
            await service.send_message(_send_input(conversation, channel))

        assert publisher.types == ["chunk", "complete"]
        assert publisher.events[-1].message_id is not None

    async def test_new_turn_cancels_previous_token(
        self, build_service, conversation, channel, sse_body
    ) -> None:
        body = sse_body(_delta(content="ok", finish_reason="stop"))
        service = build_service(lambda request: httpx.Response(200, content=body))
        stale = service.registry.register(conversation.id)

        await service.send_message(_send_input(conversation, channel))

        assert stale.cancelled
        assert not service.registry.is_active(conversation.id)

    async def test_stop_ends_turn_while_provider_is_silent(
        self,
        build_service,
        publisher,
        memory_conversations,
        conversation,
        channel,
        sse_body,
        stalling_stream,
    ) -> None:
        """Stopping a stalled stream stores the partial reply without waiting for more data."""
        stream = stalling_stream(sse_body(_delta(content="Hel")))
        service = build_service(lambda request: httpx.Response(200, stream=stream))
        first_chunk = asyncio.Event()
        publisher.on_publish = lambda event: first_chunk.set()

        task = asyncio.create_task(service.send_message(_send_input(conversation, channel)))
        await asyncio.wait_for(first_chunk.wait(), timeout=2.0)
        service.stop_generation(conversation.id)
        await asyncio.wait_for(task, timeout=2.0)

        assert publisher.types == ["chunk", "complete"]
        messages = await memory_conversations.get_messages(conversation.id)
        assert messages[-1].content == "Hel"
        assert messages[-1].stopped is True

    async def test_second_send_waits_for_superseded_turn(
        self,
        build_service,
        publisher,
        memory_conversations,
        conversation,
        channel,
        sse_body,
        stalling_stream,
    ) -> None:
        """The interrupted reply is stored before the next question is appended."""
        responses = iter(
            [
                httpx.Response(200, stream=stalling_stream(sse_body(_delta(content="partialA")))),
                httpx.Response(
                    200, content=sse_body(_delta(content="replyB", finish_reason="stop"))
                ),
            ]
        )
        service = build_service(lambda request: next(responses))
        first_chunk = asyncio.Event()
        states_during_b: list[TurnState] = []

        def on_publish(event) -> None:
            if event.type == "chunk" and event.delta == "partialA":
                first_chunk.set()
            elif event.type == "chunk":
                states_during_b.append(service.turn_state(conversation.id))

        publisher.on_publish = on_publish

        turn_a = asyncio.create_task(
            service.send_message(_send_input(conversation, channel, user_message="A"))
        )
        await asyncio.wait_for(first_chunk.wait(), timeout=2.0)
        await asyncio.wait_for(
            service.send_message(_send_input(conversation, channel, user_message="B")),
            timeout=2.0,
        )
        await asyncio.wait_for(turn_a, timeout=2.0)

        messages = await memory_conversations.get_messages(conversation.id)
        assert [(m.role, m.content) for m in messages] == [
            (MessageRole.USER, "A"),
            (MessageRole.ASSISTANT, "partialA"),
            (MessageRole.USER, "B"),
            (MessageRole.ASSISTANT, "replyB"),
        ]
        assert messages[1].stopped is True
        assert not messages[3].stopped
        assert publisher.types == ["chunk", "complete", "chunk", "complete"]
        assert states_during_b == [TurnState.STREAMING]
        assert service.turn_state(conversation.id) == TurnState.IDLE
        assert not service.registry.is_active(conversation.id)

    async def test_stop_while_queued_skips_provider_call(
        self,
        build_service,
        publisher,
        memory_conversations,
        conversation,
        channel,
        sse_body,
        stalling_stream,
    ) -> None:
        """A turn stopped before its predecessor finished never reaches the provider."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, stream=stalling_stream(sse_body(_delta(content="partialA"))))

        service = build_service(handler)
        first_chunk = asyncio.Event()
        publisher.on_publish = lambda event: first_chunk.set() if event.type == "chunk" else None

        turn_a = asyncio.create_task(
            service.send_message(_send_input(conversation, channel, user_message="A"))
        )
        await asyncio.wait_for(first_chunk.wait(), timeout=2.0)
        turn_b = asyncio.create_task(
            service.send_message(_send_input(conversation, channel, user_message="B"))
        )
        await asyncio.sleep(0)
        service.stop_generation(conversation.id)
        await asyncio.wait_for(asyncio.gather(turn_a, turn_b), timeout=2.0)

        assert len(requests) == 1
        assert publisher.types == ["chunk", "complete", "complete"]
        assert publisher.events[-1].message_id is None
        messages = await memory_conversations.get_messages(conversation.id)
        assert [m.content for m in messages] == ["A", "partialA", "B"]

    def test_stop_without_turn_is_noop(self, build_service) -> None:
        service = build_service(lambda request: httpx.Response(500))
        service.stop_generation("nothing-running")


class TestGenerateTitle:
    """Tests for ChatService.generate_title."""

    async def test_strips_quotes(self, build_service, metrics, channel) -> None:
        prompts = []

        def handler(request: httpx.Request) -> httpx.Response:
            prompts.append(json.loads(request.content)["messages"][0]["content"])
            return httpx.Response(
                200, json={"choices": [{"message": {"content": '"My Trip Plan"'}}]}
            )

        service = build_service(handler)
        title = await service.generate_title(
            GenerateTitleInput(user_message="Plan a trip to Kyoto", channel_id=channel.id, model_id="m")
        )

        assert title == "My Trip Plan"
        assert prompts[0].endswith("Plan a trip to Kyoto")
        metrics.record_title_generation.assert_called_once_with("success")

    async def test_provider_failure_returns_none(self, build_service, channel) -> None:
        service = build_service(lambda request: httpx.Response(503, text="unavailable"))

        title = await service.generate_title(
            GenerateTitleInput(user_message="hi", channel_id=channel.id, model_id="m")
        )

        assert title is None

    async def test_unknown_channel_returns_none(self, build_service) -> None:
        service = build_service(lambda request: httpx.Response(500))

        title = await service.generate_title(
            GenerateTitleInput(user_message="hi", channel_id="missing", model_id="m")
        )

        assert title is None


class TestCleanTitle:
    """Tests for clean_title."""

    def test_truncates(self) -> None:
        assert clean_title("A very long conversation title indeed") == "A very long conversa"

    def test_custom_length(self) -> None:
        assert clean_title("Short title", max_length=5) == "Short"

    def test_typographic_quotes(self) -> None:
        assert clean_title("“Kyoto Trip”\n") == "Kyoto Trip"

    def test_empty(self) -> None:
        assert clean_title(None) is None
        assert clean_title("") is None
