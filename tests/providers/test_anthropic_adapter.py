"""Tests for the Anthropic Messages API adapter."""

import json

import pytest

from proma.conversation.models import FileAttachment, Message, MessageRole
from proma.providers.anthropic import (
    ANTHROPIC_VERSION,
    DEFAULT_MAX_TOKENS,
    THINKING_BUDGET_TOKENS,
    AnthropicAdapter,
)
from proma.providers.types import (
    ImageAttachmentData,
    StreamChunkEvent,
    StreamDoneEvent,
    StreamErrorEvent,
    StreamReasoningEvent,
    StreamRequestInput,
    TitleRequestInput,
)


@pytest.fixture
def adapter() -> AnthropicAdapter:
    return AnthropicAdapter()


def _input(**overrides) -> StreamRequestInput:
    data = {
        "base_url": "https://api.anthropic.com",
        "api_key": "sk-ant-test",
        "model_id": "claude-sonnet-4",
        "history": [
            Message(role=MessageRole.USER, content="hi"),
            Message(role=MessageRole.ASSISTANT, content="hello"),
        ],
        "user_message": "what's 2+2?",
    }
    data.update(overrides)
    return StreamRequestInput(**data)


class TestBuildStreamRequest:
    """Tests for AnthropicAdapter.build_stream_request."""

    def test_request_shape(self, adapter: AnthropicAdapter) -> None:
        """Should target /v1/messages with auth headers and a streaming body."""
        request = adapter.build_stream_request(_input(system_message="Be brief."))

        assert request.url == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-test"
        assert request.headers["Authorization"] == "Bearer sk-ant-test"
        assert request.headers["anthropic-version"] == ANTHROPIC_VERSION

        body = json.loads(request.body)
        assert body == {
            "model": "claude-sonnet-4",
            "max_tokens": DEFAULT_MAX_TOKENS,
            "messages": [
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello"},
                {"role": "user", "content": "what's 2+2?"},
            ],
            "stream": True,
            "system": "Be brief.",
        }

    def test_existing_version_suffix_is_kept(self, adapter: AnthropicAdapter) -> None:
        request = adapter.build_stream_request(_input(base_url="https://proxy.example.com/v1/"))
        assert request.url == "https://proxy.example.com/v1/messages"

    def test_history_system_messages_are_dropped(self, adapter: AnthropicAdapter) -> None:
        history = [Message(role=MessageRole.SYSTEM, content="divider"), Message(role="user", content="a")]
        body = json.loads(adapter.build_stream_request(_input(history=history)).body)

        assert [m["role"] for m in body["messages"]] == ["user", "user"]

    def test_thinking_sets_budget_below_max_tokens(self, adapter: AnthropicAdapter) -> None:
        """Thinking adds a budget that stays below max_tokens and no temperature."""
        body = json.loads(adapter.build_stream_request(_input(thinking_enabled=True)).body)

        assert body["thinking"] == {"type": "enabled", "budget_tokens": THINKING_BUDGET_TOKENS}
        assert body["max_tokens"] > THINKING_BUDGET_TOKENS
        assert "temperature" not in body

    def test_images_inlined_before_text(self, adapter: AnthropicAdapter) -> None:
        """Image blocks precede the text block for current and historical turns."""
        attachment = FileAttachment(filename="a.png", media_type="image/png", local_path="a.png")
        history = [Message(role=MessageRole.USER, content="look", attachments=[attachment])]

        def reader(attachments):
            return [ImageAttachmentData(media_type="image/png", data="QUJD")] if attachments else []

        body = json.loads(
            adapter.build_stream_request(
                _input(
                    history=history,
                    attachments=[attachment],
                    read_image_attachments=reader,
                )
            ).body
        )

        image_block = {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/png", "data": "QUJD"},
        }
        assert body["messages"][0]["content"] == [image_block, {"type": "text", "text": "look"}]
        assert body["messages"][1]["content"] == [
            image_block,
            {"type": "text", "text": "what's 2+2?"},
        ]

    def test_api_key_hidden_from_repr(self) -> None:
        assert "sk-ant-test" not in repr(_input())


class TestParseSSELine:
    """Tests for AnthropicAdapter.parse_sse_line."""

    def test_text_delta(self, adapter: AnthropicAdapter) -> None:
        line = json.dumps(
            {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "4"}}
        )
        assert adapter.parse_sse_line(line) == [StreamChunkEvent(delta="4")]

    def test_thinking_delta(self, adapter: AnthropicAdapter) -> None:
        line = json.dumps(
            {
                "type": "content_block_delta",
                "index": 0,
                "delta": {"type": "thinking_delta", "thinking": "2 plus 2"},
            }
        )
        assert adapter.parse_sse_line(line) == [StreamReasoningEvent(delta="2 plus 2")]

    def test_non_delta_frame_yields_nothing(self, adapter: AnthropicAdapter) -> None:
        line = json.dumps({"type": "message_start", "message": {"id": "msg_1"}})
        assert adapter.parse_sse_line(line) == []

    def test_stream_sequence(self, adapter: AnthropicAdapter) -> None:
        lines = [
            json.dumps({"type": "message_start", "message": {}}),
            json.dumps({"type": "content_block_start", "index": 0}),
            json.dumps({"type": "content_block_delta", "delta": {"type": "thinking_delta", "thinking": "hm"}}),
            json.dumps({"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Hel"}}),
            json.dumps({"type": "content_block_delta", "delta": {"type": "text_delta", "text": "lo"}}),
            json.dumps({"type": "message_stop"}),
        ]
        events = [event for line in lines for event in adapter.parse_sse_line(line)]

        assert events == [
            StreamReasoningEvent(delta="hm"),
            StreamChunkEvent(delta="Hel"),
            StreamChunkEvent(delta="lo"),
            StreamDoneEvent(),
        ]

    def test_error_frame(self, adapter: AnthropicAdapter) -> None:
        line = json.dumps({"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}})
        assert adapter.parse_sse_line(line) == [StreamErrorEvent(error="Overloaded")]

    @pytest.mark.parametrize("line", ["", "not json", "[1, 2]", "null", '{"type": "content_block_delta", "delta": "x"}'])
    def test_malformed_lines_never_raise(self, adapter: AnthropicAdapter, line: str) -> None:
        assert adapter.parse_sse_line(line) == []


class TestTitle:
    """Tests for the title request and response contract."""

    def test_title_request_is_not_streaming(self, adapter: AnthropicAdapter) -> None:
        request = adapter.build_title_request(
            TitleRequestInput(
                base_url="https://api.anthropic.com",
                api_key="k",
                model_id="claude-haiku",
                prompt="Title: hi",
            )
        )
        body = json.loads(request.body)

        assert request.url == "https://api.anthropic.com/v1/messages"
        assert body["max_tokens"] == 50
        assert "stream" not in body
        assert body["messages"] == [{"role": "user", "content": "Title: hi"}]

    def test_parse_title_response(self, adapter: AnthropicAdapter) -> None:
        body = {"content": [{"type": "text", "text": "Trip Plan"}]}
        assert adapter.parse_title_response(body) == "Trip Plan"

    @pytest.mark.parametrize("body", [{}, {"content": []}, None, "oops"])
    def test_parse_title_response_failure(self, adapter: AnthropicAdapter, body) -> None:
        assert adapter.parse_title_response(body) is None
