"""Anthropic Messages API adapter.

- Roles: user / assistant only; the system prompt travels as ``body.system``
- Images: ``{"type": "image", "source": {"type": "base64", ...}}`` blocks
- SSE: ``content_block_delta`` carries ``thinking_delta`` (reasoning) or text
- Auth: ``x-api-key`` plus ``Authorization: Bearer`` for compatible proxies
"""

import json
from typing import Any, Optional, Union

from proma.conversation.models import MessageRole
from proma.providers.types import (
    ImageAttachmentData,
    ProviderRequest,
    ProviderType,
    StreamChunkEvent,
    StreamDoneEvent,
    StreamErrorEvent,
    StreamEvent,
    StreamReasoningEvent,
    StreamRequestInput,
    TitleRequestInput,
)
from proma.providers.url_utils import normalize_anthropic_base_url

ANTHROPIC_VERSION = "2023-06-01"

DEFAULT_MAX_TOKENS = 8192
# budget_tokens must stay below max_tokens and be at least 1024
THINKING_BUDGET_TOKENS = 16384
THINKING_MAX_TOKENS = THINKING_BUDGET_TOKENS + 16384
TITLE_MAX_TOKENS = 50


def _build_headers(api_key: str) -> dict[str, str]:
    return {
        "x-api-key": api_key,
        "Authorization": f"Bearer {api_key}",
        "anthropic-version": ANTHROPIC_VERSION,
        "content-type": "application/json",
    }


def _build_message_content(
    text: str, images: list[ImageAttachmentData]
) -> Union[str, list[dict[str, Any]]]:
    """Plain text, or image blocks followed by a text block when images exist."""
    if not images:
        return text

    content: list[dict[str, Any]] = [
        {
            "type": "image",
            "source": {"type": "base64", "media_type": img.media_type, "data": img.data},
        }
        for img in images
    ]
    if text:
        content.append({"type": "text", "text": text})
    return content


def _to_anthropic_messages(input: StreamRequestInput) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []

    for msg in input.history:
        if msg.role == MessageRole.SYSTEM:
            continue
        role = "assistant" if msg.role == MessageRole.ASSISTANT else "user"

        if msg.role == MessageRole.USER and msg.attachments:
            images = input.read_image_attachments(msg.attachments)
            messages.append({"role": role, "content": _build_message_content(msg.content, images)})
        else:
            messages.append({"role": role, "content": msg.content})

    current_images = input.read_image_attachments(input.attachments)
    messages.append(
        {"role": "user", "content": _build_message_content(input.user_message, current_images)}
    )
    return messages


class AnthropicAdapter:
    """Adapter for the Anthropic Messages API."""

    provider_type = ProviderType.ANTHROPIC

    def build_stream_request(self, input: StreamRequestInput) -> ProviderRequest:
        """Build a streaming ``/messages`` request.

        With thinking enabled, ``max_tokens`` grows so that the thinking budget
        fits beneath it; temperature is never sent because the API rejects it
        alongside extended thinking.
        """
        url = normalize_anthropic_base_url(input.base_url)

        body: dict[str, Any] = {
            "model": input.model_id,
            "max_tokens": THINKING_MAX_TOKENS if input.thinking_enabled else DEFAULT_MAX_TOKENS,
            "messages": _to_anthropic_messages(input),
            "stream": True,
        }

        if input.thinking_enabled:
            body["thinking"] = {"type": "enabled", "budget_tokens": THINKING_BUDGET_TOKENS}

        if input.system_message:
            body["system"] = input.system_message

        return ProviderRequest(
            url=f"{url}/messages",
            headers=_build_headers(input.api_key),
            body=json.dumps(body),
        )

    def parse_sse_line(self, json_line: str) -> list[StreamEvent]:
        """Parse one Anthropic SSE payload."""
        try:
            event = json.loads(json_line)
        except (json.JSONDecodeError, TypeError):
            return []
        if not isinstance(event, dict):
            return []

        event_type = event.get("type")
        if event_type == "content_block_delta":
            delta = event.get("delta") or {}
            if not isinstance(delta, dict):
                return []
            if delta.get("type") == "thinking_delta" and delta.get("thinking"):
                return [StreamReasoningEvent(delta=delta["thinking"])]
            if delta.get("text"):
                return [StreamChunkEvent(delta=delta["text"])]
            return []

        if event_type == "message_stop":
            return [StreamDoneEvent()]

        if event_type == "error":
            error = event.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else None
            return [StreamErrorEvent(error=message or "Anthropic stream error")]

        return []

    def build_title_request(self, input: TitleRequestInput) -> ProviderRequest:
        """Build a non-streaming, low-budget ``/messages`` request."""
        url = normalize_anthropic_base_url(input.base_url)
        body = {
            "model": input.model_id,
            "max_tokens": TITLE_MAX_TOKENS,
            "messages": [{"role": "user", "content": input.prompt}],
        }
        return ProviderRequest(
            url=f"{url}/messages",
            headers=_build_headers(input.api_key),
            body=json.dumps(body),
        )

    def parse_title_response(self, response_body: Any) -> Optional[str]:
        """Return the text of the first content block."""
        try:
            for block in response_body.get("content") or []:
                if block.get("type") == "text" and block.get("text"):
                    return block["text"]
        except AttributeError:
            return None
        return None
