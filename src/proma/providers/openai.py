"""OpenAI Chat Completions adapter (also used by OpenAI-compatible backends).

- Roles: system / user / assistant; the system prompt leads the message list
- Images: ``image_url`` parts carrying a base64 ``data:`` URI
- SSE: ``choices[0].delta`` with ``content`` and, for reasoning models served
  by compatible backends, ``reasoning_content`` or ``reasoning``
- Auth: ``Authorization: Bearer``
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
from proma.providers.url_utils import normalize_base_url

REASONING_EFFORT = "high"
TITLE_MAX_TOKENS = 50


def _build_headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def _build_message_content(
    text: str, images: list[ImageAttachmentData]
) -> Union[str, list[dict[str, Any]]]:
    """Plain text, or a text part followed by image parts when images exist."""
    if not images:
        return text

    content: list[dict[str, Any]] = []
    if text:
        content.append({"type": "text", "text": text})
    content.extend(
        {
            "type": "image_url",
            "image_url": {"url": f"data:{img.media_type};base64,{img.data}"},
        }
        for img in images
    )
    return content


def _to_openai_messages(input: StreamRequestInput) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []

    if input.system_message:
        messages.append({"role": "system", "content": input.system_message})

    for msg in input.history:
        role = MessageRole(msg.role).value
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


class OpenAIAdapter:
    """Adapter for OpenAI-style ``/chat/completions`` backends.

    Attributes:
        provider_type: Tag this instance is registered under
    """

    def __init__(self, provider_type: ProviderType = ProviderType.OPENAI) -> None:
        self.provider_type = provider_type

    def build_stream_request(self, input: StreamRequestInput) -> ProviderRequest:
        """Build a streaming ``/chat/completions`` request.

        Thinking maps onto ``reasoning_effort``; no token budget is sent since
        the effort level replaces it on this protocol.
        """
        url = normalize_base_url(input.base_url)

        body: dict[str, Any] = {
            "model": input.model_id,
            "messages": _to_openai_messages(input),
            "stream": True,
        }
        if input.thinking_enabled:
            body["reasoning_effort"] = REASONING_EFFORT

        return ProviderRequest(
            url=f"{url}/chat/completions",
            headers=_build_headers(input.api_key),
            body=json.dumps(body),
        )

    def parse_sse_line(self, json_line: str) -> list[StreamEvent]:
        """Parse one chat-completions SSE payload.

        A frame may carry both a reasoning and a content delta; reasoning is
        emitted first.
        """
        try:
            data = json.loads(json_line)
        except (json.JSONDecodeError, TypeError):
            return []
        if not isinstance(data, dict):
            return []

        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            return [StreamErrorEvent(error=message or "OpenAI stream error")]

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return []
        choice = choices[0]
        delta = choice.get("delta") or {}
        if not isinstance(delta, dict):
            return []

        events: list[StreamEvent] = []
        reasoning = delta.get("reasoning_content") or delta.get("reasoning")
        if isinstance(reasoning, str) and reasoning:
            events.append(StreamReasoningEvent(delta=reasoning))
        content = delta.get("content")
        if isinstance(content, str) and content:
            events.append(StreamChunkEvent(delta=content))
        if choice.get("finish_reason"):
            events.append(StreamDoneEvent())
        return events

    def build_title_request(self, input: TitleRequestInput) -> ProviderRequest:
        """Build a non-streaming, low-budget ``/chat/completions`` request."""
        url = normalize_base_url(input.base_url)
        body = {
            "model": input.model_id,
            "messages": [{"role": "user", "content": input.prompt}],
            "max_tokens": TITLE_MAX_TOKENS,
        }
        return ProviderRequest(
            url=f"{url}/chat/completions",
            headers=_build_headers(input.api_key),
            body=json.dumps(body),
        )

    def parse_title_response(self, response_body: Any) -> Optional[str]:
        """Return ``choices[0].message.content``."""
        try:
            return response_body["choices"][0]["message"]["content"] or None
        except (KeyError, IndexError, TypeError):
            return None
