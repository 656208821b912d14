"""Google Generative AI (Gemini) adapter.

- Roles: user / model (assistant is relabelled ``model``); the system prompt
  travels as ``systemInstruction``
- Images: ``inline_data`` parts
- SSE: ``candidates[0].content.parts``; parts flagged ``thought`` are reasoning
- Auth: ``x-goog-api-key`` header
"""

import json
from typing import Any, Optional

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

THINKING_BUDGET_TOKENS = 16384
TITLE_MAX_OUTPUT_TOKENS = 50


def _build_headers(api_key: str) -> dict[str, str]:
    return {
        "x-goog-api-key": api_key,
        "content-type": "application/json",
    }


def _build_message_parts(text: str, images: list[ImageAttachmentData]) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = [
        {"inline_data": {"mime_type": img.media_type, "data": img.data}} for img in images
    ]
    if text:
        parts.append({"text": text})
    return parts


def _to_google_contents(input: StreamRequestInput) -> list[dict[str, Any]]:
    contents: list[dict[str, Any]] = []

    for msg in input.history:
        if msg.role == MessageRole.SYSTEM:
            continue
        role = "model" if msg.role == MessageRole.ASSISTANT else "user"

        if msg.role == MessageRole.USER and msg.attachments:
            images = input.read_image_attachments(msg.attachments)
            contents.append({"role": role, "parts": _build_message_parts(msg.content, images)})
        else:
            contents.append({"role": role, "parts": [{"text": msg.content}]})

    current_images = input.read_image_attachments(input.attachments)
    contents.append(
        {"role": "user", "parts": _build_message_parts(input.user_message, current_images)}
    )
    return contents


class GoogleAdapter:
    """Adapter for the Gemini ``generateContent`` API."""

    provider_type = ProviderType.GOOGLE

    def build_stream_request(self, input: StreamRequestInput) -> ProviderRequest:
        """Build a ``:streamGenerateContent?alt=sse`` request.

        ``generationConfig`` is only sent when thinking is enabled.
        """
        url = normalize_base_url(input.base_url)

        body: dict[str, Any] = {"contents": _to_google_contents(input)}

        if input.thinking_enabled:
            body["generationConfig"] = {
                "thinkingConfig": {
                    "includeThoughts": True,
                    "thinkingBudget": THINKING_BUDGET_TOKENS,
                }
            }

        if input.system_message:
            body["systemInstruction"] = {"parts": [{"text": input.system_message}]}

        return ProviderRequest(
            url=f"{url}/v1beta/models/{input.model_id}:streamGenerateContent?alt=sse",
            headers=_build_headers(input.api_key),
            body=json.dumps(body),
        )

    def parse_sse_line(self, json_line: str) -> list[StreamEvent]:
        """Parse one Gemini SSE payload, one event per non-empty text part."""
        try:
            data = json.loads(json_line)
        except (json.JSONDecodeError, TypeError):
            return []
        if not isinstance(data, dict):
            return []

        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            return [StreamErrorEvent(error=message or "Google stream error")]

        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return []
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []

        events: list[StreamEvent] = []
        for part in parts:
            if not isinstance(part, dict):
                continue
            text = part.get("text")
            if not isinstance(text, str) or not text:
                continue
            if part.get("thought"):
                events.append(StreamReasoningEvent(delta=text))
            else:
                events.append(StreamChunkEvent(delta=text))

        if candidate.get("finishReason"):
            events.append(StreamDoneEvent())
        return events

    def build_title_request(self, input: TitleRequestInput) -> ProviderRequest:
        """Build a non-streaming ``:generateContent`` request."""
        url = normalize_base_url(input.base_url)
        body = {
            "contents": [{"role": "user", "parts": [{"text": input.prompt}]}],
            "generationConfig": {"maxOutputTokens": TITLE_MAX_OUTPUT_TOKENS},
        }
        return ProviderRequest(
            url=f"{url}/v1beta/models/{input.model_id}:generateContent",
            headers=_build_headers(input.api_key),
            body=json.dumps(body),
        )

    def parse_title_response(self, response_body: Any) -> Optional[str]:
        """Return the first text part of the first candidate."""
        try:
            return response_body["candidates"][0]["content"]["parts"][0]["text"] or None
        except (KeyError, IndexError, TypeError):
            return None
