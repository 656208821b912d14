"""SSE (Server-Sent Events) formatting for relaying chat push events.

Used by the API layer to forward ``InMemoryEventBus`` events to HTTP
subscribers.
"""

import json
from typing import Any

from proma.chat.models import ChatEvent


def format_sse_event(event_type: str, data: Any) -> str:
    """Format a Server-Sent Event with the given type and data.

    Args:
        event_type: The SSE event type (e.g., "chunk", "complete", "error")
        data: The event data, always JSON-serialized

    Returns:
        Formatted SSE string: "event: {type}\\ndata: {json}\\n\\n"

    Examples:
        >>> format_sse_event("chunk", {"delta": "hi"})
        'event: chunk\\ndata: {"delta": "hi"}\\n\\n'
    """
    data_json = json.dumps(data)
    return f"event: {event_type}\ndata: {data_json}\n\n"


def format_chat_event(event: ChatEvent) -> str:
    """Format a chat push event, using its ``type`` as the SSE event name."""
    return format_sse_event(event.type, event.model_dump(mode="json"))


def is_terminal_event(event: ChatEvent) -> bool:
    """Whether the event ends a turn (``complete`` or ``error``)."""
    return event.type in ("complete", "error")
