"""Chat turn orchestration.

This package provides history windowing, the in-flight turn registry, the
push event bus and ``ChatService``, which drives send, stop and title
generation.
"""

from proma.chat.attachments import LocalAttachmentReader
from proma.chat.events import EventPublisher, InMemoryEventBus
from proma.chat.models import (
    ChatChunkEvent,
    ChatCompleteEvent,
    ChatErrorEvent,
    ChatEvent,
    ChatReasoningEvent,
    ChatSendInput,
    GenerateTitleInput,
    TurnState,
)
from proma.chat.service import ChatService, clean_title
from proma.chat.stream_registry import ActiveStreamRegistry
from proma.chat.windowing import filter_history

__all__ = [
    "ActiveStreamRegistry",
    "ChatChunkEvent",
    "ChatCompleteEvent",
    "ChatErrorEvent",
    "ChatEvent",
    "ChatReasoningEvent",
    "ChatSendInput",
    "ChatService",
    "EventPublisher",
    "GenerateTitleInput",
    "InMemoryEventBus",
    "LocalAttachmentReader",
    "TurnState",
    "clean_title",
    "filter_history",
]
