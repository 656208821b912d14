"""FastAPI dependencies resolving the running ``ProMaRuntime`` components."""

from fastapi import Request

from proma.channels.repository import SQLiteChannelRepository
from proma.chat.events import InMemoryEventBus
from proma.chat.service import ChatService
from proma.conversation.repository import ConversationRepository
from proma.runtime import ProMaRuntime


def get_runtime(request: Request) -> ProMaRuntime:
    """Return the runtime attached to the app by its lifespan."""
    return request.app.state.runtime


def get_conversation_repository(request: Request) -> ConversationRepository:
    return get_runtime(request).conversations


def get_channel_repository(request: Request) -> SQLiteChannelRepository:
    return get_runtime(request).channels


def get_chat_service(request: Request) -> ChatService:
    return get_runtime(request).chat_service


def get_event_bus(request: Request) -> InMemoryEventBus:
    return get_runtime(request).event_bus
