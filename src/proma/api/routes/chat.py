"""Chat API route handlers.

``POST /send`` accepts a turn and runs it in the background; its chunk,
reasoning and terminal events are delivered on the conversation's SSE
stream at ``GET /{conversation_id}/events``.
"""

from typing import AsyncIterator

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import StreamingResponse

from proma.api.dependencies import get_chat_service, get_conversation_repository, get_event_bus
from proma.api.schemas.chat import (
    ChatSendResponse,
    ChatStopRequest,
    ChatStopResponse,
    TitleResponse,
)
from proma.chat.events import InMemoryEventBus
from proma.chat.models import ChatSendInput, GenerateTitleInput
from proma.chat.service import ChatService
from proma.chat.streaming import format_chat_event, is_terminal_event
from proma.conversation.repository import ConversationRepository
from proma.errors import ConversationNotFoundError
from proma.observability.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/chat", tags=["chat"])

# Longest time an idle events stream goes without noticing a disconnect
DISCONNECT_POLL_SECONDS = 1.0


@router.post(
    "/send", response_model=ChatSendResponse, status_code=status.HTTP_202_ACCEPTED
)
async def send_message(
    body: ChatSendInput,
    background_tasks: BackgroundTasks,
    chat_service: ChatService = Depends(get_chat_service),
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ChatSendResponse:
    """Start a chat turn.

    The response only acknowledges the turn. Subscribe to the events stream
    before sending to observe every event of the turn.

    Example:
        >>> POST /api/v1/chat/send
        >>> {"conversation_id": "c-1", "user_message": "hi",
        ...  "channel_id": "ch-1", "model_id": "claude-sonnet-4"}
        >>> 202 {"conversation_id": "c-1", "events_url": "/api/v1/chat/c-1/events"}
    """
    if await repository.get_conversation(body.conversation_id) is None:
        raise ConversationNotFoundError(body.conversation_id)

    background_tasks.add_task(chat_service.send_message, body)
    logger.info("chat_turn_accepted", conversation_id=body.conversation_id)
    return ChatSendResponse(
        conversation_id=body.conversation_id,
        events_url=f"{router.prefix}/{body.conversation_id}/events",
    )


@router.post("/stop", response_model=ChatStopResponse)
async def stop_generation(
    body: ChatStopRequest,
    chat_service: ChatService = Depends(get_chat_service),
) -> ChatStopResponse:
    """Stop the conversation's in-flight turn; stopping an idle one is a no-op."""
    was_active = chat_service.registry.is_active(body.conversation_id)
    chat_service.stop_generation(body.conversation_id)
    return ChatStopResponse(conversation_id=body.conversation_id, stopped=was_active)


@router.post("/title", response_model=TitleResponse)
async def generate_title(
    body: GenerateTitleInput,
    chat_service: ChatService = Depends(get_chat_service),
) -> TitleResponse:
    """Generate a short title from the first user message."""
    return TitleResponse(title=await chat_service.generate_title(body))


async def _relay_events(
    bus: InMemoryEventBus,
    conversation_id: str,
    http_request: Request,
    until_complete: bool,
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> AsyncIterator[str]:
    """Forward bus events for one conversation as SSE frames.

    The client connection is re-checked at least every ``poll_interval``
    seconds, so an idle stream releases its subscription once the client
    goes away.
    """
    async with bus.subscribe(conversation_id) as events:
        while not await http_request.is_disconnected():
            event = await events.get(timeout=poll_interval)
            if event is None:
                continue
            yield format_chat_event(event)
            if until_complete and is_terminal_event(event):
                break


@router.get("/{conversation_id}/events")
async def conversation_events(
    conversation_id: str,
    request: Request,
    until_complete: bool = False,
    bus: InMemoryEventBus = Depends(get_event_bus),
) -> StreamingResponse:
    """Server-Sent Events stream of a conversation's chat events.

    Delivery is best-effort with no replay: events published while no client
    is subscribed are lost, and the conversation store is the source of truth.

    Example stream::

        event: chunk
        data: {"type": "chunk", "conversation_id": "c-1", "delta": "Hel"}

        event: complete
        data: {"type": "complete", "conversation_id": "c-1", "model": "m", "message_id": "..."}
    """
    return StreamingResponse(
        _relay_events(bus, conversation_id, request, until_complete),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
