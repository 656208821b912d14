"""Conversation API route handlers.

CRUD over conversation metadata plus read and rewrite access to the message
log. Messages are only appended through the chat endpoints.
"""

from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, Response, status

from proma.api.dependencies import get_conversation_repository
from proma.api.schemas.conversation import (
    ContextDividersRequest,
    ConversationCreateRequest,
    ConversationUpdateRequest,
)
from proma.conversation.models import ConversationMeta, Message, RecentMessagesResult
from proma.conversation.repository import ConversationRepository
from proma.errors import ConversationNotFoundError

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])

# Fields an explicit null clears; a null title or pin flag is ignored
NULLABLE_FIELDS = frozenset({"model_id", "channel_id", "context_length"})


async def _require_conversation(
    repository: ConversationRepository, conversation_id: str
) -> ConversationMeta:
    conversation = await repository.get_conversation(conversation_id)
    if conversation is None:
        raise ConversationNotFoundError(conversation_id)
    return conversation


@router.get("", response_model=list[ConversationMeta])
async def list_conversations(
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> list[ConversationMeta]:
    """List conversations, most recently updated first."""
    return await repository.list_conversations()


@router.post("", response_model=ConversationMeta, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    body: ConversationCreateRequest,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationMeta:
    return await repository.create_conversation(
        title=body.title, model_id=body.model_id, channel_id=body.channel_id
    )


@router.get("/{conversation_id}", response_model=ConversationMeta)
async def get_conversation(
    conversation_id: str,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationMeta:
    return await _require_conversation(repository, conversation_id)


@router.patch("/{conversation_id}", response_model=ConversationMeta)
async def update_conversation(
    conversation_id: str,
    body: ConversationUpdateRequest,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationMeta:
    """Apply the fields present in the body.

    Example:
        >>> PATCH /api/v1/conversations/{id}
        >>> {"title": "Trip plan", "context_length": 5}
    """
    fields = {
        name: value
        for name, value in body.model_dump(exclude_unset=True).items()
        if value is not None or name in NULLABLE_FIELDS
    }
    return await repository.update_meta(conversation_id, **fields)


@router.put("/{conversation_id}/dividers", response_model=ConversationMeta)
async def update_context_dividers(
    conversation_id: str,
    body: ContextDividersRequest,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationMeta:
    return await repository.update_context_dividers(conversation_id, body.context_dividers)


@router.post("/{conversation_id}/pin", response_model=ConversationMeta)
async def toggle_pin(
    conversation_id: str,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationMeta:
    return await repository.toggle_pin(conversation_id)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: str,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> Response:
    await repository.delete_conversation(conversation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{conversation_id}/messages",
    response_model=Union[RecentMessagesResult, list[Message]],
)
async def get_messages(
    conversation_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> Union[RecentMessagesResult, list[Message]]:
    """Full message log, or the last ``limit`` messages with paging info."""
    await _require_conversation(repository, conversation_id)
    if limit is not None:
        return await repository.get_recent_messages(conversation_id, limit)
    return await repository.get_messages(conversation_id)


@router.delete("/{conversation_id}/messages/{message_id}", response_model=list[Message])
async def delete_message(
    conversation_id: str,
    message_id: str,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> list[Message]:
    """Delete one message and return the remaining log."""
    await _require_conversation(repository, conversation_id)
    return await repository.delete_message(conversation_id, message_id)


@router.post(
    "/{conversation_id}/messages/{message_id}/truncate", response_model=list[Message]
)
async def truncate_messages(
    conversation_id: str,
    message_id: str,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> list[Message]:
    """Delete ``message_id`` and every later message; return what is kept."""
    await _require_conversation(repository, conversation_id)
    return await repository.truncate_messages_from(conversation_id, message_id)
