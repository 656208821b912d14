"""In-memory implementation of ConversationRepository.

Dictionary-based storage suitable for development, the CLI's ephemeral mode
and tests. Follows the same contract as the SQLite implementation.
"""

import asyncio
from typing import Any, Dict, List, Optional

from proma.conversation.models import (
    ConversationMeta,
    Message,
    RecentMessagesResult,
    next_timestamp,
)
from proma.errors import ConversationNotFoundError

DEFAULT_TITLE = "New conversation"

UPDATABLE_FIELDS = frozenset(
    {"title", "model_id", "channel_id", "context_dividers", "context_length", "pinned"}
)


class InMemoryConversationRepository:
    """In-memory implementation of ConversationRepository.

    Attributes:
        _conversations: Conversation id -> ConversationMeta
        _messages: Conversation id -> message log in append order
        _lock: Asyncio lock guarding all mutations
    """

    def __init__(self) -> None:
        """Initialize the in-memory conversation repository."""
        self._conversations: Dict[str, ConversationMeta] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._lock = asyncio.Lock()

    async def create_conversation(
        self,
        title: Optional[str] = None,
        model_id: Optional[str] = None,
        channel_id: Optional[str] = None,
    ) -> ConversationMeta:
        """Create a new conversation."""
        async with self._lock:
            meta = ConversationMeta(
                title=title or DEFAULT_TITLE, model_id=model_id, channel_id=channel_id
            )
            self._conversations[meta.id] = meta
            self._messages[meta.id] = []
            return meta.model_copy(deep=True)

    async def list_conversations(self) -> List[ConversationMeta]:
        """List conversations, most recently updated first."""
        async with self._lock:
            ordered = sorted(
                self._conversations.values(), key=lambda c: c.updated_at, reverse=True
            )
            return [c.model_copy(deep=True) for c in ordered]

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationMeta]:
        """Get a conversation by id, or None."""
        async with self._lock:
            meta = self._conversations.get(conversation_id)
            return meta.model_copy(deep=True) if meta else None

    async def update_meta(self, conversation_id: str, **fields: Any) -> ConversationMeta:
        """Update metadata fields and bump ``updated_at``.

        Raises:
            ValueError: If an unknown field is given
            ConversationNotFoundError: If the conversation does not exist
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update conversation fields: {sorted(unknown)}")

        async with self._lock:
            meta = self._require(conversation_id)
            updated = meta.model_copy(
                update={**fields, "updated_at": next_timestamp(meta.updated_at)}, deep=True
            )
            self._conversations[conversation_id] = updated
            return updated.model_copy(deep=True)

    async def update_title(self, conversation_id: str, title: str) -> ConversationMeta:
        """Set the conversation title."""
        return await self.update_meta(conversation_id, title=title)

    async def update_model(
        self, conversation_id: str, model_id: str, channel_id: str
    ) -> ConversationMeta:
        """Set the default model and channel."""
        return await self.update_meta(conversation_id, model_id=model_id, channel_id=channel_id)

    async def update_context_dividers(
        self, conversation_id: str, dividers: List[str]
    ) -> ConversationMeta:
        """Replace the ordered divider id list."""
        return await self.update_meta(conversation_id, context_dividers=list(dividers))

    async def toggle_pin(self, conversation_id: str) -> ConversationMeta:
        """Flip the pinned flag."""
        meta = await self.get_conversation(conversation_id)
        if meta is None:
            raise ConversationNotFoundError(conversation_id)
        return await self.update_meta(conversation_id, pinned=not meta.pinned)

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation and its messages."""
        async with self._lock:
            self._require(conversation_id)
            del self._conversations[conversation_id]
            self._messages.pop(conversation_id, None)

    async def append_message(self, conversation_id: str, message: Message) -> Message:
        """Append a message and bump ``updated_at``."""
        async with self._lock:
            meta = self._require(conversation_id)
            self._messages.setdefault(conversation_id, []).append(message.model_copy(deep=True))
            meta.updated_at = next_timestamp(meta.updated_at)
            return message

    async def get_messages(self, conversation_id: str) -> List[Message]:
        """Get the full message log in append order."""
        async with self._lock:
            return [m.model_copy(deep=True) for m in self._messages.get(conversation_id, [])]

    async def get_recent_messages(self, conversation_id: str, limit: int) -> RecentMessagesResult:
        """Get the last ``limit`` messages in chronological order."""
        if limit < 0:
            raise ValueError("limit must be non-negative")

        messages = await self.get_messages(conversation_id)
        total = len(messages)
        recent = messages[total - limit :] if limit else []
        return RecentMessagesResult(messages=recent, total=total, has_more=total > limit)

    async def delete_message(self, conversation_id: str, message_id: str) -> List[Message]:
        """Delete a single message, returning the remaining log."""
        async with self._lock:
            messages = self._messages.get(conversation_id, [])
            kept = [m for m in messages if m.id != message_id]
            if len(kept) != len(messages):
                self._messages[conversation_id] = kept
                self._bump(conversation_id)
        return await self.get_messages(conversation_id)

    async def truncate_messages_from(
        self, conversation_id: str, message_id: str
    ) -> List[Message]:
        """Delete ``message_id`` and everything appended after it."""
        async with self._lock:
            messages = self._messages.get(conversation_id, [])
            index = next((i for i, m in enumerate(messages) if m.id == message_id), None)
            if index is not None:
                self._messages[conversation_id] = messages[:index]
                self._bump(conversation_id)
        return await self.get_messages(conversation_id)

    def _require(self, conversation_id: str) -> ConversationMeta:
        meta = self._conversations.get(conversation_id)
        if meta is None:
            raise ConversationNotFoundError(conversation_id)
        return meta

    def _bump(self, conversation_id: str) -> None:
        meta = self._conversations.get(conversation_id)
        if meta is not None:
            meta.updated_at = next_timestamp(meta.updated_at)
