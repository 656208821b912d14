"""Conversation repository interface.

Defines the Protocol for the conversation store: an append-only message log
per conversation plus a small mutable metadata index.
"""

from typing import Any, List, Optional, Protocol

from proma.conversation.models import ConversationMeta, Message, RecentMessagesResult


class ConversationRepository(Protocol):
    """Repository interface for conversation persistence.

    Messages are only created by callers (never by the store). Once appended,
    a message's id and role never change; content changes only through
    delete/truncate. Every mutation of a conversation's record or message log
    moves its ``updated_at`` strictly forward.
    """

    async def create_conversation(
        self,
        title: Optional[str] = None,
        model_id: Optional[str] = None,
        channel_id: Optional[str] = None,
    ) -> ConversationMeta:
        """Create a new, empty conversation."""
        ...

    async def list_conversations(self) -> List[ConversationMeta]:
        """List conversations ordered by ``updated_at`` descending."""
        ...

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationMeta]:
        """Get conversation metadata, or None if it does not exist."""
        ...

    async def update_meta(self, conversation_id: str, **fields: Any) -> ConversationMeta:
        """Update metadata fields and bump ``updated_at``.

        Calling with no fields only touches ``updated_at``.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
            ValueError: If a field is not updatable
        """
        ...

    async def update_title(self, conversation_id: str, title: str) -> ConversationMeta:
        """Set the conversation title."""
        ...

    async def update_model(
        self, conversation_id: str, model_id: str, channel_id: str
    ) -> ConversationMeta:
        """Set the default model and channel."""
        ...

    async def update_context_dividers(
        self, conversation_id: str, dividers: List[str]
    ) -> ConversationMeta:
        """Replace the ordered list of divider message ids."""
        ...

    async def toggle_pin(self, conversation_id: str) -> ConversationMeta:
        """Flip the pinned flag."""
        ...

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation and its message log.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        ...

    async def append_message(self, conversation_id: str, message: Message) -> Message:
        """Append a message to the end of the conversation's log.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        ...

    async def get_messages(self, conversation_id: str) -> List[Message]:
        """Get the full message log in append order."""
        ...

    async def get_recent_messages(self, conversation_id: str, limit: int) -> RecentMessagesResult:
        """Get the last ``limit`` messages plus paging information."""
        ...

    async def delete_message(self, conversation_id: str, message_id: str) -> List[Message]:
        """Delete one message and return the remaining log.

        An unknown message id leaves the log unchanged.
        """
        ...

    async def truncate_messages_from(
        self, conversation_id: str, message_id: str
    ) -> List[Message]:
        """Delete ``message_id`` and every later message, returning what is kept.

        An unknown message id leaves the log unchanged.
        """
        ...
