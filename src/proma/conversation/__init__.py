"""Conversation domain models and repository interfaces.

This module provides the message and conversation metadata models along with
the repository interface for the durable message log.
"""

from proma.conversation.models import (
    UNLIMITED_CONTEXT,
    ContextLength,
    ConversationMeta,
    FileAttachment,
    Message,
    MessageRole,
    RecentMessagesResult,
)
from proma.conversation.repository import ConversationRepository

# Import implementations directly when needed:
# from proma.conversation.sqlite_repository import SQLiteConversationRepository
# from proma.conversation.memory_repository import InMemoryConversationRepository

__all__ = [
    "UNLIMITED_CONTEXT",
    "ContextLength",
    "ConversationMeta",
    "FileAttachment",
    "Message",
    "MessageRole",
    "RecentMessagesResult",
    "ConversationRepository",
]
