"""Conversation domain models.

Pydantic models for conversation metadata, messages and attachment
references. Timestamps are naive UTC datetimes, matching what SQLite stores.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

UNLIMITED_CONTEXT = "infinite"

# Either a bounded number of rounds or the "infinite" sentinel
ContextLength = Union[int, Literal["infinite"]]


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """Return a timestamp strictly later than ``previous``.

    Wall-clock resolution can hand out the same value twice for two rapid
    mutations; ``updated_at`` must still increase.
    """
    now = utc_now()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def new_id() -> str:
    """Generate a new string identifier."""
    return str(uuid4())


class MessageRole(str, Enum):
    """Role of a message sender in a conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class FileAttachment(BaseModel):
    """Reference to a file attached to a user message.

    The file itself lives in attachment storage; only the reference is part
    of the message log.

    Attributes:
        id: Attachment identifier
        filename: Original file name
        media_type: MIME type (e.g. image/png)
        local_path: Path relative to the attachments root
        size: File size in bytes
    """

    id: str = Field(default_factory=new_id)
    filename: str
    media_type: str
    local_path: str
    size: int = Field(default=0, ge=0)


class Message(BaseModel):
    """A single message within a conversation.

    Attributes:
        id: Unique message identifier
        role: Who sent the message (user, assistant, system)
        content: Visible text (may be empty when only reasoning/attachments exist)
        created_at: Creation timestamp
        model: Model that produced the message (assistant only)
        reasoning: Provider thinking output (assistant only)
        attachments: Attachment references (user only)
        stopped: True when the assistant turn was aborted by the user
    """

    id: str = Field(default_factory=new_id)
    role: MessageRole
    content: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    model: Optional[str] = None
    reasoning: Optional[str] = None
    attachments: Optional[list[FileAttachment]] = None
    stopped: Optional[bool] = None

    model_config = ConfigDict(use_enum_values=True)


class ConversationMeta(BaseModel):
    """Mutable summary of one conversation.

    Attributes:
        id: Conversation identifier
        title: Human-readable title
        model_id: Default model for new turns
        channel_id: Default channel (backend + credential) for new turns
        created_at: Creation timestamp
        updated_at: Last mutation of this record or its message log
        context_dividers: Ordered divider message ids (context reset markers)
        context_length: Round limit, "infinite", or None for unlimited
        pinned: Whether the conversation is pinned in the list
    """

    id: str = Field(default_factory=new_id)
    title: str = "New conversation"
    model_id: Optional[str] = None
    channel_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    context_dividers: list[str] = Field(default_factory=list)
    context_length: Optional[ContextLength] = None
    pinned: bool = False


class RecentMessagesResult(BaseModel):
    """A tail page of a conversation's message log.

    Attributes:
        messages: The most recent messages in chronological order
        total: Total number of messages in the log
        has_more: Whether older messages exist beyond this page
    """

    messages: list[Message]
    total: int
    has_more: bool
