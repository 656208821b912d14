"""SQLAlchemy ORM models for conversation persistence.

Conversations hold the mutable metadata index; messages form the per
conversation log, ordered by an autoincrement sequence so that append order
survives identical timestamps.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from proma.conversation.models import utc_now
from proma.storage.base_model import Base


class ConversationModel(Base):
    """ORM model for conversation metadata.

    Attributes:
        id: Conversation identifier (UUID string)
        title: Human-readable title
        model_id: Default model for new turns
        channel_id: Default channel for new turns
        created_at: Creation timestamp
        updated_at: Last mutation timestamp
        context_dividers: Ordered divider message ids (JSON list)
        context_length: Round count or "infinite" (JSON scalar), null = unlimited
        pinned: Pinned flag
        messages: Relationship to the message log
    """

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    model_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    channel_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, index=True
    )

    context_dividers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    context_length: Mapped[Optional[object]] = mapped_column(JSON, nullable=True)
    pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    messages: Mapped[list["ConversationMessageModel"]] = relationship(
        "ConversationMessageModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ConversationMessageModel.seq",
    )


class ConversationMessageModel(Base):
    """ORM model for one entry of a conversation's message log.

    Attributes:
        seq: Autoincrement append position
        id: Message identifier (UUID string, unique)
        conversation_id: Foreign key to the parent conversation
        role: Message role (user, assistant, system)
        content: Visible text
        created_at: Creation timestamp
        model: Producing model (assistant only)
        reasoning: Thinking output (assistant only)
        attachments: Attachment references (JSON list)
        stopped: Aborted-turn flag
    """

    __tablename__ = "conversation_messages"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)

    conversation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )

    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reasoning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attachments: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    stopped: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    conversation: Mapped["ConversationModel"] = relationship(
        "ConversationModel", back_populates="messages"
    )

    __table_args__ = (Index("idx_conversation_seq", "conversation_id", "seq"),)
