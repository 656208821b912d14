"""SQLite-backed implementation of ConversationRepository.

Provides persistent conversation storage using SQLAlchemy's async engine.
Writes for a single conversation id are serialized through a per-id lock so a
stop racing a stream completion cannot interleave two rewrites of one log.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, List, Optional

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from proma.conversation.models import (
    ConversationMeta,
    FileAttachment,
    Message,
    MessageRole,
    RecentMessagesResult,
    next_timestamp,
    utc_now,
)
from proma.conversation.orm import ConversationMessageModel, ConversationModel
from proma.errors import ConversationNotFoundError
from proma.storage.database import Database

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New conversation"

UPDATABLE_FIELDS = frozenset(
    {"title", "model_id", "channel_id", "context_dividers", "context_length", "pinned"}
)


class SQLiteConversationRepository:
    """SQLite implementation of ConversationRepository using SQLAlchemy.

    Attributes:
        db: Database instance for session management
    """

    def __init__(self, db: Database):
        """Initialize repository with database connection.

        Args:
            db: Database instance for session management
        """
        self.db = db
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create_conversation(
        self,
        title: Optional[str] = None,
        model_id: Optional[str] = None,
        channel_id: Optional[str] = None,
    ) -> ConversationMeta:
        """Create a new conversation.

        Args:
            title: Optional title (defaults to "New conversation")
            model_id: Optional default model
            channel_id: Optional default channel

        Returns:
            Created ConversationMeta
        """
        now = utc_now()
        async with self.db.session() as session:
            conversation_orm = ConversationModel(
                title=title or DEFAULT_TITLE,
                model_id=model_id,
                channel_id=channel_id,
                created_at=now,
                updated_at=now,
                context_dividers=[],
                context_length=None,
                pinned=False,
            )
            session.add(conversation_orm)
            await session.flush()

            logger.info(f"Created conversation {conversation_orm.id} ({conversation_orm.title})")
            return self._orm_to_conversation(conversation_orm)

    async def list_conversations(self) -> List[ConversationMeta]:
        """List conversations, most recently updated first."""
        async with self.db.session() as session:
            stmt = select(ConversationModel).order_by(desc(ConversationModel.updated_at))
            result = await session.execute(stmt)
            return [self._orm_to_conversation(c) for c in result.scalars().all()]

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationMeta]:
        """Get a conversation by id.

        Returns:
            ConversationMeta if found, None otherwise
        """
        async with self.db.session() as session:
            conversation_orm = await session.get(ConversationModel, conversation_id)
            if conversation_orm is None:
                return None
            return self._orm_to_conversation(conversation_orm)

    async def update_meta(self, conversation_id: str, **fields: Any) -> ConversationMeta:
        """Update conversation metadata and bump ``updated_at``.

        Args:
            conversation_id: Conversation to update
            **fields: Any of title, model_id, channel_id, context_dividers,
                context_length, pinned

        Returns:
            Updated ConversationMeta

        Raises:
            ValueError: If an unknown field is given
            ConversationNotFoundError: If the conversation does not exist
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update conversation fields: {sorted(unknown)}")

        async with self._locks[conversation_id]:
            async with self.db.session() as session:
                conversation_orm = await self._load_conversation(session, conversation_id)

                for name, value in fields.items():
                    setattr(conversation_orm, name, list(value) if name == "context_dividers" else value)
                conversation_orm.updated_at = next_timestamp(conversation_orm.updated_at)

                await session.flush()
                logger.debug(f"Updated conversation {conversation_id}: {sorted(fields)}")
                return self._orm_to_conversation(conversation_orm)

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
        return await self.update_meta(conversation_id, context_dividers=dividers)

    async def toggle_pin(self, conversation_id: str) -> ConversationMeta:
        """Flip the pinned flag."""
        async with self._locks[conversation_id]:
            async with self.db.session() as session:
                conversation_orm = await self._load_conversation(session, conversation_id)
                conversation_orm.pinned = not conversation_orm.pinned
                conversation_orm.updated_at = next_timestamp(conversation_orm.updated_at)
                await session.flush()
                return self._orm_to_conversation(conversation_orm)

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation and its messages.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        async with self._locks[conversation_id]:
            async with self.db.session() as session:
                conversation_orm = await self._load_conversation(session, conversation_id)
                await session.execute(
                    delete(ConversationMessageModel).where(
                        ConversationMessageModel.conversation_id == conversation_id
                    )
                )
                await session.delete(conversation_orm)

        self._locks.pop(conversation_id, None)
        logger.info(f"Deleted conversation {conversation_id}")

    async def append_message(self, conversation_id: str, message: Message) -> Message:
        """Append a message and bump the conversation's ``updated_at``.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        async with self._locks[conversation_id]:
            async with self.db.session() as session:
                conversation_orm = await self._load_conversation(session, conversation_id)

                session.add(
                    ConversationMessageModel(
                        id=message.id,
                        conversation_id=conversation_id,
                        role=MessageRole(message.role).value,
                        content=message.content,
                        created_at=message.created_at,
                        model=message.model,
                        reasoning=message.reasoning,
                        attachments=(
                            [a.model_dump() for a in message.attachments]
                            if message.attachments
                            else None
                        ),
                        stopped=message.stopped,
                    )
                )
                conversation_orm.updated_at = next_timestamp(conversation_orm.updated_at)
                await session.flush()

        logger.debug(f"Appended {message.role} message {message.id} to {conversation_id}")
        return message

    async def get_messages(self, conversation_id: str) -> List[Message]:
        """Get the full message log in append order.

        A conversation without messages (or without a record) yields an empty list.
        """
        async with self.db.session() as session:
            stmt = (
                select(ConversationMessageModel)
                .where(ConversationMessageModel.conversation_id == conversation_id)
                .order_by(ConversationMessageModel.seq)
            )
            result = await session.execute(stmt)
            return [self._orm_to_message(m) for m in result.scalars().all()]

    async def get_recent_messages(self, conversation_id: str, limit: int) -> RecentMessagesResult:
        """Get the last ``limit`` messages in chronological order.

        Fetches in descending order then reverses.
        """
        if limit < 0:
            raise ValueError("limit must be non-negative")

        async with self.db.session() as session:
            total = await session.scalar(
                select(func.count())
                .select_from(ConversationMessageModel)
                .where(ConversationMessageModel.conversation_id == conversation_id)
            )
            stmt = (
                select(ConversationMessageModel)
                .where(ConversationMessageModel.conversation_id == conversation_id)
                .order_by(desc(ConversationMessageModel.seq))
                .limit(limit)
            )
            result = await session.execute(stmt)
            messages = [self._orm_to_message(m) for m in reversed(result.scalars().all())]

        total = total or 0
        return RecentMessagesResult(messages=messages, total=total, has_more=total > limit)

    async def delete_message(self, conversation_id: str, message_id: str) -> List[Message]:
        """Delete a single message, returning the remaining log."""
        async with self._locks[conversation_id]:
            async with self.db.session() as session:
                result = await session.execute(
                    delete(ConversationMessageModel).where(
                        ConversationMessageModel.conversation_id == conversation_id,
                        ConversationMessageModel.id == message_id,
                    )
                )
                if result.rowcount:
                    await self._touch(session, conversation_id)
                    logger.info(f"Deleted message {message_id} from {conversation_id}")
                else:
                    logger.warning(f"Message {message_id} not found in {conversation_id}")

        return await self.get_messages(conversation_id)

    async def truncate_messages_from(
        self, conversation_id: str, message_id: str
    ) -> List[Message]:
        """Delete ``message_id`` and everything appended after it."""
        async with self._locks[conversation_id]:
            async with self.db.session() as session:
                start_seq = await session.scalar(
                    select(ConversationMessageModel.seq).where(
                        ConversationMessageModel.conversation_id == conversation_id,
                        ConversationMessageModel.id == message_id,
                    )
                )
                if start_seq is None:
                    logger.warning(f"Truncate start {message_id} not found in {conversation_id}")
                else:
                    await session.execute(
                        delete(ConversationMessageModel).where(
                            ConversationMessageModel.conversation_id == conversation_id,
                            ConversationMessageModel.seq >= start_seq,
                        )
                    )
                    await self._touch(session, conversation_id)
                    logger.info(f"Truncated {conversation_id} from message {message_id}")

        return await self.get_messages(conversation_id)

    async def _load_conversation(
        self, session: AsyncSession, conversation_id: str
    ) -> ConversationModel:
        conversation_orm = await session.get(ConversationModel, conversation_id)
        if conversation_orm is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation_orm

    async def _touch(self, session: AsyncSession, conversation_id: str) -> None:
        conversation_orm = await session.get(ConversationModel, conversation_id)
        if conversation_orm is not None:
            conversation_orm.updated_at = next_timestamp(conversation_orm.updated_at)

    def _orm_to_conversation(self, orm: ConversationModel) -> ConversationMeta:
        """Convert ORM model to domain model."""
        return ConversationMeta(
            id=orm.id,
            title=orm.title,
            model_id=orm.model_id,
            channel_id=orm.channel_id,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
            context_dividers=list(orm.context_dividers or []),
            context_length=orm.context_length,  # type: ignore[arg-type]
            pinned=bool(orm.pinned),
        )

    def _orm_to_message(self, orm: ConversationMessageModel) -> Message:
        """Convert ORM model to domain model."""
        return Message(
            id=orm.id,
            role=MessageRole(orm.role),
            content=orm.content,
            created_at=orm.created_at,
            model=orm.model,
            reasoning=orm.reasoning,
            attachments=(
                [FileAttachment.model_validate(a) for a in orm.attachments]
                if orm.attachments
                else None
            ),
            stopped=orm.stopped,
        )
