"""Tests specific to the SQLite conversation repository."""

import asyncio

from proma.conversation.models import Message, MessageRole
from proma.conversation.sqlite_repository import SQLiteConversationRepository
from proma.storage.database import Database


class TestSQLitePersistence:
    """Tests for behavior that depends on the database."""

    async def test_data_survives_new_repository_instance(self, db: Database) -> None:
        """A fresh repository on the same database sees earlier writes."""
        writer = SQLiteConversationRepository(db)
        meta = await writer.create_conversation(title="Persisted")
        await writer.append_message(meta.id, Message(role=MessageRole.USER, content="hi"))

        reader = SQLiteConversationRepository(db)

        assert (await reader.get_conversation(meta.id)).title == "Persisted"
        assert [m.content for m in await reader.get_messages(meta.id)] == ["hi"]

    async def test_concurrent_appends_are_all_kept(
        self, sqlite_conversations: SQLiteConversationRepository
    ) -> None:
        meta = await sqlite_conversations.create_conversation()
        messages = [Message(role=MessageRole.USER, content=f"m{i}") for i in range(10)]

        await asyncio.gather(
            *(sqlite_conversations.append_message(meta.id, m) for m in messages)
        )

        stored = await sqlite_conversations.get_messages(meta.id)
        assert sorted(m.content for m in stored) == sorted(m.content for m in messages)

    async def test_identical_timestamps_keep_append_order(
        self, sqlite_conversations: SQLiteConversationRepository
    ) -> None:
        meta = await sqlite_conversations.create_conversation()
        first = Message(role=MessageRole.USER, content="first")
        second = Message(role=MessageRole.ASSISTANT, content="second", created_at=first.created_at)

        await sqlite_conversations.append_message(meta.id, first)
        await sqlite_conversations.append_message(meta.id, second)

        assert [m.content for m in await sqlite_conversations.get_messages(meta.id)] == [
            "first",
            "second",
        ]

    async def test_conversation_delete_cascades(
        self, sqlite_conversations: SQLiteConversationRepository
    ) -> None:
        keep = await sqlite_conversations.create_conversation(title="keep")
        drop = await sqlite_conversations.create_conversation(title="drop")
        await sqlite_conversations.append_message(keep.id, Message(role=MessageRole.USER, content="k"))
        await sqlite_conversations.append_message(drop.id, Message(role=MessageRole.USER, content="d"))

        await sqlite_conversations.delete_conversation(drop.id)

        assert [m.content for m in await sqlite_conversations.get_messages(keep.id)] == ["k"]
        assert [c.id for c in await sqlite_conversations.list_conversations()] == [keep.id]
