"""Startup and shutdown of the shared Proma components.

``ProMaRuntime`` wires the database, repositories, event bus and chat
service from a ``PromaConfig``. The API lifespan and the CLI both use it so
the two surfaces run the exact same object graph.
"""

import logging
from pathlib import Path
from typing import Optional

import httpx

from proma.channels.encryption import CredentialEncryption, generate_encryption_key
from proma.channels.repository import SQLiteChannelRepository
from proma.chat.attachments import LocalAttachmentReader
from proma.chat.events import InMemoryEventBus
from proma.chat.service import ChatService
from proma.chat.stream_registry import ActiveStreamRegistry
from proma.config import PromaConfig
from proma.conversation.repository import ConversationRepository
from proma.conversation.sqlite_repository import SQLiteConversationRepository
from proma.storage.database import Database, DatabaseConfig

logger = logging.getLogger(__name__)


def build_encryption(config: PromaConfig) -> CredentialEncryption:
    """Create the API key encryptor.

    Without a configured key an ephemeral one is generated; keys stored with it
    cannot be decrypted after a restart.
    """
    if config.credential_key:
        return CredentialEncryption(config.credential_key.encode())

    logger.warning(
        "PROMA_CREDENTIAL_KEY is not set; using an ephemeral key. "
        "Stored channel API keys will not survive a restart."
    )
    return CredentialEncryption(generate_encryption_key())


class ProMaRuntime:
    """Owns every long-lived component of a running Proma process.

    Attributes:
        config: Configuration the runtime was built from
        database: Async database
        conversations: Conversation store
        channels: Channel repository
        event_bus: Push channel for chat events
        stream_registry: In-flight turn registry
        http_client: Shared HTTP client for provider calls
        chat_service: Turn orchestrator
    """

    def __init__(
        self,
        config: PromaConfig,
        database: Optional[Database] = None,
        conversations: Optional[ConversationRepository] = None,
    ) -> None:
        self.config = config
        self.database = database or Database(DatabaseConfig(url=config.database_url))
        self.conversations: ConversationRepository = conversations or SQLiteConversationRepository(
            self.database
        )
        self.channels = SQLiteChannelRepository(self.database, build_encryption(config))
        self.event_bus = InMemoryEventBus()
        self.stream_registry = ActiveStreamRegistry()
        self.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout_seconds),
            follow_redirects=True,
        )
        self.chat_service = ChatService(
            conversations=self.conversations,
            channels=self.channels,
            publisher=self.event_bus,
            registry=self.stream_registry,
            attachment_reader=LocalAttachmentReader(Path(config.attachments_dir)),
            http_client=self.http_client,
            config=config,
        )

    async def start(self) -> None:
        """Create tables if they do not exist."""
        await self.database.create_tables()
        logger.info("Proma runtime started")

    async def shutdown(self) -> None:
        """Stop in-flight turns and release network and database resources."""
        for conversation_id in self.stream_registry.active_ids():
            self.stream_registry.stop(conversation_id)
        await self.http_client.aclose()
        await self.database.close()
        logger.info("Proma runtime shut down")
