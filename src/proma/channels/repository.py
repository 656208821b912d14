"""Channel repository: backend descriptors with encrypted credentials.

``ChannelProvider`` is the narrow read-side contract the chat service
depends on; ``SQLiteChannelRepository`` implements it together with channel
management operations.
"""

import logging
from typing import List, Optional, Protocol

from cryptography.fernet import InvalidToken
from sqlalchemy import select

from proma.channels.encryption import CredentialEncryption
from proma.channels.models import Channel, ChannelCreateInput, ChannelModelInfo, ChannelUpdateInput
from proma.channels.orm import ChannelModel
from proma.conversation.models import utc_now
from proma.errors import ChannelNotFoundError, CredentialDecryptionError
from proma.providers.types import ProviderType
from proma.storage.database import Database

logger = logging.getLogger(__name__)


class ChannelProvider(Protocol):
    """Credential resolution contract consumed by the chat service."""

    async def list_channels(self) -> List[Channel]:
        """List all configured channels."""
        ...

    async def get_channel(self, channel_id: str) -> Optional[Channel]:
        """Get a channel by id, or None."""
        ...

    async def decrypt_api_key(self, channel_id: str) -> str:
        """Return the plaintext API key of a channel.

        Raises:
            ChannelNotFoundError: If the channel does not exist
            CredentialDecryptionError: If the stored key cannot be decrypted
        """
        ...


class SQLiteChannelRepository:
    """SQLite-backed channel storage with Fernet-encrypted API keys.

    Attributes:
        db: Database instance for session management
    """

    def __init__(self, db: Database, encryption: CredentialEncryption):
        """Initialize the repository.

        Args:
            db: Database instance for session management
            encryption: Encryptor used for API keys at rest
        """
        self.db = db
        self._encryption = encryption

    async def list_channels(self) -> List[Channel]:
        """List all channels ordered by creation time."""
        async with self.db.session() as session:
            result = await session.execute(select(ChannelModel).order_by(ChannelModel.created_at))
            return [self._orm_to_channel(c) for c in result.scalars().all()]

    async def get_channel(self, channel_id: str) -> Optional[Channel]:
        """Get a channel by id, or None."""
        async with self.db.session() as session:
            channel_orm = await session.get(ChannelModel, channel_id)
            return self._orm_to_channel(channel_orm) if channel_orm else None

    async def create_channel(self, data: ChannelCreateInput) -> Channel:
        """Create a channel, encrypting its API key."""
        now = utc_now()
        async with self.db.session() as session:
            channel_orm = ChannelModel(
                name=data.name,
                provider=ProviderType(data.provider).value,
                base_url=data.base_url,
                api_key_encrypted=self._encryption.encrypt(data.api_key),
                models=[m.model_dump() for m in data.models],
                enabled=data.enabled,
                created_at=now,
                updated_at=now,
            )
            session.add(channel_orm)
            await session.flush()

            logger.info(f"Created channel {channel_orm.id} ({channel_orm.name}, {channel_orm.provider})")
            return self._orm_to_channel(channel_orm)

    async def update_channel(self, channel_id: str, data: ChannelUpdateInput) -> Channel:
        """Apply a partial update.

        Raises:
            ChannelNotFoundError: If the channel does not exist
        """
        async with self.db.session() as session:
            channel_orm = await session.get(ChannelModel, channel_id)
            if channel_orm is None:
                raise ChannelNotFoundError(channel_id)

            if data.name is not None:
                channel_orm.name = data.name
            if data.provider is not None:
                channel_orm.provider = ProviderType(data.provider).value
            if data.base_url is not None:
                channel_orm.base_url = data.base_url
            if data.api_key is not None:
                channel_orm.api_key_encrypted = self._encryption.encrypt(data.api_key)
            if data.models is not None:
                channel_orm.models = [m.model_dump() for m in data.models]
            if data.enabled is not None:
                channel_orm.enabled = data.enabled
            channel_orm.updated_at = utc_now()

            await session.flush()
            return self._orm_to_channel(channel_orm)

    async def delete_channel(self, channel_id: str) -> None:
        """Delete a channel.

        Raises:
            ChannelNotFoundError: If the channel does not exist
        """
        async with self.db.session() as session:
            channel_orm = await session.get(ChannelModel, channel_id)
            if channel_orm is None:
                raise ChannelNotFoundError(channel_id)
            await session.delete(channel_orm)

        logger.info(f"Deleted channel {channel_id}")

    async def decrypt_api_key(self, channel_id: str) -> str:
        """Return the plaintext API key for a channel.

        Raises:
            ChannelNotFoundError: If the channel does not exist
            CredentialDecryptionError: If decryption fails (wrong key, corrupt data)
        """
        async with self.db.session() as session:
            channel_orm = await session.get(ChannelModel, channel_id)
            if channel_orm is None:
                raise ChannelNotFoundError(channel_id)
            ciphertext = channel_orm.api_key_encrypted

        try:
            return self._encryption.decrypt(ciphertext)
        except InvalidToken as e:
            logger.error(f"Failed to decrypt API key for channel {channel_id}")
            raise CredentialDecryptionError(channel_id) from e

    def _orm_to_channel(self, orm: ChannelModel) -> Channel:
        """Convert ORM model to domain model."""
        return Channel(
            id=orm.id,
            name=orm.name,
            provider=ProviderType(orm.provider),
            base_url=orm.base_url,
            models=[ChannelModelInfo.model_validate(m) for m in orm.models or []],
            enabled=orm.enabled,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )
