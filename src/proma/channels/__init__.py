"""Channels: configured backends and their encrypted credentials."""

from proma.channels.encryption import CredentialEncryption, generate_encryption_key
from proma.channels.models import Channel, ChannelCreateInput, ChannelModelInfo, ChannelUpdateInput
from proma.channels.repository import ChannelProvider, SQLiteChannelRepository

__all__ = [
    "Channel",
    "ChannelCreateInput",
    "ChannelModelInfo",
    "ChannelUpdateInput",
    "ChannelProvider",
    "SQLiteChannelRepository",
    "CredentialEncryption",
    "generate_encryption_key",
]
