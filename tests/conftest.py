"""Pytest configuration and shared fixtures for the test suite."""

import asyncio
from typing import AsyncGenerator, AsyncIterator, Callable

import httpx
import pytest

from proma.channels.encryption import CredentialEncryption, generate_encryption_key
from proma.channels.models import ChannelCreateInput, ChannelModelInfo
from proma.channels.repository import SQLiteChannelRepository
from proma.conversation.memory_repository import InMemoryConversationRepository
from proma.conversation.sqlite_repository import SQLiteConversationRepository
from proma.storage.database import Database, DatabaseConfig

# Configure pytest-asyncio to use auto mode
pytest_plugins = ["pytest_asyncio"]


@pytest.fixture
async def db() -> AsyncGenerator[Database, None]:
    """Create an in-memory SQLite database with all tables."""
    database = Database(DatabaseConfig(url="sqlite+aiosqlite:///:memory:"))
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def encryption() -> CredentialEncryption:
    return CredentialEncryption(generate_encryption_key())


@pytest.fixture
async def sqlite_conversations(db: Database) -> SQLiteConversationRepository:
    return SQLiteConversationRepository(db)


@pytest.fixture
def memory_conversations() -> InMemoryConversationRepository:
    return InMemoryConversationRepository()


@pytest.fixture
async def channels(db: Database, encryption: CredentialEncryption) -> SQLiteChannelRepository:
    return SQLiteChannelRepository(db, encryption)


@pytest.fixture
def channel_factory(
    channels: SQLiteChannelRepository,
) -> Callable[..., object]:
    """Create a channel in the repository.

    Returns:
        Async callable taking the provider tag and optional overrides
    """

    async def _create(provider: str = "anthropic", **overrides: object):
        data = {
            "name": f"{provider} channel",
            "provider": provider,
            "base_url": "https://api.example.com",
            "api_key": "sk-test-key",
            "models": [ChannelModelInfo(id="test-model", name="Test Model")],
        }
        data.update(overrides)
        return await channels.create_channel(ChannelCreateInput(**data))

    return _create


def _sse_body(*payloads: str) -> bytes:
    return "".join(f"data: {payload}\n\n" for payload in payloads).encode()


@pytest.fixture
def sse_body() -> Callable[..., bytes]:
    """Frame raw JSON payloads as an SSE body (``data:`` lines, blank-line separated)."""
    return _sse_body


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an HTTP client whose requests are answered by a handler function."""

    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build


class StallingStream(httpx.AsyncByteStream):
    """Response body that sends its first bytes, then stays silent until released."""

    def __init__(self, first: bytes, rest: bytes = b"") -> None:
        self._first = first
        self._rest = rest
        self.release = asyncio.Event()

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self._first
        await self.release.wait()
        if self._rest:
            yield self._rest

    async def aclose(self) -> None:
        self.release.set()


@pytest.fixture
def stalling_stream() -> Callable[..., StallingStream]:
    """Build a response body that stalls after its first bytes."""
    return StallingStream
