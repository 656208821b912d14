"""Channel API route handlers.

API keys are write-only: they are accepted on create and update, stored
encrypted, and never returned.
"""

from fastapi import APIRouter, Depends, Response, status

from proma.api.dependencies import get_channel_repository
from proma.channels.models import Channel, ChannelCreateInput, ChannelUpdateInput
from proma.channels.repository import SQLiteChannelRepository
from proma.errors import ChannelNotFoundError
from proma.providers.registry import supported_providers

router = APIRouter(prefix="/api/v1/channels", tags=["channels"])


@router.get("", response_model=list[Channel])
async def list_channels(
    repository: SQLiteChannelRepository = Depends(get_channel_repository),
) -> list[Channel]:
    return await repository.list_channels()


@router.get("/providers", response_model=list[str])
async def list_providers() -> list[str]:
    """Provider tags a channel can be created with."""
    return [provider.value for provider in supported_providers()]


@router.post("", response_model=Channel, status_code=status.HTTP_201_CREATED)
async def create_channel(
    body: ChannelCreateInput,
    repository: SQLiteChannelRepository = Depends(get_channel_repository),
) -> Channel:
    return await repository.create_channel(body)


@router.get("/{channel_id}", response_model=Channel)
async def get_channel(
    channel_id: str,
    repository: SQLiteChannelRepository = Depends(get_channel_repository),
) -> Channel:
    channel = await repository.get_channel(channel_id)
    if channel is None:
        raise ChannelNotFoundError(channel_id)
    return channel


@router.patch("/{channel_id}", response_model=Channel)
async def update_channel(
    channel_id: str,
    body: ChannelUpdateInput,
    repository: SQLiteChannelRepository = Depends(get_channel_repository),
) -> Channel:
    return await repository.update_channel(channel_id, body)


@router.delete("/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_channel(
    channel_id: str,
    repository: SQLiteChannelRepository = Depends(get_channel_repository),
) -> Response:
    await repository.delete_channel(channel_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
