"""Channel (backend + credential) models.

A channel describes one configured backend: which wire protocol it speaks,
where it lives, and which models it offers. The API key is stored encrypted
and is never part of these models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from proma.conversation.models import new_id, utc_now
from proma.providers.types import ProviderType


class ChannelModelInfo(BaseModel):
    """One entry in a channel's model catalog.

    Attributes:
        id: Model identifier sent to the provider
        name: Display name
        enabled: Whether the model is offered for selection
    """

    id: str = Field(..., min_length=1)
    name: str = ""
    enabled: bool = True


class Channel(BaseModel):
    """A configured backend.

    Attributes:
        id: Channel identifier
        name: Display name
        provider: Wire protocol used by this backend
        base_url: API base URL
        models: Model catalog
        enabled: Whether the channel can be used
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """

    id: str = Field(default_factory=new_id)
    name: str
    provider: ProviderType
    base_url: str
    models: list[ChannelModelInfo] = Field(default_factory=list)
    enabled: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ChannelCreateInput(BaseModel):
    """Input for creating a channel.

    Attributes:
        name: Display name
        provider: Wire protocol tag
        base_url: API base URL
        api_key: Plaintext API key (encrypted before storage)
        models: Model catalog
        enabled: Whether the channel is enabled
    """

    name: str = Field(..., min_length=1, max_length=200)
    provider: ProviderType
    base_url: str = Field(..., min_length=1)
    api_key: str = Field(..., min_length=1, repr=False)
    models: list[ChannelModelInfo] = Field(default_factory=list)
    enabled: bool = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Require an http(s) base URL."""
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return value


class ChannelUpdateInput(BaseModel):
    """Partial update of a channel; None fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    provider: Optional[ProviderType] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = Field(default=None, min_length=1, repr=False)
    models: Optional[list[ChannelModelInfo]] = None
    enabled: Optional[bool] = None
