"""Schemas for conversation endpoints."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from proma.conversation.models import ContextLength


class ConversationCreateRequest(BaseModel):
    """Request to create a conversation.

    Attributes:
        title: Initial title (defaults to the store's placeholder)
        model_id: Default model for new turns
        channel_id: Default channel for new turns
    """

    title: Optional[str] = Field(default=None, max_length=200)
    model_id: Optional[str] = None
    channel_id: Optional[str] = None


class ConversationUpdateRequest(BaseModel):
    """Partial metadata update; only fields present in the body are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    model_id: Optional[str] = None
    channel_id: Optional[str] = None
    context_length: Optional[ContextLength] = None
    pinned: Optional[bool] = None

    @field_validator("context_length")
    @classmethod
    def validate_context_length(cls, value: Optional[ContextLength]) -> Optional[ContextLength]:
        if isinstance(value, int) and value < 0:
            raise ValueError("context_length must be >= 0")
        return value


class ContextDividersRequest(BaseModel):
    """Replacement list of divider message ids, in order."""

    context_dividers: list[str] = Field(default_factory=list)
