"""Schemas for chat endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class ChatSendResponse(BaseModel):
    """Acknowledgement of an accepted turn; results arrive as push events.

    Attributes:
        conversation_id: Conversation the turn runs in
        events_url: Path of the SSE stream carrying the turn's events
    """

    conversation_id: str
    events_url: str


class ChatStopRequest(BaseModel):
    conversation_id: str = Field(..., min_length=1)


class ChatStopResponse(BaseModel):
    conversation_id: str
    stopped: bool


class TitleResponse(BaseModel):
    """Generated title, or None when generation failed."""

    title: Optional[str] = None
