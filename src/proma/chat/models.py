"""Pydantic models for chat turns and their push events.

Push events are what the chat service publishes to the UI boundary, scoped by
conversation id. Every turn ends with exactly one terminal event:
``ChatCompleteEvent`` or ``ChatErrorEvent``.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from proma.conversation.models import ContextLength, FileAttachment


class ChatSendInput(BaseModel):
    """Input for one chat turn.

    Attributes:
        conversation_id: Target conversation
        user_message: Text typed by the user
        channel_id: Channel (backend + credential) to use
        model_id: Model identifier on that channel
        system_message: Optional system prompt
        context_length: Round limit for history, "infinite", or None
        context_dividers: Divider message ids of the conversation
        attachments: Attachment references of this user message
        thinking_enabled: Request reasoning output from the model
    """

    conversation_id: str = Field(..., min_length=1)
    user_message: str
    channel_id: str = Field(..., min_length=1)
    model_id: str = Field(..., min_length=1)
    system_message: Optional[str] = None
    context_length: Optional[ContextLength] = None
    context_dividers: list[str] = Field(default_factory=list)
    attachments: Optional[list[FileAttachment]] = None
    thinking_enabled: bool = False

    @field_validator("context_length")
    @classmethod
    def validate_context_length(cls, value: Optional[ContextLength]) -> Optional[ContextLength]:
        """Reject negative round counts.

        Raises:
            ValueError: If the round count is negative
        """
        if isinstance(value, int) and value < 0:
            raise ValueError("context_length must be >= 0")
        return value


class GenerateTitleInput(BaseModel):
    """Input for title generation.

    Attributes:
        user_message: First user message of the conversation
        channel_id: Channel to use
        model_id: Model identifier on that channel
    """

    user_message: str
    channel_id: str
    model_id: str


class TurnState(str, Enum):
    """Lifecycle of a chat turn for one conversation."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    ERRORED = "errored"


class ChatChunkEvent(BaseModel):
    """Visible text delta of the assistant reply."""

    type: Literal["chunk"] = "chunk"
    conversation_id: str
    delta: str


class ChatReasoningEvent(BaseModel):
    """Reasoning text delta of the assistant reply."""

    type: Literal["reasoning"] = "reasoning"
    conversation_id: str
    delta: str


class ChatCompleteEvent(BaseModel):
    """Terminal event for a finished or stopped turn.

    Attributes:
        model: Model that produced the reply
        message_id: Id of the stored assistant message; None when a stop
            happened before any text arrived
    """

    type: Literal["complete"] = "complete"
    conversation_id: str
    model: str
    message_id: Optional[str] = None


class ChatErrorEvent(BaseModel):
    """Terminal event for a failed turn."""

    type: Literal["error"] = "error"
    conversation_id: str
    error: str


ChatEvent = Annotated[
    Union[ChatChunkEvent, ChatReasoningEvent, ChatCompleteEvent, ChatErrorEvent],
    Field(discriminator="type"),
]
