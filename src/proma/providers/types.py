"""Provider adapter type definitions.

Defines the normalized stream event vocabulary, the HTTP request shape that
adapters build, the request inputs, and the ``ProviderAdapter`` Protocol that
every backend implements. Adapters are pure transformations: no network and
no file I/O happens behind this interface. Platform capabilities such as
reading image attachments are injected as plain callables.
"""

from enum import Enum
from typing import Annotated, Any, Callable, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field

from proma.conversation.models import FileAttachment, Message


class ProviderType(str, Enum):
    """Backend tag selecting a wire protocol.

    ``deepseek`` and ``custom`` speak the OpenAI-compatible protocol.
    """

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"
    DEEPSEEK = "deepseek"
    CUSTOM = "custom"


class ImageAttachmentData(BaseModel):
    """Base64 image data read from attachment storage.

    Attributes:
        media_type: MIME type (e.g. image/png)
        data: Base64-encoded bytes
    """

    media_type: str
    data: str


# Injected by the platform layer; adapters never touch the filesystem
ImageAttachmentReader = Callable[[Optional[list[FileAttachment]]], list[ImageAttachmentData]]


# ===== Stream events =====


class StreamChunkEvent(BaseModel):
    """Visible assistant text delta."""

    type: Literal["chunk"] = "chunk"
    delta: str


class StreamReasoningEvent(BaseModel):
    """Assistant reasoning ("thinking") text delta."""

    type: Literal["reasoning"] = "reasoning"
    delta: str


class StreamErrorEvent(BaseModel):
    """Backend-signaled error inside the stream."""

    type: Literal["error"] = "error"
    error: str


class StreamDoneEvent(BaseModel):
    """Backend-signaled end of the response."""

    type: Literal["done"] = "done"


StreamEvent = Annotated[
    Union[StreamChunkEvent, StreamReasoningEvent, StreamErrorEvent, StreamDoneEvent],
    Field(discriminator="type"),
]

StreamEventCallback = Callable[[StreamEvent], None]


# ===== HTTP request =====


class ProviderRequest(BaseModel):
    """A fully built HTTP request for a provider.

    Attributes:
        url: Complete request URL
        headers: HTTP headers, including authentication
        body: JSON-serialized request body
    """

    url: str
    headers: dict[str, str]
    body: str


# ===== Request inputs =====


def _no_images(attachments: Optional[list[FileAttachment]]) -> list[ImageAttachmentData]:
    return []


class StreamRequestInput(BaseModel):
    """Input for building a streaming chat request.

    Attributes:
        base_url: Provider API base URL
        api_key: Plaintext API key
        model_id: Model identifier
        history: Windowed history, not including the current user message
        user_message: Current user message text
        system_message: Optional system prompt
        attachments: Attachments of the current user message
        read_image_attachments: Injected reader turning attachment references
            into base64 image data
        thinking_enabled: Whether to request reasoning output
    """

    base_url: str
    api_key: str = Field(..., repr=False)
    model_id: str
    history: list[Message] = Field(default_factory=list)
    user_message: str
    system_message: Optional[str] = None
    attachments: Optional[list[FileAttachment]] = None
    read_image_attachments: ImageAttachmentReader = Field(default=_no_images, exclude=True)
    thinking_enabled: bool = False


class TitleRequestInput(BaseModel):
    """Input for building a one-shot title request.

    Attributes:
        base_url: Provider API base URL
        api_key: Plaintext API key
        model_id: Model identifier
        prompt: Full title prompt, user message included
    """

    base_url: str
    api_key: str = Field(..., repr=False)
    model_id: str
    prompt: str


# ===== Adapter contract =====


class ProviderAdapter(Protocol):
    """Contract implemented once per wire protocol.

    Implementations must be side-effect free: they translate inputs into a
    ``ProviderRequest`` and raw SSE payloads into normalized events.
    """

    provider_type: ProviderType

    def build_stream_request(self, input: StreamRequestInput) -> ProviderRequest:
        """Build the streaming HTTP request (URL, auth headers, converted messages)."""
        ...

    def parse_sse_line(self, json_line: str) -> list[StreamEvent]:
        """Parse one SSE data payload (``data:`` prefix already removed).

        Never raises: malformed or unrecognized payloads yield an empty list.
        One payload may produce several events.
        """
        ...

    def build_title_request(self, input: TitleRequestInput) -> ProviderRequest:
        """Build the non-streaming title request."""
        ...

    def parse_title_response(self, response_body: Any) -> Optional[str]:
        """Extract the title text from a parsed response body, or None."""
        ...
