"""Provider adapters and the streaming network layer.

Adapters translate the uniform chat model into one backend's wire format and
back; ``stream_sse`` and ``fetch_title`` perform the HTTP exchange.
"""

from proma.providers.cancellation import CancellationToken
from proma.providers.errors import (
    ProviderError,
    ProviderHTTPError,
    ProviderStreamError,
    ProviderTransportError,
    StreamAbortedError,
    UnsupportedProviderError,
)
from proma.providers.registry import get_adapter, supported_providers
from proma.providers.sse import StreamResult, fetch_title, stream_sse
from proma.providers.types import (
    ImageAttachmentData,
    ImageAttachmentReader,
    ProviderAdapter,
    ProviderRequest,
    ProviderType,
    StreamChunkEvent,
    StreamDoneEvent,
    StreamErrorEvent,
    StreamEvent,
    StreamReasoningEvent,
    StreamRequestInput,
    TitleRequestInput,
)

__all__ = [
    "CancellationToken",
    "ImageAttachmentData",
    "ImageAttachmentReader",
    "ProviderAdapter",
    "ProviderError",
    "ProviderHTTPError",
    "ProviderRequest",
    "ProviderStreamError",
    "ProviderTransportError",
    "ProviderType",
    "StreamAbortedError",
    "StreamChunkEvent",
    "StreamDoneEvent",
    "StreamErrorEvent",
    "StreamEvent",
    "StreamReasoningEvent",
    "StreamRequestInput",
    "StreamResult",
    "TitleRequestInput",
    "UnsupportedProviderError",
    "fetch_title",
    "get_adapter",
    "stream_sse",
    "supported_providers",
]
