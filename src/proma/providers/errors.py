"""Errors raised by the provider network layer.

Adapters themselves never raise while parsing; these cover the HTTP exchange
performed by :mod:`proma.providers.sse`.
"""

from typing import Optional

# Truncate provider error bodies kept on exceptions and in logs
MAX_ERROR_BODY_LENGTH = 2000


class ProviderError(Exception):
    """Base exception for provider communication failures."""


class UnsupportedProviderError(ProviderError):
    """Raised when no adapter is registered for a provider tag."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unsupported provider: {provider}")
        self.provider = provider


class ProviderHTTPError(ProviderError):
    """Raised when the provider answers with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the provider
        body: Response body (truncated) for diagnostics
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body[:MAX_ERROR_BODY_LENGTH]
        super().__init__(f"API request failed ({status_code}): {self.body}")


class ProviderTransportError(ProviderError):
    """Raised on connection-level failures (refused, reset, timeout)."""


class ProviderStreamError(ProviderError):
    """Raised when the provider signals an error inside the event stream."""


class StreamAbortedError(ProviderError):
    """Raised when a stream is cancelled through its token.

    Carries whatever was accumulated before cancellation so the caller can
    persist a partial message.

    Attributes:
        content: Visible text accumulated so far
        reasoning: Reasoning text accumulated so far
    """

    def __init__(self, content: str = "", reasoning: Optional[str] = None) -> None:
        super().__init__("Stream cancelled")
        self.content = content
        self.reasoning = reasoning or ""
