"""Streaming HTTP execution for provider requests.

``stream_sse`` performs one streaming POST, feeds each SSE ``data:`` payload
to the adapter, relays normalized events to a callback and returns the
accumulated text. ``fetch_title`` performs the one-shot title request.
"""

import asyncio
import json
import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from proma.providers.cancellation import CancellationToken
from proma.providers.errors import (
    ProviderHTTPError,
    ProviderStreamError,
    ProviderTransportError,
    StreamAbortedError,
)
from proma.providers.types import (
    ProviderAdapter,
    ProviderRequest,
    StreamChunkEvent,
    StreamErrorEvent,
    StreamEventCallback,
    StreamReasoningEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0
DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class StreamResult(BaseModel):
    """Accumulated output of a completed stream.

    Attributes:
        content: Full visible text
        reasoning: Full reasoning text (empty when the model produced none)
    """

    content: str = ""
    reasoning: str = ""


def _extract_payload(line: str) -> Optional[str]:
    """Return the JSON payload of an SSE ``data:`` line, or None."""
    line = line.strip()
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX) :].strip()
    if not payload or payload == DONE_SENTINEL:
        return None
    return payload


async def stream_sse(
    request: ProviderRequest,
    adapter: ProviderAdapter,
    token: CancellationToken,
    on_event: StreamEventCallback,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> StreamResult:
    """Execute a streaming provider request until it ends or is cancelled.

    Args:
        request: Request built by the adapter
        adapter: Adapter used to parse each SSE payload
        token: Cancellation token; ends the stream even while no data arrives
        on_event: Called in stream order for every chunk and reasoning event
        client: Shared HTTP client; a short-lived one is created when omitted
        timeout: Timeout in seconds for the short-lived client

    Returns:
        StreamResult with the accumulated content and reasoning

    Raises:
        StreamAbortedError: Token triggered; carries the partial output
        ProviderHTTPError: Non-2xx response status
        ProviderStreamError: The provider sent an error event
        ProviderTransportError: Connection-level failure
    """
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    content = ""
    reasoning = ""

    try:
        async with http.stream(
            "POST", request.url, headers=request.headers, content=request.body
        ) as response:
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace")
                raise ProviderHTTPError(response.status_code, body)

            lines = response.aiter_lines().__aiter__()
            cancelled = asyncio.ensure_future(token.wait())
            try:
                while not token.cancelled:
                    next_line = asyncio.ensure_future(lines.__anext__())
                    await asyncio.wait(
                        {next_line, cancelled}, return_when=asyncio.FIRST_COMPLETED
                    )
                    if not next_line.done():
                        # Stopped while the provider was silent
                        next_line.cancel()
                        await asyncio.wait({next_line})
                        break

                    try:
                        line = next_line.result()
                    except StopAsyncIteration:
                        break

                    payload = _extract_payload(line)
                    if payload is None:
                        continue

                    for event in adapter.parse_sse_line(payload):
                        if isinstance(event, StreamChunkEvent):
                            content += event.delta
                            on_event(event)
                        elif isinstance(event, StreamReasoningEvent):
                            reasoning += event.delta
                            on_event(event)
                        elif isinstance(event, StreamErrorEvent):
                            raise ProviderStreamError(event.error)
            finally:
                cancelled.cancel()

            # Stopped mid-stream, or after the last line arrived
            if token.cancelled:
                raise StreamAbortedError(content, reasoning)
    except httpx.TransportError as e:
        if token.cancelled:
            raise StreamAbortedError(content, reasoning) from e
        logger.warning(f"Transport error for {request.url}: {type(e).__name__}")
        raise ProviderTransportError(str(e) or type(e).__name__) from e
    finally:
        if owns_client:
            await http.aclose()

    return StreamResult(content=content, reasoning=reasoning)


async def fetch_title(
    request: ProviderRequest,
    adapter: ProviderAdapter,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Optional[str]:
    """Execute a non-streaming title request.

    Returns:
        Raw title text from the adapter, or None on any failure
    """
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    try:
        response = await http.post(request.url, headers=request.headers, content=request.body)
        if not response.is_success:
            logger.warning(f"Title request failed with status {response.status_code}")
            return None
        return adapter.parse_title_response(response.json())
    except (httpx.HTTPError, json.JSONDecodeError) as e:
        logger.warning(f"Title request failed: {type(e).__name__}")
        return None
    finally:
        if owns_client:
            await http.aclose()
