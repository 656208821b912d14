"""Chat service: the turn orchestrator.

``ChatService`` drives one chat turn per call: resolve the channel, persist
the user message, window the stored history, stream the provider reply while
relaying events, then persist the assistant message (full or partial). The
outcome of every turn is reported through exactly one terminal push event.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Union

import httpx

from proma.channels.models import Channel
from proma.channels.repository import ChannelProvider
from proma.chat.events import EventPublisher
from proma.chat.models import (
    ChatChunkEvent,
    ChatCompleteEvent,
    ChatErrorEvent,
    ChatReasoningEvent,
    ChatSendInput,
    GenerateTitleInput,
    TurnState,
)
from proma.chat.stream_registry import ActiveStreamRegistry
from proma.chat.windowing import filter_history
from proma.config import PromaConfig
from proma.conversation.models import FileAttachment, Message, MessageRole
from proma.conversation.repository import ConversationRepository
from proma.errors import ChannelNotFoundError, ChatError
from proma.observability.metrics import MetricsCollector, get_metrics_collector
from proma.providers.cancellation import CancellationToken
from proma.providers.errors import ProviderError, StreamAbortedError
from proma.providers.registry import get_adapter
from proma.providers.sse import fetch_title, stream_sse
from proma.providers.types import (
    ImageAttachmentData,
    ImageAttachmentReader,
    ProviderAdapter,
    ProviderType,
    StreamChunkEvent,
    StreamEvent,
    StreamReasoningEvent,
    StreamRequestInput,
    TitleRequestInput,
)

logger = logging.getLogger(__name__)

TITLE_PROMPT = (
    "Generate a short title (a few words) for a conversation that starts with "
    "the user message below. Output only the title, without any other text, "
    "punctuation or quotes.\n\nUser message: "
)

MAX_TITLE_LENGTH = 20

# ASCII and typographic quotes models like to wrap titles in
TITLE_QUOTE_CHARS = "\"'“”‘’「」"

AdapterResolver = Callable[[Union[ProviderType, str]], ProviderAdapter]


def clean_title(raw: Optional[str], max_length: int = MAX_TITLE_LENGTH) -> Optional[str]:
    """Strip surrounding quotes and whitespace, then truncate.

    Examples:
        >>> clean_title('"My Trip Plan"')
        'My Trip Plan'
        >>> clean_title('  ""  ') is None
        True
    """
    if not raw:
        return None
    cleaned = raw.strip().strip(TITLE_QUOTE_CHARS).strip()
    return cleaned[:max_length] or None


def _error_message(error: Exception) -> str:
    if isinstance(error, ChatError):
        return error.message
    return str(error) or type(error).__name__


class ChatService:
    """Orchestrates chat turns against the configured provider channels.

    All collaborators are injected; the service keeps no global state, so
    tests can build isolated instances with in-memory fakes.
    """

    def __init__(
        self,
        conversations: ConversationRepository,
        channels: ChannelProvider,
        publisher: EventPublisher,
        registry: Optional[ActiveStreamRegistry] = None,
        attachment_reader: Optional[ImageAttachmentReader] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[PromaConfig] = None,
        adapter_resolver: AdapterResolver = get_adapter,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        """Initialize the chat service.

        Args:
            conversations: Durable conversation store
            channels: Channel lookup and API key decryption
            publisher: Push channel to UI subscribers
            registry: In-flight turn registry (a private one if omitted)
            attachment_reader: Image reader injected into adapters; without
                one, attachments are not inlined
            http_client: Shared HTTP client for provider calls; a short-lived
                client per call is used if omitted
            config: Runtime configuration (defaults if omitted)
            adapter_resolver: Maps a provider tag to its adapter
            metrics: Metrics collector (process-wide one if omitted)
        """
        self._conversations = conversations
        self._channels = channels
        self._publisher = publisher
        self._registry = registry or ActiveStreamRegistry()
        self._attachment_reader = attachment_reader
        self._http_client = http_client
        self._config = config or PromaConfig()
        self._resolve_adapter = adapter_resolver
        self._metrics = metrics or get_metrics_collector()
        self._states: dict[str, TurnState] = {}
        # Completion future of the latest turn per conversation
        self._turns: dict[str, "asyncio.Future[None]"] = {}

    @property
    def registry(self) -> ActiveStreamRegistry:
        return self._registry

    def turn_state(self, conversation_id: str) -> TurnState:
        """Current state of the conversation's turn; IDLE when none is in flight."""
        return self._states.get(conversation_id, TurnState.IDLE)

    async def send_message(self, input: ChatSendInput) -> None:
        """Run one chat turn. Results are delivered as push events only.

        Turns of one conversation never overlap. A new send cancels the
        running turn and waits until it has stored its (partial) reply, so
        the log always alternates question and answer.

        1. Register a cancellation token, cancelling any previous turn of the
           same conversation, and wait for that turn to finish.
        2. Resolve channel, API key and adapter. Failure: error event, nothing
           written.
        3. Append the user message before any network call.
        4. Load the stored history and window it.
        5. Stream the reply, relaying chunk and reasoning events.
        6. Success: store the assistant message, touch metadata, emit
           ``complete`` with the new message id.
        7. Stop: store a ``stopped`` partial message if any text arrived, emit
           ``complete`` (with no message id when nothing arrived).
        8. Other failure: emit ``error``; no assistant message is written.
        9. Always deregister the token.

        Args:
            input: Turn parameters
        """
        conversation_id = input.conversation_id
        token = self._registry.register(conversation_id)

        previous = self._turns.get(conversation_id)
        finished: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._turns[conversation_id] = finished
        try:
            if previous is not None:
                await asyncio.wait({previous})
            await self._send(input, token)
        finally:
            self._registry.release(conversation_id, token)
            self._end_turn(conversation_id, previous, finished)

    def _end_turn(
        self,
        conversation_id: str,
        previous: Optional["asyncio.Future[None]"],
        finished: "asyncio.Future[None]",
    ) -> None:
        """Let the next queued turn run once every earlier one is done."""

        def _release(_: object = None) -> None:
            finished.set_result(None)
            if self._turns.get(conversation_id) is finished:
                del self._turns[conversation_id]

        if previous is None or previous.done():
            _release()
        else:
            previous.add_done_callback(_release)

    async def _send(self, input: ChatSendInput, token: CancellationToken) -> None:
        conversation_id = input.conversation_id
        started = time.monotonic()
        provider = "unknown"

        self._states[conversation_id] = TurnState.SENDING
        try:
            try:
                channel, api_key, adapter = await self._resolve_backend(input.channel_id)
                provider = ProviderType(channel.provider).value

                user_message = Message(
                    role=MessageRole.USER,
                    content=input.user_message,
                    attachments=input.attachments,
                )
                await self._conversations.append_message(conversation_id, user_message)
            except Exception as e:
                message = _error_message(e)
                logger.warning(
                    f"Chat turn rejected for conversation {conversation_id}: {message}",
                    exc_info=not isinstance(e, (ChatError, ProviderError)),
                )
                self._emit_error(conversation_id, message)
                self._finish(conversation_id, provider, TurnState.ERRORED, started)
                return

            outcome = await self._run_turn(input, channel, api_key, adapter, user_message, token)
            self._finish(conversation_id, provider, outcome, started)
        finally:
            self._states.pop(conversation_id, None)

    async def _run_turn(
        self,
        input: ChatSendInput,
        channel: Channel,
        api_key: str,
        adapter: ProviderAdapter,
        user_message: Message,
        token: CancellationToken,
    ) -> TurnState:
        conversation_id = input.conversation_id
        self._metrics.turn_started()

        def on_event(event: StreamEvent) -> None:
            self._states[conversation_id] = TurnState.STREAMING
            if isinstance(event, StreamChunkEvent):
                self._publisher.publish(
                    conversation_id,
                    ChatChunkEvent(conversation_id=conversation_id, delta=event.delta),
                )
            elif isinstance(event, StreamReasoningEvent):
                self._publisher.publish(
                    conversation_id,
                    ChatReasoningEvent(conversation_id=conversation_id, delta=event.delta),
                )

        try:
            try:
                full_history = await self._conversations.get_messages(conversation_id)
                # The current message travels separately as user_message
                previous = [m for m in full_history if m.id != user_message.id]
                history = filter_history(previous, input.context_dividers, input.context_length)

                request = adapter.build_stream_request(
                    StreamRequestInput(
                        base_url=channel.base_url,
                        api_key=api_key,
                        model_id=input.model_id,
                        history=history,
                        user_message=input.user_message,
                        system_message=input.system_message,
                        attachments=input.attachments,
                        read_image_attachments=self._read_images,
                        thinking_enabled=input.thinking_enabled,
                    )
                )
                if token.cancelled:
                    # Stopped while queued behind an earlier turn
                    raise StreamAbortedError("", "")

                logger.info(
                    f"Streaming reply for conversation {conversation_id} "
                    f"via {channel.provider} model {input.model_id} "
                    f"({len(history)} history messages)"
                )
                result = await stream_sse(
                    request,
                    adapter,
                    token,
                    on_event,
                    client=self._http_client,
                    timeout=self._config.request_timeout_seconds,
                )
            except StreamAbortedError as aborted:
                message_id = await self._store_partial(input, aborted)
                self._emit_complete(conversation_id, input.model_id, message_id)
                return TurnState.ABORTED

            assistant_message = Message(
                role=MessageRole.ASSISTANT,
                content=result.content,
                reasoning=result.reasoning or None,
                model=input.model_id,
            )
            await self._conversations.append_message(conversation_id, assistant_message)
            await self._touch_conversation(conversation_id)
            self._emit_complete(conversation_id, input.model_id, assistant_message.id)
            return TurnState.COMPLETED
        except Exception as e:
            message = _error_message(e)
            logger.error(
                f"Chat turn failed for conversation {conversation_id}: {message}",
                exc_info=not isinstance(e, (ChatError, ProviderError)),
            )
            self._emit_error(conversation_id, message)
            return TurnState.ERRORED
        finally:
            self._metrics.turn_finished()

    async def _store_partial(
        self, input: ChatSendInput, aborted: StreamAbortedError
    ) -> Optional[str]:
        """Persist the text gathered before a stop; None when there was none."""
        if not aborted.content:
            logger.info(f"Turn stopped before any output in {input.conversation_id}")
            return None

        partial = Message(
            role=MessageRole.ASSISTANT,
            content=aborted.content,
            reasoning=aborted.reasoning or None,
            model=input.model_id,
            stopped=True,
        )
        await self._conversations.append_message(input.conversation_id, partial)
        logger.info(
            f"Stored partial reply {partial.id} ({len(partial.content)} chars) "
            f"in {input.conversation_id}"
        )
        return partial.id

    async def _touch_conversation(self, conversation_id: str) -> None:
        # Bookkeeping only; must not mask a stored reply
        try:
            await self._conversations.update_meta(conversation_id)
        except Exception as e:
            logger.warning(f"Failed to update conversation {conversation_id} metadata: {e}")

    def stop_generation(self, conversation_id: str) -> None:
        """Stop the in-flight turn of a conversation. No-op when there is none."""
        if self._registry.stop(conversation_id):
            logger.info(f"Stop requested for conversation {conversation_id}")

    async def generate_title(self, input: GenerateTitleInput) -> Optional[str]:
        """Ask the model for a short conversation title.

        Never raises: any failure (unknown channel, bad credential, transport
        error, unusable response) yields None.

        Args:
            input: First user message plus channel and model to use

        Returns:
            Cleaned title of at most ``title_max_length`` characters, or None
        """
        try:
            channel, api_key, adapter = await self._resolve_backend(input.channel_id)
            request = adapter.build_title_request(
                TitleRequestInput(
                    base_url=channel.base_url,
                    api_key=api_key,
                    model_id=input.model_id,
                    prompt=TITLE_PROMPT + input.user_message,
                )
            )
            raw = await fetch_title(
                request,
                adapter,
                client=self._http_client,
                timeout=self._config.request_timeout_seconds,
            )
            title = clean_title(raw, self._config.title_max_length)
        except Exception as e:
            logger.warning(f"Title generation failed: {e}")
            title = None

        self._metrics.record_title_generation("success" if title else "failed")
        return title

    async def _resolve_backend(self, channel_id: str) -> tuple[Channel, str, ProviderAdapter]:
        """Look up the channel, decrypt its key and pick the adapter.

        Raises:
            ChannelNotFoundError: Unknown channel
            CredentialDecryptionError: Key cannot be decrypted
            UnsupportedProviderError: No adapter for the channel's provider
        """
        channel = await self._channels.get_channel(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        api_key = await self._channels.decrypt_api_key(channel_id)
        adapter = self._resolve_adapter(channel.provider)
        return channel, api_key, adapter

    def _read_images(
        self, attachments: Optional[list[FileAttachment]]
    ) -> list[ImageAttachmentData]:
        if self._attachment_reader is None:
            return []
        return self._attachment_reader(attachments)

    def _emit_complete(
        self, conversation_id: str, model: str, message_id: Optional[str]
    ) -> None:
        self._publisher.publish(
            conversation_id,
            ChatCompleteEvent(conversation_id=conversation_id, model=model, message_id=message_id),
        )

    def _emit_error(self, conversation_id: str, message: str) -> None:
        self._publisher.publish(
            conversation_id, ChatErrorEvent(conversation_id=conversation_id, error=message)
        )

    def _finish(
        self, conversation_id: str, provider: str, outcome: TurnState, started: float
    ) -> None:
        duration = time.monotonic() - started
        self._metrics.record_chat_turn(provider, outcome.value, duration)
        logger.info(
            f"Chat turn {outcome.value} for conversation {conversation_id} in {duration:.2f}s"
        )
