"""Registry of in-flight chat turns keyed by conversation id."""

import logging
from typing import Optional

from proma.providers.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class ActiveStreamRegistry:
    """Owns the cancellation token of every in-flight turn.

    At most one token is registered per conversation id. Registering a new
    turn for a conversation that already has one cancels the previous turn
    first, so an old stream can never outlive its reachability by ``stop``.
    """

    def __init__(self) -> None:
        self._tokens: dict[str, CancellationToken] = {}

    def register(self, conversation_id: str) -> CancellationToken:
        """Create and register a fresh token, cancelling any prior one."""
        previous = self._tokens.get(conversation_id)
        if previous is not None:
            logger.info(f"Cancelling in-flight turn superseded in conversation {conversation_id}")
            previous.cancel()

        token = CancellationToken()
        self._tokens[conversation_id] = token
        return token

    def release(self, conversation_id: str, token: CancellationToken) -> None:
        """Deregister ``token`` if it still occupies the slot.

        A superseded turn finishing late must not evict its successor.
        """
        if self._tokens.get(conversation_id) is token:
            del self._tokens[conversation_id]

    def stop(self, conversation_id: str) -> bool:
        """Cancel and deregister the turn of a conversation.

        Returns:
            True if a turn was stopped, False when none was in flight
        """
        token = self._tokens.pop(conversation_id, None)
        if token is None:
            return False
        token.cancel()
        return True

    def get(self, conversation_id: str) -> Optional[CancellationToken]:
        return self._tokens.get(conversation_id)

    def is_active(self, conversation_id: str) -> bool:
        return conversation_id in self._tokens

    def active_ids(self) -> list[str]:
        return list(self._tokens)
