"""Cooperative cancellation for in-flight provider streams."""

import asyncio


class CancellationToken:
    """One-shot cancellation flag for an in-flight provider stream.

    The stream reader races ``wait()`` against the next line, so a stop ends
    a silent stream at once; lines already received are still processed.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Trigger the token. Idempotent."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until the token is triggered."""
        await self._event.wait()
