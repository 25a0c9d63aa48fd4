"""Cooperative cancellation token threaded through a request."""

import asyncio
from typing import Any

from glove.core.errors import AbortError


class CancellationToken:
    """A one-shot cancellation signal shared by every suspension point of a request.

    The token is created by the caller of ``Glove.process_request`` and passed
    down through the agent loop, the prompt machine, the executor and tool
    bodies. Firing it is observed at await points, never polled in a busy loop.

    Example:
        ```python
        token = CancellationToken()
        task = asyncio.create_task(glove.process_request("hi", token))
        token.cancel("user pressed stop")
        ```

    ``cancel`` must be called on the event loop thread; from another thread use
    ``loop.call_soon_threadsafe(token.cancel)``.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Any = None

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled}, reason={self._reason!r})"

    @property
    def cancelled(self) -> bool:
        """Whether the token has fired."""
        return self._event.is_set()

    @property
    def reason(self) -> Any:
        """Reason supplied to ``cancel``, if any."""
        return self._reason

    def cancel(self, reason: Any = None) -> None:
        """Fire the token. Subsequent calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        """Suspend until the token fires."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise AbortError if the token has fired."""
        if self._event.is_set():
            raise AbortError(self._reason)
