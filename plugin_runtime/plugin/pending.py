"""
Pending call table.

Maps correlation IDs to futures awaiting a reply envelope. The table listens
on a session's inbound channel and resolves the matching future when a reply
arrives. Each future resolves at most once.
"""

import asyncio
from typing import Any

from plugin_runtime.core.envelope import Envelope
from plugin_runtime.core.event_channel import EventChannel


class PendingCallError(Exception):
    """Base exception for correlated call errors."""

    pass


class ReplyTimeoutError(PendingCallError):
    """Raised when a reply does not arrive in time."""

    pass


class PendingCallCancelled(PendingCallError):
    """Raised in waiters when their session is torn down."""

    pass


class PendingCalls:
    """
    Correlation ID -> future table.

    Usage:
        future = pending.register(request_id)   # before sending
        outbound.emit(request)
        reply = await pending.wait(request_id, future)
    """

    def __init__(self, inbound: EventChannel, timeout: float | None = None):
        """
        Initialize PendingCalls.

        Args:
            inbound: Channel carrying replies from the app
            timeout: Seconds to wait for a reply; None or 0 waits forever
        """
        self.timeout = timeout or None
        self._inbound = inbound
        self._futures: dict[str, asyncio.Future] = {}
        self._inbound.listen(self._on_inbound)

    def __len__(self) -> int:
        return len(self._futures)

    def __contains__(self, request_id: str) -> bool:
        return request_id in self._futures

    def register(self, request_id: str) -> asyncio.Future:
        """
        Create the future for a request. Must be called before the request is sent.
        """
        if request_id in self._futures:
            raise PendingCallError(f"Duplicate correlation id: {request_id}")
        future = asyncio.get_running_loop().create_future()
        self._futures[request_id] = future
        return future

    async def wait(self, request_id: str, future: asyncio.Future) -> dict[str, Any]:
        """
        Wait for the reply to a registered request.

        Returns:
            The reply payload without its "type" key

        Raises:
            ReplyTimeoutError: If the timeout elapses first
            PendingCallCancelled: If the table is cancelled while waiting
        """
        try:
            if self.timeout is None:
                return await future
            return await asyncio.wait_for(asyncio.shield(future), timeout=self.timeout)
        except TimeoutError:
            raise ReplyTimeoutError(
                f"No reply to {request_id} after {self.timeout}s"
            ) from None
        finally:
            self._futures.pop(request_id, None)

    def _on_inbound(self, envelope: Envelope) -> None:
        reply_id = envelope.reply_id
        if reply_id is None:
            return
        future = self._futures.pop(reply_id, None)
        if future is None or future.done():
            return
        payload = {k: v for k, v in envelope.payload.items() if k != "type"}
        future.set_result(payload)

    def cancel_all(self, reason: str = "Session terminated") -> None:
        """Fail every waiting call and stop listening for replies."""
        for future in self._futures.values():
            if not future.done():
                future.set_exception(PendingCallCancelled(reason))
        self._futures.clear()
        self._inbound.unlisten(self._on_inbound)
