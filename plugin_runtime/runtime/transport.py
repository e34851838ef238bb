"""
WebSocket transport.

Connects to the host app at ws://{host}:{port}. Outbound messages are queued
by send() (callable from synchronous code) and written by a writer task.
Reconnection is the host's concern: when the connection closes, run()
returns.
"""

import asyncio
import contextlib
from collections.abc import Callable
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from plugin_runtime.logging import get_logger

logger = get_logger("plugin_runtime.transport")


class TransportError(Exception):
    """Base exception for transport errors."""

    pass


class WebSocketTransport:
    """Duplex JSON-text connection to the host app."""

    def __init__(self, host: str, port: int):
        if not 0 < port < 65536:
            raise TransportError(f"Invalid port: {port}")
        self.url = f"ws://{host}:{port}"
        self._queue: asyncio.Queue[str] = asyncio.Queue()

    def send(self, message: str) -> None:
        """Queue a message for the writer task."""
        self._queue.put_nowait(message)

    async def _write(self, connection: ClientConnection) -> None:
        while True:
            message = await self._queue.get()
            try:
                await connection.send(message)
            except ConnectionClosed:
                logger.warning("send_after_close", size=len(message))
                return

    async def run(self, on_message: Callable[[str | bytes], Any]) -> None:
        """
        Connect and deliver every received message to on_message until the
        connection closes.

        Raises:
            TransportError: If the connection cannot be established
        """
        try:
            connection = await connect(self.url)
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportError(f"Failed to connect to {self.url}: {e}") from e

        logger.info("runtime_connected", url=self.url)
        writer = asyncio.create_task(self._write(connection))

        try:
            async for message in connection:
                try:
                    on_message(message)
                except Exception as e:
                    logger.error("incoming_event_failed", error=str(e), exc_info=True)
        except ConnectionClosed as e:
            logger.info("runtime_disconnected", code=e.rcvd.code if e.rcvd else None)
        finally:
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer
            await connection.close()
            logger.info("websocket_closed", url=self.url)
