"""
Plugin Runtime process wiring.

- router: plugin reference ID -> session registry
- transport: websocket connection to the host app
"""

from plugin_runtime.config import RuntimeConfig
from plugin_runtime.logging import get_logger
from plugin_runtime.runtime.router import RuntimeRouter
from plugin_runtime.runtime.transport import WebSocketTransport

logger = get_logger("plugin_runtime.runtime")


async def serve(config: RuntimeConfig) -> None:
    """
    Connect to the host app and route envelopes until the connection closes.

    Raises:
        TransportError: If the connection cannot be established
    """
    transport = WebSocketTransport(config.host, config.port)
    router = RuntimeRouter(
        transport.send,
        reply_timeout=config.reply_timeout or None,
        id_length=config.id_length,
        entry_path=config.entry_path,
        descriptor_path=config.descriptor_path,
    )
    try:
        await transport.run(router.handle_incoming)
    finally:
        router.shutdown()
        logger.info("runtime_stopped")


__all__ = ["RuntimeRouter", "WebSocketTransport", "serve"]
