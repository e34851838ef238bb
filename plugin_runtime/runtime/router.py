"""
Runtime Router.

Owns the registry of plugin reference IDs to sessions and routes envelopes
between the transport and the sessions.
"""

from collections.abc import Callable
from typing import Any

from plugin_runtime.core.envelope import Envelope
from plugin_runtime.core.ids import DEFAULT_ID_LENGTH, gen_id
from plugin_runtime.logging import get_logger
from plugin_runtime.plugin.loader import DEFAULT_DESCRIPTOR_PATH, DEFAULT_ENTRY_PATH
from plugin_runtime.plugin.session import PluginSession

logger = get_logger("plugin_runtime.router")


class RuntimeRouter:
    """
    Routes envelopes to plugin sessions.

    Every envelope a session emits is serialized and passed to ``send``
    unmodified.
    """

    def __init__(
        self,
        send: Callable[[str], Any],
        reply_timeout: float | None = None,
        id_length: int = DEFAULT_ID_LENGTH,
        entry_path: str = DEFAULT_ENTRY_PATH,
        descriptor_path: str = DEFAULT_DESCRIPTOR_PATH,
    ):
        """
        Initialize RuntimeRouter.

        Args:
            send: Called with each serialized outbound envelope
            reply_timeout: Passed to every session
            id_length: Passed to every session
            entry_path: Plugin entry file, relative to the plugin directory
            descriptor_path: Plugin descriptor, relative to the plugin directory
        """
        self._send = send
        self._session_options = {
            "reply_timeout": reply_timeout,
            "id_length": id_length,
            "entry_path": entry_path,
            "descriptor_path": descriptor_path,
        }
        self._sessions: dict[str, PluginSession] = {}

    @property
    def sessions(self) -> dict[str, PluginSession]:
        return dict(self._sessions)

    def get_session(self, plugin_ref_id: str) -> PluginSession | None:
        return self._sessions.get(plugin_ref_id)

    def handle_incoming(self, message: str | bytes) -> None:
        """
        Decode and route a raw message from the transport.

        Raises:
            EnvelopeError: If the message is not a valid envelope
        """
        self.route(Envelope.from_json(message))

    def route(self, envelope: Envelope) -> None:
        """Route one inbound envelope."""
        if envelope.kind == "boot_request":
            if not self._boot(envelope):
                return

        session = self._sessions.get(envelope.plugin_ref_id)
        if session is None:
            logger.warning(
                "unknown_plugin_ref_id",
                plugin_ref_id=envelope.plugin_ref_id,
                type=envelope.kind,
            )
            return

        if envelope.kind == "terminate_request":
            # Forward first so the session can acknowledge
            session.post_message(envelope)
            session.terminate()
            del self._sessions[envelope.plugin_ref_id]
            logger.info("plugin_session_removed", plugin_ref_id=envelope.plugin_ref_id)
            return

        session.post_message(envelope)

    def _boot(self, envelope: Envelope) -> bool:
        payload = envelope.payload
        plugin_ref_id = envelope.plugin_ref_id

        previous = self._sessions.pop(plugin_ref_id, None)
        if previous is not None:
            logger.info("plugin_session_replaced", plugin_ref_id=plugin_ref_id)
            previous.terminate()

        try:
            plugin_dir = payload["dir"]
            session = PluginSession(
                plugin_ref_id,
                plugin_dir,
                watch=bool(payload.get("watch", False)),
                **self._session_options,
            )
        except Exception as e:
            logger.error(
                "plugin_boot_failed",
                plugin_ref_id=plugin_ref_id,
                dir=payload.get("dir"),
                error=str(e),
            )
            self._send_error(envelope, f"Failed to boot plugin: {e}")
            return False

        session.outbound.listen(self._forward_outbound)
        self._sessions[plugin_ref_id] = session
        return True

    def _forward_outbound(self, envelope: Envelope) -> None:
        self._send(envelope.to_json())

    def _send_error(self, request: Envelope, message: str) -> None:
        reply = Envelope(
            id=gen_id(self._session_options["id_length"]),
            reply_id=request.id,
            plugin_ref_id=request.plugin_ref_id,
            plugin_name=request.plugin_name,
            window_context=request.window_context,
            payload={"type": "error_response", "error": message},
        )
        self._send(reply.to_json())

    def shutdown(self) -> None:
        """Terminate every session."""
        for plugin_ref_id, session in list(self._sessions.items()):
            session.terminate()
            del self._sessions[plugin_ref_id]
