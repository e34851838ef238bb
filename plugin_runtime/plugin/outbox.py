"""Outbound envelope construction for one plugin session."""

from collections.abc import Callable
from typing import Any

from plugin_runtime.core.envelope import Envelope, WindowContext
from plugin_runtime.core.event_channel import EventChannel
from plugin_runtime.core.ids import gen_id
from plugin_runtime.logging import get_logger


class Outbox:
    """
    Builds envelopes stamped with the session's identity and emits them on
    the outbound channel.
    """

    def __init__(
        self,
        plugin_ref_id: str,
        plugin_name: str,
        outbound: EventChannel,
        id_factory: Callable[[], str] = gen_id,
    ):
        self.plugin_ref_id = plugin_ref_id
        self.plugin_name = plugin_name
        self.outbound = outbound
        self.new_id = id_factory
        self._logger = get_logger(
            "plugin_runtime.outbox", plugin_ref_id=plugin_ref_id, plugin_name=plugin_name
        )

    def build(
        self,
        window_context: WindowContext,
        payload: dict[str, Any],
        reply_id: str | None = None,
    ) -> Envelope:
        return Envelope(
            id=self.new_id(),
            reply_id=reply_id,
            plugin_ref_id=self.plugin_ref_id,
            plugin_name=self.plugin_name,
            window_context=window_context,
            payload=payload,
        )

    def send(self, envelope: Envelope) -> str:
        if envelope.kind != "empty_response":
            self._logger.debug("sending_event", id=envelope.id, type=envelope.kind)
        self.outbound.emit(envelope)
        return envelope.id

    def send_payload(
        self,
        window_context: WindowContext,
        payload: dict[str, Any],
        reply_id: str | None = None,
    ) -> str:
        """Build and emit an envelope; returns its id."""
        return self.send(self.build(window_context, payload, reply_id))

    def send_empty(self, window_context: WindowContext, reply_id: str | None = None) -> str:
        return self.send_payload(window_context, {"type": "empty_response"}, reply_id)
