"""
Envelope - the unit of exchange between host and runtime.

Wire format (JSON):
    {
        "id": str,
        "replyId": str | null,
        "pluginRefId": str,
        "pluginName": str,
        "windowContext": {"type": "none"} | {"type": "window", ...},
        "payload": {"type": <kind>, ...fields}
    }
"""

import json
from dataclasses import dataclass, field
from typing import Any


class EnvelopeError(Exception):
    """Raised when an envelope cannot be decoded."""

    pass


@dataclass(frozen=True)
class WindowContext:
    """
    Scoping tag identifying which UI surface (or none) originated a call.

    Attributes:
        type: "none" or "window"
        extra: Additional keys of the window variant, kept verbatim
    """

    type: str = "none"
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def none(cls) -> "WindowContext":
        return cls(type="none")

    @classmethod
    def window(cls, label: str, **extra: Any) -> "WindowContext":
        return cls(type="window", extra={"label": label, **extra})

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "WindowContext":
        if not data:
            return cls.none()
        if not isinstance(data, dict):
            raise EnvelopeError(f"windowContext must be an object, got {data!r}")
        kind = data.get("type", "none")
        if kind not in ("none", "window"):
            raise EnvelopeError(f"Unknown windowContext type: {kind!r}")
        extra = {k: v for k, v in data.items() if k != "type"}
        return cls(type=kind, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **self.extra}


@dataclass(frozen=True)
class Envelope:
    """
    A routed message.

    Attributes:
        id: Unique envelope ID
        reply_id: ID of the request this envelope answers (None for requests)
        plugin_ref_id: Target plugin session
        plugin_name: Name of the plugin (directory basename)
        window_context: Originating UI surface
        payload: Typed payload; payload["type"] is the kind
    """

    id: str
    reply_id: str | None
    plugin_ref_id: str
    plugin_name: str
    window_context: WindowContext
    payload: dict[str, Any]

    @property
    def kind(self) -> str:
        """Payload kind, or empty string when the payload is untyped."""
        return str(self.payload.get("type", ""))

    @property
    def is_reply(self) -> bool:
        return self.reply_id is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to wire format."""
        return {
            "id": self.id,
            "replyId": self.reply_id,
            "pluginRefId": self.plugin_ref_id,
            "pluginName": self.plugin_name,
            "windowContext": self.window_context.to_dict(),
            "payload": self.payload,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Envelope":
        """
        Parse from wire format.

        Raises:
            EnvelopeError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise EnvelopeError(f"Envelope must be an object, got {type(data).__name__}")

        for required in ("id", "pluginRefId", "payload"):
            if required not in data:
                raise EnvelopeError(f"Envelope missing required field: {required}")

        payload = data["payload"]
        if not isinstance(payload, dict) or "type" not in payload:
            raise EnvelopeError("Envelope payload must be an object with a 'type'")

        return cls(
            id=str(data["id"]),
            reply_id=data.get("replyId"),
            plugin_ref_id=str(data["pluginRefId"]),
            plugin_name=str(data.get("pluginName", "")),
            window_context=WindowContext.from_dict(data.get("windowContext")),
            payload=payload,
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> "Envelope":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise EnvelopeError(f"Failed to parse envelope JSON: {e}") from e
        return cls.from_dict(data)
