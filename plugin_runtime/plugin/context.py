"""
Capability Context.

A Context is built for every inbound envelope that triggers a hook. Each of its
methods performs one outbound call back to the app through the session's
outbound channel and awaits the correlated reply on the inbound channel.
window.open_url() instead subscribes to a stream of window events.

Example (inside a plugin hook):
    async def on_render(ctx, args):
        token = await ctx.store.get("token")
        if token is None:
            token = await ctx.prompt.text(id="token", title="Token", label="Token")
            await ctx.store.set("token", token)
        return token
"""

import asyncio
import inspect
import json
import random
from collections.abc import Callable
from typing import Any

from plugin_runtime.core.envelope import Envelope, WindowContext
from plugin_runtime.core.event_channel import EventChannel
from plugin_runtime.logging import get_logger
from plugin_runtime.plugin.outbox import Outbox
from plugin_runtime.plugin.pending import PendingCalls

logger = get_logger("plugin_runtime.context")

# Strong references to callback tasks scheduled from window events
_background_tasks: set[asyncio.Task] = set()


def _invoke_callback(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    try:
        result = callback(*args)
    except Exception as e:
        logger.error("window_callback_failed", error=str(e))
        return
    if inspect.isawaitable(result):
        task = asyncio.ensure_future(result)
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)


class _Caller:
    """Performs correlated calls scoped to one window context."""

    def __init__(
        self,
        outbox: Outbox,
        inbound: EventChannel,
        pending: PendingCalls,
        window_context: WindowContext,
    ):
        self.outbox = outbox
        self.inbound = inbound
        self.pending = pending
        self.window_context = window_context

    async def call(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a request and await its reply payload (without "type")."""
        envelope = self.outbox.build(self.window_context, payload)
        # Register before sending so a fast reply is never missed
        future = self.pending.register(envelope.id)
        self.outbox.send(envelope)
        return await self.pending.wait(envelope.id, future)

    def send(self, payload: dict[str, Any]) -> str:
        """Send without waiting for a reply."""
        return self.outbox.send_payload(self.window_context, payload)

    def subscribe(
        self, payload: dict[str, Any], on_event: Callable[[dict[str, Any]], bool | None]
    ) -> Callable[[], None]:
        """
        Send a request and deliver every envelope replying to it to on_event.

        on_event may return True to end the subscription.

        Returns:
            A function that ends the subscription
        """
        envelope = self.outbox.build(self.window_context, payload)

        def listener(event: Envelope) -> None:
            if event.reply_id == envelope.id and on_event(event.payload):
                self.inbound.unlisten(listener)

        def unsubscribe() -> None:
            self.inbound.unlisten(listener)

        self.inbound.listen(listener)
        self.outbox.send(envelope)
        return unsubscribe


class Clipboard:
    def __init__(self, caller: _Caller):
        self._caller = caller

    async def copy_text(self, text: str) -> None:
        await self._caller.call({"type": "copy_text_request", "text": text})


class Toast:
    def __init__(self, caller: _Caller):
        self._caller = caller

    async def show(self, **args: Any) -> None:
        """Show a toast, e.g. show(message="Copied", color="success")."""
        await self._caller.call({"type": "show_toast_request", **args})


class Prompt:
    def __init__(self, caller: _Caller):
        self._caller = caller

    async def text(self, **args: Any) -> str | None:
        """Ask the user for a line of text; returns None if dismissed."""
        reply = await self._caller.call({"type": "prompt_text_request", **args})
        return reply.get("value")


class HttpRequests:
    def __init__(self, caller: _Caller):
        self._caller = caller

    async def send(self, **args: Any) -> Any:
        reply = await self._caller.call({"type": "send_http_request_request", **args})
        return reply.get("httpResponse")

    async def get_by_id(self, **args: Any) -> Any:
        reply = await self._caller.call({"type": "get_http_request_by_id_request", **args})
        return reply.get("httpRequest")

    async def render(self, **args: Any) -> Any:
        reply = await self._caller.call({"type": "render_http_request_request", **args})
        return reply.get("httpRequest")


class HttpResponses:
    def __init__(self, caller: _Caller):
        self._caller = caller

    async def find(self, **args: Any) -> list[Any]:
        reply = await self._caller.call({"type": "find_http_responses_request", **args})
        return reply.get("httpResponses") or []


class Cookies:
    def __init__(self, caller: _Caller):
        self._caller = caller

    async def get_value(self, **args: Any) -> str | None:
        reply = await self._caller.call({"type": "get_cookie_value_request", **args})
        return reply.get("value")

    async def list_names(self) -> list[str]:
        reply = await self._caller.call({"type": "list_cookie_names_request"})
        return reply.get("names") or []


class Templates:
    def __init__(self, caller: _Caller):
        self._caller = caller

    async def render(self, **args: Any) -> Any:
        """
        Render a value with the app's template engine.

        Nested values (e.g. objects) are rendered recursively by the app.
        """
        reply = await self._caller.call({"type": "template_render_request", **args})
        return reply.get("data")


class Store:
    """Plugin-scoped key-value store. Values are stored as JSON text."""

    def __init__(self, caller: _Caller):
        self._caller = caller

    async def get(self, key: str) -> Any:
        reply = await self._caller.call({"type": "get_key_value_request", "key": key})
        value = reply.get("value")
        return json.loads(value) if value else None

    async def set(self, key: str, value: Any) -> None:
        await self._caller.call(
            {"type": "set_key_value_request", "key": key, "value": json.dumps(value)}
        )

    async def delete(self, key: str) -> bool:
        reply = await self._caller.call({"type": "delete_key_value_request", "key": key})
        return bool(reply.get("deleted"))


class WindowHandle:
    """Handle to a window opened by a plugin."""

    def __init__(self, caller: _Caller, label: str, unsubscribe: Callable[[], None]):
        self._caller = caller
        self.label = label
        self._unsubscribe = unsubscribe
        self.closed = False

    def close(self) -> None:
        """Ask the app to close the window and stop listening for its events."""
        if self.closed:
            return
        self.closed = True
        self._unsubscribe()
        self._caller.send({"type": "close_window_request", "label": self.label})


class Window:
    def __init__(self, caller: _Caller):
        self._caller = caller

    async def open_url(
        self,
        url: str,
        label: str | None = None,
        on_navigate: Callable[[dict[str, Any]], Any] | None = None,
        on_close: Callable[[], Any] | None = None,
        **args: Any,
    ) -> WindowHandle:
        """
        Open a window and stream its navigate/close events to the callbacks.

        Args:
            url: URL to load
            label: Window label (random if omitted)
            on_navigate: Called with each window_navigate_event payload
            on_close: Called once when the window is closed
        """
        label = label or f"{random.random()}"
        payload = {"type": "open_window_request", "url": url, "label": label, **args}
        handle: WindowHandle | None = None

        def on_event(event: dict[str, Any]) -> bool:
            kind = event.get("type")
            if kind == "window_navigate_event":
                _invoke_callback(on_navigate, event)
            elif kind == "window_close_event":
                if handle is not None:
                    handle.closed = True
                _invoke_callback(on_close)
                return True
            return False

        unsubscribe = self._caller.subscribe(payload, on_event)
        handle = WindowHandle(self._caller, label, unsubscribe)
        return handle


class Context:
    """
    Capabilities available to a hook.

    Attributes:
        clipboard, toast, prompt, store, window, cookies,
        http_request, http_response, templates
    """

    def __init__(self, caller: _Caller, envelope: Envelope):
        self.envelope = envelope
        self.window_context = envelope.window_context
        self.clipboard = Clipboard(caller)
        self.toast = Toast(caller)
        self.prompt = Prompt(caller)
        self.store = Store(caller)
        self.window = Window(caller)
        self.cookies = Cookies(caller)
        self.http_request = HttpRequests(caller)
        self.http_response = HttpResponses(caller)
        self.templates = Templates(caller)


class ContextFactory:
    """Builds a Context per inbound envelope for one session."""

    def __init__(self, outbox: Outbox, inbound: EventChannel, pending: PendingCalls):
        self.outbox = outbox
        self.inbound = inbound
        self.pending = pending

    def build(self, envelope: Envelope) -> Context:
        caller = _Caller(self.outbox, self.inbound, self.pending, envelope.window_context)
        return Context(caller, envelope)
