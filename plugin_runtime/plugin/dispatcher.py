"""
Capability Dispatcher.

Maps each inbound request to a hook invocation and exactly one reply.

Every request is answered:
- with the kind-specific response when the plugin provides the hook
- with empty_response when it does not, or the kind is unknown
- with error_response when anything raises while handling it

Hooks may be plain functions or coroutines.
"""

import inspect
from collections.abc import Mapping
from typing import Any, Protocol

from plugin_runtime.core.envelope import Envelope
from plugin_runtime.logging import get_logger
from plugin_runtime.plugin.context import Context, ContextFactory
from plugin_runtime.plugin.definition import PluginDefinition, strip_callbacks
from plugin_runtime.plugin.forms import (
    apply_form_input_defaults,
    migrate_template_function_select_options,
)
from plugin_runtime.plugin.manifest import PackageDescriptor
from plugin_runtime.plugin.outbox import Outbox


class ModuleHost(Protocol):
    """What the dispatcher needs from its session."""

    @property
    def definition(self) -> PluginDefinition: ...

    @property
    def descriptor(self) -> PackageDescriptor: ...

    def reload(self) -> PluginDefinition: ...


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _callable(entry: Mapping[str, Any] | None, key: str):
    if entry is None:
        return None
    hook = entry.get(key)
    return hook if callable(hook) else None


def _find_action(
    actions: tuple[Mapping[str, Any], ...] | list[Mapping[str, Any]] | None,
    payload: Mapping[str, Any],
) -> Mapping[str, Any] | None:
    """Select an action by position, or by name for older hosts."""
    if not actions:
        return None
    index = payload.get("index")
    if isinstance(index, int) and not isinstance(index, bool):
        if 0 <= index < len(actions):
            return actions[index]
        return None
    name = payload.get("name")
    if name is not None:
        for action in actions:
            if name in (action.get("name"), action.get("label")):
                return action
    return None


class CapabilityDispatcher:
    """
    Dispatch table for one plugin session.

    dispatch() never raises for hook failures; it always emits exactly one
    reply correlated to the request.
    """

    def __init__(self, host: ModuleHost, outbox: Outbox, contexts: ContextFactory):
        self._host = host
        self._outbox = outbox
        self._contexts = contexts
        self._logger = get_logger(
            "plugin_runtime.dispatcher",
            plugin_ref_id=outbox.plugin_ref_id,
            plugin_name=outbox.plugin_name,
        )

    async def dispatch(
        self, envelope: Envelope, definition: PluginDefinition | None = None
    ) -> str:
        """
        Handle one request and send its reply.

        Args:
            envelope: Inbound request
            definition: Definition installed when the request arrived
                (default: the host's current one)

        Returns:
            ID of the reply envelope
        """
        if definition is None:
            definition = self._host.definition
        ctx = self._contexts.build(envelope)

        try:
            reply = await self._handle(envelope, definition, ctx)
        except Exception as e:
            self._logger.error(
                "plugin_call_failed",
                type=envelope.kind,
                request_id=envelope.id,
                error=str(e),
                exc_info=True,
            )
            reply = {"type": "error_response", "error": str(e) or type(e).__name__}

        if reply is None:
            return self._outbox.send_empty(envelope.window_context, envelope.id)
        return self._outbox.send_payload(envelope.window_context, reply, envelope.id)

    async def _handle(
        self, envelope: Envelope, definition: PluginDefinition, ctx: Context
    ) -> dict[str, Any] | None:
        payload = envelope.payload
        plugin_ref_id = self._outbox.plugin_ref_id

        match envelope.kind:
            case "boot_request":
                descriptor = self._host.descriptor
                return {
                    "type": "boot_response",
                    "name": descriptor.display_name,
                    "version": descriptor.display_version,
                }

            case "terminate_request":
                return {"type": "terminate_response"}

            case "import_request":
                on_import = _callable(definition.importer, "on_import")
                if on_import is None:
                    return None
                result = await _resolve(on_import(ctx, {"text": payload.get("content", "")}))
                if result is None:
                    return None
                return {"type": "import_response", "resources": result.get("resources")}

            case "filter_request":
                on_filter = _callable(definition.filter, "on_filter")
                if on_filter is None:
                    return None
                content = payload.get("content", payload.get("payload", ""))
                result = await _resolve(
                    on_filter(
                        ctx,
                        {
                            "filter": payload.get("filter", ""),
                            "payload": content,
                            "mimeType": payload.get("mimeType"),
                        },
                    )
                )
                reply = {"type": "filter_response", "content": result.get("filtered")}
                if result.get("error"):
                    reply["error"] = result["error"]
                return reply

            case "get_http_request_actions_request":
                if definition.http_request_actions is None:
                    return None
                return {
                    "type": "get_http_request_actions_response",
                    "pluginRefId": plugin_ref_id,
                    "actions": [strip_callbacks(a) for a in definition.http_request_actions],
                }

            case "get_grpc_request_actions_request":
                if definition.grpc_request_actions is None:
                    return None
                return {
                    "type": "get_grpc_request_actions_response",
                    "pluginRefId": plugin_ref_id,
                    "actions": [strip_callbacks(a) for a in definition.grpc_request_actions],
                }

            case "get_template_functions_request":
                if definition.template_functions is None:
                    return None
                return {
                    "type": "get_template_functions_response",
                    "pluginRefId": plugin_ref_id,
                    "functions": [
                        strip_callbacks(migrate_template_function_select_options(fn))
                        for fn in definition.template_functions
                    ],
                }

            case "get_http_authentication_summary_request":
                auth = definition.authentication
                if auth is None:
                    return None
                return {
                    "type": "get_http_authentication_summary_response",
                    "name": auth.get("name"),
                    "label": auth.get("label"),
                    "shortLabel": auth.get("shortLabel"),
                }

            case "get_http_authentication_config_request":
                auth = definition.authentication
                if auth is None:
                    return None
                request = {k: v for k, v in payload.items() if k != "type"}
                return {
                    "type": "get_http_authentication_config_response",
                    "args": await self._resolve_dynamic_inputs(auth.get("args"), ctx, request),
                    "actions": [strip_callbacks(a) for a in auth.get("actions") or ()],
                    "pluginRefId": plugin_ref_id,
                }

            case "call_http_authentication_request":
                on_apply = _callable(definition.authentication, "on_apply")
                if on_apply is None:
                    return None
                request = {k: v for k, v in payload.items() if k != "type"}
                request["values"] = dict(request.get("values") or {})
                apply_form_input_defaults(definition.authentication.get("args"), request["values"])
                result = await _resolve(on_apply(ctx, request)) or {}
                return {
                    "type": "call_http_authentication_response",
                    "setHeaders": result.get("setHeaders") or [],
                }

            case "call_http_authentication_action_request":
                auth = definition.authentication
                actions = auth.get("actions") if auth is not None else None
                return await self._select_action(actions, payload, ctx)

            case "call_http_request_action_request":
                return await self._select_action(definition.http_request_actions, payload, ctx)

            case "call_grpc_request_action_request":
                return await self._select_action(definition.grpc_request_actions, payload, ctx)

            case "call_template_function_request":
                name = payload.get("name")
                fn = next(
                    (f for f in definition.template_functions or () if f.get("name") == name),
                    None,
                )
                on_render = _callable(fn, "on_render")
                if on_render is None:
                    return None
                args = dict(payload.get("args") or {})
                args["values"] = dict(args.get("values") or {})
                apply_form_input_defaults(fn.get("args"), args["values"])
                result = await _resolve(on_render(ctx, args))
                return {"type": "call_template_function_response", "value": result}

            case "reload_request":
                self._host.reload()
                return None

            case _:
                # Unknown kinds still get a reply so the caller never blocks
                return None

    async def _select_action(
        self,
        actions: tuple[Mapping[str, Any], ...] | list[Mapping[str, Any]] | None,
        payload: Mapping[str, Any],
        ctx: Context,
    ) -> None:
        on_select = _callable(_find_action(actions, payload), "on_select")
        if on_select is not None:
            await _resolve(on_select(ctx, payload.get("args")))
        return None

    async def _resolve_dynamic_inputs(
        self,
        inputs: list[Mapping[str, Any]] | tuple[Mapping[str, Any], ...] | None,
        ctx: Context,
        request: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Merge each input's dynamic attributes over its static ones, in order."""
        resolved = []
        for form_input in inputs or ():
            dynamic = form_input.get("dynamic")
            attrs: dict[str, Any] = {}
            if callable(dynamic):
                attrs = dict(await _resolve(dynamic(ctx, request)) or {})
            merged = {**strip_callbacks(form_input), **attrs}
            if "inputs" in form_input:
                merged["inputs"] = await self._resolve_dynamic_inputs(
                    form_input.get("inputs"), ctx, request
                )
            resolved.append(merged)
        return resolved
