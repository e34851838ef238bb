"""
Plugin Definition - the hook groups a loaded plugin exposes.

A plugin entry file defines a module-level ``plugin`` mapping, e.g.:

    plugin = {
        "template_functions": [
            {
                "name": "upper",
                "args": [{"type": "text", "name": "value", "defaultValue": ""}],
                "on_render": render_upper,
            },
        ],
    }

Every group is optional. A PluginDefinition is immutable; reloading a plugin
builds a new one and swaps the reference.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import ModuleType
from typing import Any

HOOK_GROUPS = (
    "importer",
    "filter",
    "authentication",
    "http_request_actions",
    "grpc_request_actions",
    "template_functions",
)

# Keys holding plugin callables; never sent over the wire
CALLBACK_KEYS = frozenset(
    {"on_import", "on_filter", "on_apply", "on_select", "on_render", "dynamic"}
)


class DefinitionError(Exception):
    """Raised when a plugin module exposes a malformed definition."""

    pass


@dataclass(frozen=True)
class PluginDefinition:
    """
    Sparse record of optional hook groups.

    Attributes:
        importer: {name, description?, on_import}
        filter: {name, description?, on_filter}
        authentication: {name, label, shortLabel, args, on_apply, actions?}
        http_request_actions: Actions shown on HTTP requests
        grpc_request_actions: Actions shown on gRPC requests
        template_functions: Functions callable from templates
    """

    importer: Mapping[str, Any] | None = None
    filter: Mapping[str, Any] | None = None
    authentication: Mapping[str, Any] | None = None
    http_request_actions: tuple[Mapping[str, Any], ...] | None = None
    grpc_request_actions: tuple[Mapping[str, Any], ...] | None = None
    template_functions: tuple[Mapping[str, Any], ...] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PluginDefinition":
        """
        Build a definition from a plugin mapping.

        Raises:
            DefinitionError: If a group has the wrong shape
        """
        if not isinstance(data, Mapping):
            raise DefinitionError(
                f"Plugin definition must be a mapping, got {type(data).__name__}"
            )

        unknown = set(data) - set(HOOK_GROUPS)
        if unknown:
            raise DefinitionError(f"Unknown hook groups: {sorted(unknown)}")

        kwargs: dict[str, Any] = {}
        for group in ("importer", "filter", "authentication"):
            value = data.get(group)
            if value is not None and not isinstance(value, Mapping):
                raise DefinitionError(f"'{group}' must be a mapping")
            kwargs[group] = value

        for group in ("http_request_actions", "grpc_request_actions", "template_functions"):
            value = data.get(group)
            if value is None:
                kwargs[group] = None
                continue
            if not isinstance(value, (list, tuple)):
                raise DefinitionError(f"'{group}' must be a list")
            for entry in value:
                if not isinstance(entry, Mapping):
                    raise DefinitionError(f"Entries of '{group}' must be mappings")
            kwargs[group] = tuple(value)

        return cls(**kwargs)

    @classmethod
    def from_module(cls, module: ModuleType) -> "PluginDefinition":
        """
        Extract the definition from a loaded entry module.

        A module without a ``plugin`` attribute yields an empty definition.
        """
        data = getattr(module, "plugin", None)
        if data is None:
            return cls()
        if isinstance(data, PluginDefinition):
            return data
        return cls.from_mapping(data)

    def groups(self) -> list[str]:
        """Names of the hook groups this plugin provides."""
        return [group for group in HOOK_GROUPS if getattr(self, group) is not None]


def strip_callbacks(entry: Mapping[str, Any]) -> dict[str, Any]:
    """Copy an entry without its callback fields, recursing into form inputs."""
    stripped: dict[str, Any] = {}
    for key, value in entry.items():
        if key in CALLBACK_KEYS:
            continue
        if key in ("args", "inputs") and isinstance(value, (list, tuple)):
            value = [
                strip_callbacks(item) if isinstance(item, Mapping) else item
                for item in value
            ]
        stripped[key] = value
    return stripped
