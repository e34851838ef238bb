"""
Plugin Runtime - host-side process that loads plugins and mediates their
communication with the app through a correlation-based message protocol.

This is the main package that exports the public API.
"""

__version__ = "0.1.0"

from plugin_runtime.core.envelope import Envelope, WindowContext
from plugin_runtime.core.event_channel import EventChannel
from plugin_runtime.plugin.context import Context
from plugin_runtime.plugin.definition import PluginDefinition
from plugin_runtime.plugin.session import PluginSession, PluginState
from plugin_runtime.runtime.router import RuntimeRouter

__all__ = [
    "__version__",
    "Context",
    "Envelope",
    "EventChannel",
    "PluginDefinition",
    "PluginSession",
    "PluginState",
    "RuntimeRouter",
    "WindowContext",
]
