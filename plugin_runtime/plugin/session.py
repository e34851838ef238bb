"""
Plugin Session.

One running plugin: a loader, an inbound/outbound channel pair, a pending
call table and a dispatcher.

State machine:
    UNINITIALIZED -> LOADING -> READY <-> RELOADING
    LOADING/READY/RELOADING -> TERMINATED (final)
"""

import asyncio
import os
from enum import Enum
from pathlib import Path

from plugin_runtime.core.envelope import Envelope, WindowContext
from plugin_runtime.core.event_channel import EventChannel
from plugin_runtime.core.ids import DEFAULT_ID_LENGTH, IdGenerator
from plugin_runtime.logging import get_logger
from plugin_runtime.plugin.context import ContextFactory
from plugin_runtime.plugin.definition import PluginDefinition
from plugin_runtime.plugin.dispatcher import CapabilityDispatcher
from plugin_runtime.plugin.loader import (
    DEFAULT_DESCRIPTOR_PATH,
    DEFAULT_ENTRY_PATH,
    ModuleLoader,
)
from plugin_runtime.plugin.manifest import PackageDescriptor
from plugin_runtime.plugin.outbox import Outbox
from plugin_runtime.plugin.pending import PendingCalls


class SessionError(Exception):
    """Base exception for session-related errors."""

    pass


class PluginState(Enum):
    """Plugin session state enumeration."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    RELOADING = "reloading"
    TERMINATED = "terminated"


class PluginSession:
    """
    A running plugin.

    The app writes requests with post_message(); replies and outbound calls
    appear on the ``outbound`` channel.
    """

    def __init__(
        self,
        plugin_ref_id: str,
        plugin_dir: Path | str,
        watch: bool = False,
        reply_timeout: float | None = None,
        id_length: int = DEFAULT_ID_LENGTH,
        entry_path: str = DEFAULT_ENTRY_PATH,
        descriptor_path: str = DEFAULT_DESCRIPTOR_PATH,
    ):
        """
        Initialize PluginSession and load the plugin.

        Args:
            plugin_ref_id: Reference ID assigned by the app
            plugin_dir: Plugin directory
            watch: Reload when the entry file or descriptor changes
            reply_timeout: Seconds to wait for replies to outbound calls
            id_length: Length of generated correlation IDs
            entry_path: Entry file path relative to plugin_dir
            descriptor_path: Descriptor path relative to plugin_dir

        Raises:
            ManifestError: If the descriptor cannot be read or parsed
            LoaderError: If the entry file cannot be imported
        """
        self.state = PluginState.UNINITIALIZED
        self.plugin_ref_id = plugin_ref_id
        self.plugin_dir = Path(plugin_dir)
        self.plugin_name = os.path.basename(os.path.normpath(plugin_dir))
        self.watch = watch

        self.inbound = EventChannel(f"{plugin_ref_id}.inbound")
        self.outbound = EventChannel(f"{plugin_ref_id}.outbound")

        self._logger = get_logger(
            "plugin_runtime.session", plugin_ref_id=plugin_ref_id, plugin_name=self.plugin_name
        )
        self._tasks: set[asyncio.Task] = set()

        self.state = PluginState.LOADING
        self.loader = ModuleLoader(self.plugin_dir, entry_path, descriptor_path)
        self._definition = self.loader.load()

        self.outbox = Outbox(
            plugin_ref_id, self.plugin_name, self.outbound, IdGenerator(id_length)
        )
        self.pending = PendingCalls(self.inbound, timeout=reply_timeout)
        self.contexts = ContextFactory(self.outbox, self.inbound, self.pending)
        self.dispatcher = CapabilityDispatcher(self, self.outbox, self.contexts)

        self.inbound.listen(self._on_inbound)
        if watch:
            self.loader.watch(self._on_file_change)

        self.state = PluginState.READY
        self._logger.info(
            "plugin_loaded",
            name=self.descriptor.display_name,
            version=self.descriptor.display_version,
            hooks=self._definition.groups(),
            watch=watch,
        )

    @property
    def definition(self) -> PluginDefinition:
        """The currently installed plugin definition."""
        return self._definition

    @property
    def descriptor(self) -> PackageDescriptor:
        return self.loader.descriptor

    @property
    def is_terminated(self) -> bool:
        return self.state is PluginState.TERMINATED

    def post_message(self, envelope: Envelope) -> None:
        """Deliver an envelope from the app to this plugin."""
        self.inbound.emit(envelope)

    def _on_inbound(self, envelope: Envelope) -> None:
        # Replies belong to pending calls and window subscriptions
        if envelope.is_reply:
            return
        # Captured now: a reload or terminate later in this tick must not
        # change what this request runs against
        task = asyncio.ensure_future(self.dispatcher.dispatch(envelope, self._definition))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def reload(self) -> PluginDefinition:
        """
        Reload the plugin and install the new definition.

        Raises:
            SessionError: If the session is terminated
            ManifestError, LoaderError: If loading fails; the old definition stays
        """
        if self.is_terminated:
            raise SessionError(f"Plugin session {self.plugin_ref_id} is terminated")

        self.state = PluginState.RELOADING
        try:
            definition = self.loader.load()
        finally:
            if not self.is_terminated:
                self.state = PluginState.READY

        self._install(definition)
        self._logger.info("plugin_reloaded", hooks=definition.groups())
        return definition

    def _install(self, definition: PluginDefinition) -> None:
        # Reference swap; the previous definition is never mutated
        self._definition = definition

    def _on_file_change(self, definition: PluginDefinition) -> None:
        if self.is_terminated:
            return
        self.state = PluginState.RELOADING
        self._install(definition)
        self.state = PluginState.READY
        self.outbox.send_payload(WindowContext.none(), {"type": "reload_response"}, None)

    def terminate(self) -> None:
        """
        Tear down the session: stop watching, cancel pending calls and drop
        the module. Requests already dispatched still send their replies.
        """
        if self.is_terminated:
            return
        self.state = PluginState.TERMINATED
        self.inbound.unlisten(self._on_inbound)
        self.loader.unwatch()
        self.loader.unload()
        self.pending.cancel_all()
        self._definition = PluginDefinition()
        self._logger.info("plugin_terminated")

    async def drain(self) -> None:
        """Wait for every in-flight dispatch to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
