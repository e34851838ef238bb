"""
Dynamic Plugin Loader.

This module loads a plugin's compiled entry file and package descriptor.

Key features:
- importlib integration; every load() executes the entry file fresh
- Per-instance state (no process-wide module cache)
- Optional watchdog-based watching of the entry file and descriptor
- Modification-time debouncing of spurious change notifications
"""

import asyncio
import importlib.machinery
import importlib.util
import os
import re
import sys
from collections.abc import Callable
from pathlib import Path
from types import ModuleType

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from plugin_runtime.logging import get_logger
from plugin_runtime.plugin.definition import PluginDefinition
from plugin_runtime.plugin.manifest import PackageDescriptor, parse_descriptor

DEFAULT_ENTRY_PATH = "build/index.py"
DEFAULT_DESCRIPTOR_PATH = "package.json"

logger = get_logger("plugin_runtime.loader")


class LoaderError(Exception):
    """Base exception for loader-related errors."""

    pass


class _FreshSourceLoader(importlib.machinery.SourceFileLoader):
    """Compiles from source on every load; bytecode caches are never consulted."""

    def get_code(self, fullname):
        return self.source_to_code(self.get_data(self.path), self.path)


class _ChangeHandler(FileSystemEventHandler):
    """Forwards watchdog events for watched paths onto the event loop."""

    def __init__(self, loader: "ModuleLoader"):
        self._loader = loader

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("modified", "created", "moved"):
            return
        candidates = [event.src_path, getattr(event, "dest_path", "")]
        for candidate in candidates:
            if not candidate:
                continue
            path = os.path.abspath(os.fsdecode(candidate))
            if path in self._loader.watched_paths:
                self._loader._notify_threadsafe(path)


class ModuleLoader:
    """
    Loads and reloads one plugin directory.

    The descriptor is read at construction time; a missing or malformed
    descriptor raises ManifestError from the constructor.
    """

    def __init__(
        self,
        plugin_dir: Path | str,
        entry_path: str = DEFAULT_ENTRY_PATH,
        descriptor_path: str = DEFAULT_DESCRIPTOR_PATH,
    ):
        """
        Initialize ModuleLoader.

        Args:
            plugin_dir: Plugin directory
            entry_path: Entry file path relative to plugin_dir
            descriptor_path: Descriptor path relative to plugin_dir

        Raises:
            ManifestError: If the descriptor cannot be read or parsed
        """
        self.plugin_dir = Path(plugin_dir)
        self.entry_file = self.plugin_dir / entry_path
        self.descriptor_file = self.plugin_dir / descriptor_path
        self.descriptor: PackageDescriptor = parse_descriptor(self.descriptor_file)

        safe_name = re.sub(r"[^0-9a-zA-Z_]", "_", self.plugin_dir.name) or "plugin"
        self.module_name = f"plugin_runtime_plugin_{safe_name}_{id(self):x}"

        # Watch state: absolute path -> last observed st_mtime_ns
        self._mtimes: dict[str, int] = {}
        self._observer: Observer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._on_reload: Callable[[PluginDefinition], None] | None = None
        self.reload_count = 0

    @property
    def watched_paths(self) -> frozenset[str]:
        return frozenset(self._mtimes)

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def load(self) -> PluginDefinition:
        """
        Load the plugin fresh, discarding any previously imported module.

        Returns:
            A new PluginDefinition

        Raises:
            ManifestError: If the descriptor cannot be read or parsed
            LoaderError: If the entry file cannot be imported
        """
        self.descriptor = parse_descriptor(self.descriptor_file)
        module = self._import_entry()
        try:
            return PluginDefinition.from_module(module)
        except Exception as e:
            raise LoaderError(f"Invalid plugin definition in {self.entry_file}: {e}") from e

    def _import_entry(self) -> ModuleType:
        if not self.entry_file.exists():
            raise LoaderError(f"Entry point not found: {self.entry_file}")

        self.unload()

        try:
            # Rebuilds can keep the same size and mtime second; skip the .pyc cache
            loader = _FreshSourceLoader(self.module_name, str(self.entry_file))
            spec = importlib.util.spec_from_file_location(
                self.module_name, self.entry_file, loader=loader
            )
            if spec is None or spec.loader is None:
                raise LoaderError(f"Failed to create module spec for {self.entry_file}")

            module = importlib.util.module_from_spec(spec)

            # Add to sys.modules before execution
            sys.modules[self.module_name] = module
            spec.loader.exec_module(module)
            return module

        except LoaderError:
            self.unload()
            raise
        except Exception as e:
            self.unload()
            raise LoaderError(f"Failed to load plugin module: {e}") from e

    def unload(self) -> None:
        """Drop the imported entry module from sys.modules."""
        sys.modules.pop(self.module_name, None)

    def watch(
        self,
        on_reload: Callable[[PluginDefinition], None],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Watch the entry file and descriptor for changes.

        Notifications arrive on the watchdog thread and are handed to the
        event loop; check_for_change() always runs on the loop.

        Args:
            on_reload: Called with the new definition after a genuine change
            loop: Event loop to run checks on (default: the running loop)
        """
        if self._observer is not None:
            return

        self._loop = loop or asyncio.get_running_loop()
        self._on_reload = on_reload

        paths = [os.path.abspath(self.entry_file), os.path.abspath(self.descriptor_file)]
        for path in paths:
            self._mtimes[path] = self._stat_mtime(path) or 0

        observer = Observer()
        handler = _ChangeHandler(self)
        for directory in sorted({os.path.dirname(path) for path in paths}):
            if os.path.isdir(directory):
                observer.schedule(handler, directory, recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer

        logger.debug("watch_started", plugin_dir=str(self.plugin_dir), paths=paths)

    def unwatch(self) -> None:
        """Stop watching and forget per-path state."""
        observer = self._observer
        self._observer = None
        self._on_reload = None
        self._mtimes.clear()
        if observer is not None:
            observer.stop()
            observer.join(timeout=2.0)
            logger.debug("watch_stopped", plugin_dir=str(self.plugin_dir))

    def _notify_threadsafe(self, path: str) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.check_for_change, path)

    def check_for_change(self, path: str | Path) -> bool:
        """
        Reload if the path's modification time has advanced.

        Change notifications can fire without a content change (e.g. on
        access-time updates); those are ignored.

        Args:
            path: Watched path reported as changed

        Returns:
            True if a reload happened
        """
        key = os.path.abspath(path)
        if key not in self._mtimes:
            return False

        mtime = self._stat_mtime(key)
        if mtime is None:
            # Mid-rewrite; the follow-up "created" event will be checked
            return False

        previous = self._mtimes[key]
        self._mtimes[key] = mtime
        if mtime <= previous:
            return False

        try:
            definition = self.load()
        except Exception as e:
            logger.error("reload_failed", plugin_dir=str(self.plugin_dir), error=str(e))
            return False

        self.reload_count += 1
        logger.info("plugin_reloaded", plugin_dir=str(self.plugin_dir), path=key)
        if self._on_reload is not None:
            self._on_reload(definition)
        return True

    @staticmethod
    def _stat_mtime(path: str) -> int | None:
        try:
            return os.stat(path).st_mtime_ns
        except FileNotFoundError:
            return None
