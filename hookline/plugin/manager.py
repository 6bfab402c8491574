"""
Plugin Manager.

Ties plugin directories on disk to the lifecycle kernel.

Key features:
- Plugin discovery (directories holding a manifest.json)
- Activation: load the entry module and register its subscribers
- Install / update / remove driven through the LifecycleManager
- Deactivation: drop a plugin's subscriptions and module
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from hookline.core.registry import Registry, SubscriptionHandle
from hookline.plugin.lifecycle import LifecycleManager, TransitionOutcome
from hookline.plugin.loader import (
    collect_subscribers,
    load_plugin_module,
    unload_plugin_module,
)
from hookline.plugin.manifest import Manifest, parse_manifest
from hookline.plugin.subscriber import subscribe

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"


class PluginError(Exception):
    """Base exception for plugin manager errors."""

    pass


class ActivationState(Enum):
    """Whether a plugin's subscribers are registered."""

    INACTIVE = "inactive"
    ACTIVE = "active"
    ERROR = "error"


@dataclass
class PluginInfo:
    """
    Information about a plugin directory.

    Attributes:
        manifest: Parsed manifest
        path: Plugin directory path
        state: Activation state
        handles: Subscriptions registered on activation
        error: Error message if state is ERROR
    """

    manifest: Manifest
    path: Path
    state: ActivationState = ActivationState.INACTIVE
    handles: list[SubscriptionHandle] = field(default_factory=list)
    error: str | None = None

    @property
    def identifier(self) -> str:
        return self.manifest.identifier


class PluginManager:
    """
    Loads plugin directories and drives their lifecycle.

    Args:
        registry: Registry plugin subscribers are registered into
        lifecycle: Lifecycle manager sharing that registry's dispatcher
    """

    def __init__(self, registry: Registry, lifecycle: LifecycleManager):
        self.registry = registry
        self.lifecycle = lifecycle
        self._plugins: dict[str, PluginInfo] = {}
        self._lock = threading.Lock()
        self._activation_lock = threading.RLock()

    def discover_plugins(self, plugins_dir: Path) -> list[PluginInfo]:
        """
        Find plugin directories below plugins_dir.

        Directories whose manifest fails to parse are logged and skipped.
        """
        if not plugins_dir.is_dir():
            return []

        discovered = []
        for plugin_dir in sorted(plugins_dir.iterdir()):
            manifest_path = plugin_dir / MANIFEST_FILE
            if not plugin_dir.is_dir() or not manifest_path.exists():
                continue
            try:
                discovered.append(PluginInfo(parse_manifest(manifest_path), plugin_dir))
            except Exception as e:
                logger.warning("Skipping %s: %s", plugin_dir.name, e)
        return discovered

    def activate(self, plugin_dir: Path) -> PluginInfo:
        """
        Load a plugin directory and register its subscribers.

        Activating an already active plugin at the same version is a no-op;
        a different version replaces the old subscriptions.

        Raises:
            PluginError: If the manifest, module or subscribers cannot be loaded
        """
        plugin_dir = Path(plugin_dir)
        try:
            manifest = parse_manifest(plugin_dir / MANIFEST_FILE)
        except Exception as e:
            raise PluginError(f"Failed to read plugin at {plugin_dir}: {e}") from e

        with self._activation_lock:
            return self._activate(plugin_dir, manifest)

    def _activate(self, plugin_dir: Path, manifest: Manifest) -> PluginInfo:
        # Caller holds _activation_lock
        identifier = manifest.identifier
        with self._lock:
            current = self._plugins.get(identifier)
            if (
                current is not None
                and current.state == ActivationState.ACTIVE
                and current.manifest.version == manifest.version
            ):
                return current

        if current is not None:
            self.deactivate(identifier)

        info = PluginInfo(manifest=manifest, path=plugin_dir)
        try:
            module = load_plugin_module(plugin_dir, manifest)
            handles = []
            for item in collect_subscribers(module):
                handles.extend(subscribe(self.registry, item, owner=identifier))
        except Exception as e:
            self.registry.unregister_owner(identifier)
            unload_plugin_module(identifier)
            info.state = ActivationState.ERROR
            info.error = str(e)
            with self._lock:
                self._plugins[identifier] = info
            raise PluginError(f"Failed to activate plugin {identifier}: {e}") from e

        info.handles = handles
        info.state = ActivationState.ACTIVE
        with self._lock:
            self._plugins[identifier] = info
        logger.info(
            "Activated %s %s (%d subscriptions)", identifier, manifest.version, len(handles)
        )
        return info

    def deactivate(self, identifier: str) -> None:
        """Drop a plugin's subscriptions and forget its module."""
        with self._activation_lock:
            with self._lock:
                info = self._plugins.get(identifier)
            self.registry.unregister_owner(identifier)
            unload_plugin_module(identifier)
            if info is not None:
                info.handles = []
                info.state = ActivationState.INACTIVE

    def install(self, plugin_dir: Path) -> TransitionOutcome:
        """Activate a plugin directory and fire its install event."""
        info = self.activate(plugin_dir)
        return self.lifecycle.request_install(info.manifest.name, info.manifest.version)

    def update(self, plugin_dir: Path) -> TransitionOutcome:
        """Activate the new version of a plugin and fire its update event."""
        info = self.activate(plugin_dir)
        return self.lifecycle.request_update(info.manifest.name, info.manifest.version)

    def remove(self, name: str) -> TransitionOutcome:
        """
        Fire a plugin's remove event, then deactivate it.

        The plugin's own subscribers stay registered until the remove event
        has been dispatched so they can clean up after themselves.
        """
        outcome = self.lifecycle.request_remove(name)
        self.deactivate(outcome.record.identifier)
        return outcome

    def get_plugin_info(self, identifier: str) -> PluginInfo | None:
        with self._lock:
            return self._plugins.get(identifier)

    def list_plugins(self) -> list[PluginInfo]:
        with self._lock:
            return list(self._plugins.values())
