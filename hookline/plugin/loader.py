"""
Dynamic Plugin Loader.

This module loads a plugin's entry module and collects its subscribers.

Key features:
- importlib integration for dynamic loading
- Module caching per plugin identifier and version
- Subscriber collection from SUBSCRIBERS or EventSubscriber subclasses
"""

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType

from hookline.plugin.manifest import Manifest
from hookline.plugin.subscriber import EventSubscriber

logger = logging.getLogger(__name__)


class LoaderError(Exception):
    """Base exception for loader-related errors."""

    pass


# Module cache: plugin identifier -> (version, module)
_module_cache: dict[str, tuple[str, ModuleType]] = {}


def _module_name(identifier: str) -> str:
    return f"hookline_plugin_{identifier}"


def load_plugin_module(plugin_dir: Path, manifest: Manifest) -> ModuleType:
    """
    Load a plugin's entry module.

    Args:
        plugin_dir: Plugin directory path
        manifest: Plugin manifest

    Returns:
        Loaded module

    Raises:
        LoaderError: If loading fails
    """
    identifier = manifest.identifier
    entry_point = plugin_dir / manifest.main

    if not entry_point.exists():
        raise LoaderError(f"Entry point not found: {entry_point}")

    cached = _module_cache.get(identifier)
    if cached is not None:
        if cached[0] == manifest.version:
            return cached[1]
        unload_plugin_module(identifier)

    module_name = _module_name(identifier)
    try:
        spec = importlib.util.spec_from_file_location(module_name, entry_point)
        if spec is None or spec.loader is None:
            raise LoaderError(f"Failed to create module spec for {entry_point}")

        module = importlib.util.module_from_spec(spec)

        # Add to sys.modules before execution
        sys.modules[module_name] = module
        spec.loader.exec_module(module)

        _module_cache[identifier] = (manifest.version, module)
        logger.debug("Loaded plugin module %s from %s", module_name, entry_point)
        return module

    except Exception as e:
        sys.modules.pop(module_name, None)
        raise LoaderError(f"Failed to load plugin module: {e}") from e


def unload_plugin_module(identifier: str) -> None:
    """Forget a loaded plugin module."""
    _module_cache.pop(identifier, None)
    sys.modules.pop(_module_name(identifier), None)


def clear_cache() -> None:
    """Clear all cached plugin modules."""
    for identifier in list(_module_cache.keys()):
        unload_plugin_module(identifier)


def collect_subscribers(module: ModuleType) -> list[EventSubscriber]:
    """
    Collect the subscribers a plugin module provides.

    A module-level SUBSCRIBERS list wins when present. Otherwise every
    concrete EventSubscriber subclass defined in the module itself is
    instantiated with no arguments.

    Raises:
        LoaderError: If a subscriber cannot be constructed
    """
    declared = getattr(module, "SUBSCRIBERS", None)
    if declared is not None:
        subscribers = list(declared)
        for item in subscribers:
            if not isinstance(item, EventSubscriber):
                raise LoaderError(
                    f"SUBSCRIBERS in {module.__name__} contains a non-subscriber: {item!r}"
                )
        return subscribers

    subscribers = []
    for _attr_name, cls in inspect.getmembers(module, inspect.isclass):
        if (
            issubclass(cls, EventSubscriber)
            and cls.__module__ == module.__name__
            and not inspect.isabstract(cls)
        ):
            try:
                subscribers.append(cls())
            except Exception as e:
                raise LoaderError(
                    f"Failed to instantiate subscriber {cls.__name__}: {e}"
                ) from e
    return subscribers
