"""
hookline - Plugin lifecycle and hook-aggregation kernel.

Named events are registered in a Registry, fired by a Dispatcher, used by
the LifecycleManager to drive install / update / remove of plugins, and by
the HookAggregator to compose response fragments at host extension points.

This package exports the public API for the default host.
"""

__version__ = "0.1.0"

# Create namespace objects for clean API using types.SimpleNamespace
from types import SimpleNamespace

from hookline import host as host_module
from hookline.host import Host

# Event API namespace
event = SimpleNamespace(
    subscriber=host_module.subscriber,
    dispatch=host_module.dispatch,
)

# Hook point API namespace
hook = SimpleNamespace(
    contributor=host_module.contributor,
    render=host_module.render,
)

# Plugin lifecycle API namespace
lifecycle = SimpleNamespace(
    install=host_module.install,
    update=host_module.update,
    remove=host_module.remove,
)

__all__ = [
    "__version__",
    "Host",
    "event",
    "hook",
    "lifecycle",
]
