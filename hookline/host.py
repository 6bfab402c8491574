"""
Host wiring and the process-wide default host.

A Host bundles one registry with the dispatcher, hook aggregator and
lifecycle manager that share it. Embedding applications usually build their
own with Host.create(); the module-level functions below operate on a
default host so small plugins can use decorators:

    @hookline.event.subscriber('install_example_plugin')
    def on_install(payload):
        ...

    @hookline.hook.contributor('page.footer', priority=10)
    def footer_badge(context):
        return '<span>powered by example</span>'

    fragments = hookline.hook.render('page.footer', {'user': 'ada'})
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from hookline.config import Settings
from hookline.core.dispatcher import DispatchReport, Dispatcher
from hookline.core.registry import Registry
from hookline.hooks.aggregator import HookAggregator, HookResult
from hookline.hooks.points import HookCatalogue
from hookline.plugin.lifecycle import LifecycleManager, TransitionOutcome
from hookline.plugin.store import MemoryVersionStore, VersionStore


@dataclass
class Host:
    """The kernel components an application talks to."""

    settings: Settings
    registry: Registry
    dispatcher: Dispatcher
    hooks: HookAggregator
    lifecycle: LifecycleManager

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        store: VersionStore | None = None,
        catalogue: HookCatalogue | None = None,
    ) -> "Host":
        """
        Wire a host from settings.

        Args:
            settings: Kernel settings (defaults when None)
            store: Version store (in-memory when None)
            catalogue: Declared hook points for the aggregator
        """
        settings = settings or Settings()
        registry = Registry(default_priority=settings.default_priority)
        dispatcher = Dispatcher(
            registry,
            copy_payloads=settings.copy_payloads,
            warn_on_failure=settings.warn_on_failure,
        )
        return cls(
            settings=settings,
            registry=registry,
            dispatcher=dispatcher,
            hooks=HookAggregator(dispatcher, catalogue=catalogue),
            lifecycle=LifecycleManager(
                dispatcher, store if store is not None else MemoryVersionStore()
            ),
        )

    def join(self, result: HookResult) -> Any:
        """Concatenate a render result with the configured separator."""
        return result.join(self.settings.fragment_separator)


_default_host = Host.create()


def default_host() -> Host:
    """The process-wide host used by the decorator API."""
    return _default_host


# Public API functions
def subscriber(event_name: str, priority: int | None = None, owner: str | None = None):
    """
    Decorator to register an event subscriber on the default host.

    Example:
        @hookline.event.subscriber('update_example_plugin', priority=-10)
        def migrate(payload):
            run_migrations(payload['old_version'], payload['new_version'])
    """

    def decorator(func: Callable) -> Callable:
        _default_host.registry.register(event_name, func, priority, owner=owner)
        return func

    return decorator


def dispatch(event_name: str, payload: Any = None) -> DispatchReport:
    """
    Dispatch an event on the default host.

    Example:
        report = hookline.event.dispatch('cache.clear', {'scope': 'all'})
    """
    return _default_host.dispatcher.dispatch(event_name, payload)


def contributor(hook_name: str, priority: int | None = None, owner: str | None = None):
    """Decorator to register a hook point contributor on the default host."""
    return subscriber(hook_name, priority, owner)


def render(hook_name: str, context: Any = None) -> list[Any]:
    """Render a hook point on the default host and return its fragments."""
    return _default_host.hooks.render_hook_point(hook_name, context)


def install(name: str, version: str) -> TransitionOutcome:
    return _default_host.lifecycle.request_install(name, version)


def update(name: str, version: str) -> TransitionOutcome:
    return _default_host.lifecycle.request_update(name, version)


def remove(name: str) -> TransitionOutcome:
    return _default_host.lifecycle.request_remove(name)
