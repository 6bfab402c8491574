"""
Event Subscriber capability.

A plugin takes part in dispatch by exposing which events it listens to.
That can be a class implementing EventSubscriber:

    class ShopWidgets(EventSubscriber):
        def __init__(self, renderer):
            self.renderer = renderer

        def get_subscribed_events(self):
            return {
                "install_shop_widgets": "on_install",
                "admin.dashboard": ("render_dashboard", 10),
                "page.footer": [("render_badge", -5), ("render_links", 20)],
            }

or the same mapping passed as plain data with callables instead of method
names. Collaborators (renderers, stores) are handed to the subscriber by the
host when it is constructed; nothing is looked up globally.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any, Union

from hookline.core.registry import (
    InvalidArgumentError,
    Registry,
    SubscriptionHandle,
)
from hookline.core.utils import validate_event_name

HandlerRef = Union[str, Callable[[Any], Any]]
SubscriptionSpec = Union[
    HandlerRef, tuple[HandlerRef, int], list[tuple[HandlerRef, int]]
]


class EventSubscriber(ABC):
    """Anything that can list (event name -> handler, priority) pairs."""

    @abstractmethod
    def get_subscribed_events(self) -> Mapping[str, SubscriptionSpec]:
        """Return the events this subscriber listens to."""
        ...


def _resolve(owner: Any, ref: HandlerRef, event_name: str) -> Callable[[Any], Any]:
    if isinstance(ref, str):
        if owner is None:
            raise InvalidArgumentError(
                f"Handler for '{event_name}' is a method name ({ref!r}) but no subscriber object was given"
            )
        method = getattr(owner, ref, None)
        if method is None or not callable(method):
            raise InvalidArgumentError(
                f"{type(owner).__name__} has no method {ref!r} for '{event_name}'"
            )
        return method
    if not callable(ref):
        raise InvalidArgumentError(f"Handler for '{event_name}' is not callable: {ref!r}")
    return ref


def iter_subscriptions(
    events: Mapping[str, SubscriptionSpec], owner: Any = None
) -> list[tuple[str, Callable[[Any], Any], int | None]]:
    """
    Normalize a subscription mapping into (event_name, handler, priority) triples.

    Accepted values per event name:
        handler
        (handler, priority)
        [(handler, priority), ...]
    where handler is a callable or, when `owner` is given, a method name.
    """
    triples = []
    for event_name, spec in events.items():
        if not validate_event_name(event_name):
            raise InvalidArgumentError(f"Invalid event name: {event_name!r}")
        if isinstance(spec, list):
            entries = spec
        else:
            entries = [spec]

        for entry in entries:
            if isinstance(entry, tuple):
                if len(entry) != 2:
                    raise InvalidArgumentError(
                        f"Subscription for '{event_name}' must be (handler, priority), got {entry!r}"
                    )
                ref, priority = entry
            else:
                ref, priority = entry, None
            if priority is not None and (
                isinstance(priority, bool) or not isinstance(priority, int)
            ):
                raise InvalidArgumentError(
                    f"Priority for '{event_name}' must be an integer, got {priority!r}"
                )
            triples.append((event_name, _resolve(owner, ref, event_name), priority))
    return triples


def subscribe(
    registry: Registry,
    subscriber: EventSubscriber | Mapping[str, SubscriptionSpec],
    owner: str | None = None,
) -> list[SubscriptionHandle]:
    """
    Register every subscription a plugin declares.

    Args:
        registry: Registry to register into
        subscriber: EventSubscriber instance or a plain mapping
        owner: Tag recorded on each subscription (usually the plugin identifier)

    Returns:
        Handles in declaration order

    Raises:
        InvalidArgumentError: If any declared subscription is malformed. Nothing
            is registered in that case.
    """
    if isinstance(subscriber, EventSubscriber):
        triples = iter_subscriptions(subscriber.get_subscribed_events(), subscriber)
    else:
        triples = iter_subscriptions(subscriber)

    return [
        registry.register(event_name, handler, priority, owner=owner)
        for event_name, handler, priority in triples
    ]


def unsubscribe_all(registry: Registry, handles: list[SubscriptionHandle]) -> None:
    """Remove a list of subscriptions obtained from subscribe()."""
    for handle in handles:
        registry.unregister(handle)
