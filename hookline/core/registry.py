"""
Subscriber Registry.

This module holds, per event name, the ordered collection of subscribers.

Key features:
- Ascending priority order (lower number fires earlier)
- FIFO tie-break on registration sequence for equal priorities
- Copy-on-write snapshots: readers never lock, writers swap whole tuples
- Owner tags for bulk removal when a plugin goes away
"""

import bisect
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from hookline.core.utils import validate_event_name

DEFAULT_PRIORITY = 0


class RegistryError(Exception):
    """Base exception for registry errors."""

    pass


class InvalidArgumentError(RegistryError):
    """Raised for malformed event names, identifiers or handlers."""

    pass


class NotFoundError(RegistryError):
    """Raised when unregistering a handle the registry does not know."""

    pass


@dataclass(frozen=True)
class Subscriber:
    """
    A handler bound to one event name.

    Attributes:
        event_name: Event the handler listens to
        handler: Callable taking the payload
        priority: Lower value executes first
        registration_seq: Tie-breaker for same priority (lower = earlier)
        owner: Optional tag of the registering plugin
    """

    event_name: str
    handler: Callable[[Any], Any]
    priority: int
    registration_seq: int
    owner: str | None = None

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.priority, self.registration_seq)

    @property
    def label(self) -> str:
        """Readable identity used in reports and warnings."""
        name = getattr(self.handler, "__qualname__", None) or repr(self.handler)
        if self.owner:
            return f"{self.owner}:{name}#{self.registration_seq}"
        return f"{name}#{self.registration_seq}"


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque token returned by register(); pass it back to unregister()."""

    event_name: str
    registration_seq: int


class Registry:
    """
    Event name -> ordered subscribers.

    Each entry is an immutable tuple kept sorted by (priority, registration_seq).
    Writers build a new tuple under the lock and publish it with a single
    dict assignment, so subscribers_for() can read without locking.
    """

    def __init__(self, default_priority: int = DEFAULT_PRIORITY):
        self.default_priority = default_priority
        self._routes: dict[str, tuple[Subscriber, ...]] = {}
        self._registration_counter = 0
        self._lock = threading.Lock()

    def _next_registration_seq(self) -> int:
        seq = self._registration_counter
        self._registration_counter += 1
        return seq

    def register(
        self,
        event_name: str,
        handler: Callable[[Any], Any],
        priority: int | None = None,
        owner: str | None = None,
    ) -> SubscriptionHandle:
        """
        Register a handler for an exact event name.

        Args:
            event_name: Event to subscribe to
            handler: Callable invoked with the payload
            priority: Execution priority (lower = earlier), default_priority when None
            owner: Optional plugin identifier for bulk removal

        Returns:
            Handle identifying this subscription

        Raises:
            InvalidArgumentError: If the event name is empty or handler is not callable
        """
        if not validate_event_name(event_name):
            raise InvalidArgumentError(f"Invalid event name: {event_name!r}")
        if not callable(handler):
            raise InvalidArgumentError(
                f"Handler for '{event_name}' is not callable: {handler!r}"
            )
        if priority is None:
            priority = self.default_priority
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise InvalidArgumentError(f"Priority must be an integer, got {priority!r}")

        with self._lock:
            subscriber = Subscriber(
                event_name=event_name,
                handler=handler,
                priority=priority,
                registration_seq=self._next_registration_seq(),
                owner=owner,
            )
            current = self._routes.get(event_name, ())
            keys = [s.sort_key for s in current]
            index = bisect.bisect_right(keys, subscriber.sort_key)
            self._routes[event_name] = current[:index] + (subscriber,) + current[index:]

        return SubscriptionHandle(event_name, subscriber.registration_seq)

    def unregister(self, handle: SubscriptionHandle) -> None:
        """
        Remove a subscription.

        Raises:
            NotFoundError: If the handle is unknown or was already removed
        """
        with self._lock:
            current = self._routes.get(handle.event_name, ())
            remaining = tuple(
                s for s in current if s.registration_seq != handle.registration_seq
            )
            if len(remaining) == len(current):
                raise NotFoundError(
                    f"No subscription #{handle.registration_seq} for '{handle.event_name}'"
                )
            self._publish(handle.event_name, remaining)

    def unregister_owner(self, owner: str) -> int:
        """
        Remove every subscription registered under an owner tag.

        Returns:
            Number of subscriptions removed
        """
        removed = 0
        with self._lock:
            for event_name, current in list(self._routes.items()):
                remaining = tuple(s for s in current if s.owner != owner)
                if len(remaining) != len(current):
                    removed += len(current) - len(remaining)
                    self._publish(event_name, remaining)
        return removed

    def _publish(self, event_name: str, subscribers: tuple[Subscriber, ...]) -> None:
        # Caller holds the lock
        if subscribers:
            self._routes[event_name] = subscribers
        else:
            self._routes.pop(event_name, None)

    def subscribers_for(self, event_name: str) -> tuple[Subscriber, ...]:
        """Snapshot of subscribers in dispatch order; empty when none exist."""
        return self._routes.get(event_name, ())

    def event_names(self) -> list[str]:
        """Event names that currently have at least one subscriber."""
        return sorted(self._routes)

    def __contains__(self, event_name: object) -> bool:
        return event_name in self._routes

    def __len__(self) -> int:
        return sum(len(subscribers) for subscribers in self._routes.values())
