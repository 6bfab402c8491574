"""
Utils Module - Small helpers shared by the registry, dispatcher and plugins.

This module provides:
- validate_event_name(): Check that an event name is usable
- call_with_timeout(): Bound a single handler call at the call site

The dispatcher itself never times out a handler. Callers that need bounded
latency wrap the handler before registering it, and the resulting
HandlerTimeoutError is recorded like any other handler failure.
"""

import functools
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any


class UtilsError(Exception):
    """Base exception for utils-related errors."""

    pass


class HandlerTimeoutError(UtilsError):
    """Raised when a wrapped handler does not finish in time."""

    pass


def validate_event_name(event_name: Any) -> bool:
    """
    Check whether a value is a valid event name.

    Event names are opaque, case-sensitive strings. The only structural rule
    is that they are non-empty.
    """
    return isinstance(event_name, str) and event_name != ""


def call_with_timeout(
    handler: Callable[[Any], Any], seconds: float
) -> Callable[[Any], Any]:
    """
    Wrap a handler so that each call is bounded by a timeout.

    The handler runs on a worker thread; if it has not finished after
    `seconds`, HandlerTimeoutError is raised to the dispatcher. The worker
    is not killed and may still finish in the background.

    Example:
        registry.register('page.footer', call_with_timeout(slow_widget, 0.5))
    """
    if seconds <= 0:
        raise UtilsError(f"Timeout must be positive, got {seconds}")

    @functools.wraps(handler)
    def wrapper(payload: Any) -> Any:
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(handler, payload)
        try:
            return future.result(timeout=seconds)
        except FutureTimeoutError as e:
            name = getattr(handler, "__qualname__", repr(handler))
            raise HandlerTimeoutError(
                f"Handler {name} timed out after {seconds} seconds"
            ) from e
        finally:
            executor.shutdown(wait=False)

    return wrapper
