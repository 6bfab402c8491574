"""
Dispatcher - Fires a named event through its subscribers.

Dispatch is uninterruptible: every subscriber executes, in registry order,
on the calling thread. A subscriber that raises is recorded in the
DispatchReport and the dispatch moves on to the next one. Nothing a handler
does can make dispatch() itself fail.

There is no stop-propagation primitive. A handler that wants to veto later
processing sets a field on the payload that later handlers inspect (with
copy_payloads disabled, or through a shared collaborator).
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any

from hookline.core.payload import Payload
from hookline.core.registry import Registry, Subscriber

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """
    Raised by DispatchReport.raise_for_failures().

    Never raised by dispatch() itself.
    """

    def __init__(self, report: "DispatchReport"):
        self.report = report
        labels = ", ".join(f.subscriber.label for f in report.failures)
        super().__init__(
            f"{len(report.failures)} handler(s) failed for '{report.event_name}': {labels}"
        )


@dataclass(frozen=True)
class HandlerResult:
    """Value returned by one successful handler."""

    position: int
    subscriber: Subscriber
    value: Any


@dataclass(frozen=True)
class HandlerFailure:
    """Exception raised by one handler, caught by the dispatcher."""

    position: int
    subscriber: Subscriber
    error: BaseException


@dataclass
class DispatchReport:
    """
    Outcome of a single dispatch call.

    Attributes:
        event_name: The dispatched event
        invoked: Number of subscribers called
        results: Successful handler results, in dispatch order
        failures: Failed handlers, in dispatch order
    """

    event_name: str
    invoked: int = 0
    results: list[HandlerResult] = field(default_factory=list)
    failures: list[HandlerFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        return not self.failures

    def values(self) -> list[Any]:
        """Handler return values in dispatch order."""
        return [r.value for r in self.results]

    def raise_for_failures(self) -> None:
        """Raise DispatchError if any handler failed."""
        if self.failures:
            raise DispatchError(self)


class Dispatcher:
    """
    Invokes the subscribers of an event with a payload.

    Args:
        registry: Where subscribers are looked up
        copy_payloads: Give each subscriber its own copy of the payload
        warn_on_failure: Emit a RuntimeWarning for each failed handler
    """

    def __init__(
        self,
        registry: Registry,
        copy_payloads: bool = True,
        warn_on_failure: bool = True,
    ):
        self.registry = registry
        self.copy_payloads = copy_payloads
        self.warn_on_failure = warn_on_failure

    def _wrap(self, payload: Any) -> Payload:
        if self.copy_payloads:
            return Payload.any(payload)
        return Payload.shared(payload)

    def dispatch(self, event_name: str, payload: Any = None) -> DispatchReport:
        """
        Dispatch an event to all of its subscribers.

        Args:
            event_name: The event identifier
            payload: Value passed to each handler

        Returns:
            DispatchReport describing every invocation
        """
        report = DispatchReport(event_name=event_name)

        # Snapshot: registrations during dispatch affect the next dispatch only
        subscribers = self.registry.subscribers_for(event_name)
        if not subscribers:
            return report

        boxed = self._wrap(payload)

        for position, subscriber in enumerate(subscribers):
            report.invoked += 1
            try:
                value = subscriber.handler(boxed.into())
            except Exception as e:
                report.failures.append(HandlerFailure(position, subscriber, e))
            else:
                report.results.append(HandlerResult(position, subscriber, value))

        if self.warn_on_failure:
            self._warn(report)

        return report

    def _warn(self, report: DispatchReport) -> None:
        """
        Emit one RuntimeWarning per failure once every subscriber has run.

        A warnings filter set to "error" turns a warning into an exception;
        that is logged instead of escaping dispatch().
        """
        for failure in report.failures:
            message = (
                f"Handler {failure.subscriber.label} failed for "
                f"'{report.event_name}': {failure.error}"
            )
            try:
                warnings.warn(message, RuntimeWarning, stacklevel=3)
            except Warning:
                logger.warning(message)
