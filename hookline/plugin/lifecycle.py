"""
Plugin Lifecycle Manager.

This module drives install / update / remove transitions for plugins.

State machine per plugin identifier:

    UNKNOWN --install--> INSTALLED(v) --update--> INSTALLED(v') --remove--> REMOVED
                                                                  (REMOVED --install--> INSTALLED)

Each transition dispatches one canonical event (install_<id>, update_<id>,
remove_<id>) and only then mutates the version store. Subscribers therefore
run at least once per transition: a crash between dispatch and persistence
leaves "handlers ran, record not updated", and replaying the request runs
them again.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hookline.core.dispatcher import DispatchReport, Dispatcher
from hookline.core.registry import InvalidArgumentError
from hookline.plugin.identity import derive_identifier, lifecycle_event_names
from hookline.plugin.manifest import compare_versions
from hookline.plugin.store import VersionStore

logger = logging.getLogger(__name__)


class LifecycleError(Exception):
    """Base exception for lifecycle precondition violations."""

    pass


class AlreadyInstalledError(LifecycleError):
    """Raised when installing a plugin that already has a record."""

    pass


class NotInstalledError(LifecycleError):
    """Raised when updating or removing a plugin that has no record."""

    pass


class LifecycleTransition(Enum):
    """Lifecycle transition enumeration."""

    INSTALL = "install"
    UPDATE = "update"
    REMOVE = "remove"


class TransitionStatus(Enum):
    """Whether a requested transition changed anything."""

    APPLIED = "applied"
    NOOP = "noop"


class PluginState(Enum):
    """Plugin state enumeration."""

    UNKNOWN = "unknown"
    INSTALLED = "installed"
    REMOVED = "removed"


@dataclass(frozen=True)
class PluginRecord:
    """
    What the store knows about a plugin.

    Attributes:
        identifier: Derived identifier (e.g. "example_plugin")
        installed_version: Installed version, None once removed
        name: Package-style name the request was made with
    """

    identifier: str
    installed_version: str | None
    name: str = ""

    @property
    def state(self) -> PluginState:
        if self.installed_version is None:
            return PluginState.REMOVED
        return PluginState.INSTALLED


@dataclass(frozen=True)
class TransitionOutcome:
    """
    Result of a lifecycle request.

    Attributes:
        transition: Which transition was requested
        status: APPLIED, or NOOP when nothing needed to change
        record: Plugin record after the request
        report: Dispatch report, None when nothing was dispatched
    """

    transition: LifecycleTransition
    status: TransitionStatus
    record: PluginRecord
    report: DispatchReport | None = None

    @property
    def applied(self) -> bool:
        return self.status is TransitionStatus.APPLIED


class LifecycleManager:
    """
    Computes and sequences plugin lifecycle transitions.

    Args:
        dispatcher: Used to fire the lifecycle events
        store: Persistence collaborator holding identifier -> version

    One reentrant lock is kept per identifier seen, and removed identifiers
    are remembered for state(). Both grow with the number of distinct
    plugins, not with the number of requests, and are never pruned.
    """

    def __init__(self, dispatcher: Dispatcher, store: VersionStore):
        self.dispatcher = dispatcher
        self.store = store
        self._removed: set[str] = set()
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, identifier: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(identifier)
            if lock is None:
                lock = self._locks[identifier] = threading.RLock()
            return lock

    def _dispatch(
        self, event_name: str, payload: dict[str, Any], identifier: str
    ) -> DispatchReport:
        report = self.dispatcher.dispatch(event_name, payload)
        if not report.ok:
            logger.warning(
                "%d of %d handler(s) failed during %s of %s",
                len(report.failures),
                report.invoked,
                payload["transition"],
                identifier,
            )
        return report

    # Queries
    def state(self, name: str) -> PluginState:
        """Current lifecycle state of a plugin."""
        identifier = derive_identifier(name)
        if self.store.get(identifier) is not None:
            return PluginState.INSTALLED
        if identifier in self._removed:
            return PluginState.REMOVED
        return PluginState.UNKNOWN

    def record(self, name: str) -> PluginRecord | None:
        """Stored record for a plugin, or None if it is not installed."""
        identifier = derive_identifier(name)
        version = self.store.get(identifier)
        if version is None:
            return None
        return PluginRecord(identifier, version, name)

    # Transitions
    def request_install(self, name: str, version: str) -> TransitionOutcome:
        """
        Install a plugin.

        Dispatches install_<id> with the plugin metadata, then records the
        installed version.

        Raises:
            AlreadyInstalledError: If the plugin already has a record
        """
        _check_version(version)
        identifier = derive_identifier(name)
        events = lifecycle_event_names(identifier)

        with self._lock_for(identifier):
            existing = self.store.get(identifier)
            if existing is not None:
                raise AlreadyInstalledError(
                    f"Plugin {identifier} is already installed at version {existing}"
                )

            payload = {
                "transition": LifecycleTransition.INSTALL.value,
                "identifier": identifier,
                "name": name,
                "version": version,
            }
            report = self._dispatch(events.install, payload, identifier)

            self.store.put(identifier, version)
            self._removed.discard(identifier)

        logger.info("Installed %s %s", identifier, version)
        return TransitionOutcome(
            LifecycleTransition.INSTALL,
            TransitionStatus.APPLIED,
            PluginRecord(identifier, version, name),
            report,
        )

    def request_update(self, name: str, version: str) -> TransitionOutcome:
        """
        Move an installed plugin to another version.

        Requesting the version that is already installed is a no-op: nothing
        is dispatched, nothing is written, and the outcome status is NOOP.

        Raises:
            NotInstalledError: If the plugin has no record
        """
        _check_version(version)
        identifier = derive_identifier(name)
        events = lifecycle_event_names(identifier)

        with self._lock_for(identifier):
            old_version = self.store.get(identifier)
            if old_version is None:
                raise NotInstalledError(f"Plugin {identifier} is not installed")

            if old_version == version:
                logger.debug("%s already at %s, nothing to update", identifier, version)
                return TransitionOutcome(
                    LifecycleTransition.UPDATE,
                    TransitionStatus.NOOP,
                    PluginRecord(identifier, old_version, name),
                )

            order = compare_versions(version, old_version)
            payload = {
                "transition": LifecycleTransition.UPDATE.value,
                "identifier": identifier,
                "name": name,
                "version": version,
                "old_version": old_version,
                "new_version": version,
                "direction": None if order is None else ("upgrade" if order > 0 else "downgrade"),
            }
            report = self._dispatch(events.update, payload, identifier)

            self.store.put(identifier, version)

        logger.info("Updated %s %s -> %s", identifier, old_version, version)
        return TransitionOutcome(
            LifecycleTransition.UPDATE,
            TransitionStatus.APPLIED,
            PluginRecord(identifier, version, name),
            report,
        )

    def request_remove(self, name: str) -> TransitionOutcome:
        """
        Remove an installed plugin.

        Raises:
            NotInstalledError: If the plugin is unknown or already removed
        """
        identifier = derive_identifier(name)
        events = lifecycle_event_names(identifier)

        with self._lock_for(identifier):
            version = self.store.get(identifier)
            if version is None:
                raise NotInstalledError(f"Plugin {identifier} is not installed")

            payload = {
                "transition": LifecycleTransition.REMOVE.value,
                "identifier": identifier,
                "name": name,
                "version": version,
            }
            report = self._dispatch(events.remove, payload, identifier)

            self.store.delete(identifier)
            self._removed.add(identifier)

        logger.info("Removed %s %s", identifier, version)
        return TransitionOutcome(
            LifecycleTransition.REMOVE,
            TransitionStatus.APPLIED,
            PluginRecord(identifier, None, name),
            report,
        )

    def request(self, name: str, version: str) -> TransitionOutcome:
        """Install when the plugin has no record, update otherwise."""
        identifier = derive_identifier(name)
        with self._lock_for(identifier):
            if self.store.get(identifier) is None:
                return self.request_install(name, version)
            return self.request_update(name, version)


def _check_version(version: str) -> None:
    if not isinstance(version, str) or not version.strip():
        raise InvalidArgumentError(f"Invalid version: {version!r}")
