"""
Tests for the plugin lifecycle.

This test suite covers:
1. Identifier derivation and lifecycle event names
2. Install / update / remove transitions and their preconditions
3. Dispatch-before-persist ordering
4. Handler failures not blocking transitions
5. Version stores (memory and TOML)
"""

import tempfile
import threading
from pathlib import Path

import pytest

from hookline.core.dispatcher import Dispatcher
from hookline.core.registry import InvalidArgumentError, Registry
from hookline.plugin.identity import derive_identifier, lifecycle_event_names
from hookline.plugin.lifecycle import (
    AlreadyInstalledError,
    LifecycleManager,
    LifecycleTransition,
    NotInstalledError,
    PluginState,
    TransitionStatus,
)
from hookline.plugin.store import MemoryVersionStore, TomlVersionStore


class RecordingStore(MemoryVersionStore):
    """Memory store that records every write."""

    def __init__(self):
        super().__init__()
        self.writes = []

    def put(self, identifier, version):
        self.writes.append(("put", identifier, version))
        super().put(identifier, version)

    def delete(self, identifier):
        self.writes.append(("delete", identifier))
        super().delete(identifier)


def _manager(store=None):
    registry = Registry()
    dispatcher = Dispatcher(registry, warn_on_failure=False)
    return registry, LifecycleManager(dispatcher, store or RecordingStore())


class TestIdentity:
    """Test identifier derivation."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("vendor/example-plugin", "example_plugin"),
            ("Acme/Shop-Widgets", "shop_widgets"),
            ("standalone", "standalone"),
            ("already_snake", "already_snake"),
            ("a/b/multi-part", "multi_part"),
        ],
    )
    def test_derive_identifier(self, name, expected):
        """Vendor prefix dropped, hyphens become underscores, lower-cased."""
        assert derive_identifier(name) == expected

    @pytest.mark.parametrize("name", ["", "   ", None, "vendor/bad name", "vendor/dots.here"])
    def test_derive_identifier_invalid(self, name):
        """Empty names and names with other characters are rejected."""
        with pytest.raises(InvalidArgumentError):
            derive_identifier(name)

    def test_lifecycle_event_names(self):
        """The three canonical event names are built from the identifier."""
        names = lifecycle_event_names("example_plugin")

        assert names.install == "install_example_plugin"
        assert names.update == "update_example_plugin"
        assert names.remove == "remove_example_plugin"

    def test_lifecycle_event_names_invalid(self):
        """Identifiers must already be derived."""
        with pytest.raises(InvalidArgumentError):
            lifecycle_event_names("vendor/example-plugin")


class TestInstall:
    """Test install transitions."""

    def test_end_to_end_install(self):
        """install_<id> handler runs once with the version; state becomes INSTALLED."""
        registry, manager = _manager()
        calls = []
        registry.register("install_example_plugin", lambda p: calls.append(p))

        outcome = manager.request_install("vendor/example-plugin", "1.0")

        assert outcome.record.identifier == "example_plugin"
        assert len(calls) == 1
        assert calls[0]["version"] == "1.0"
        assert calls[0]["identifier"] == "example_plugin"
        assert calls[0]["name"] == "vendor/example-plugin"
        assert calls[0]["transition"] == "install"
        assert manager.state("vendor/example-plugin") == PluginState.INSTALLED
        assert manager.record("vendor/example-plugin").installed_version == "1.0"
        assert outcome.transition is LifecycleTransition.INSTALL
        assert outcome.status is TransitionStatus.APPLIED

    def test_install_twice_raises_without_dispatch(self):
        """Second install signals AlreadyInstalled and does not dispatch again."""
        registry, manager = _manager()
        calls = []
        registry.register("install_example_plugin", lambda p: calls.append(p))

        manager.request_install("vendor/example-plugin", "1.0")
        with pytest.raises(AlreadyInstalledError, match="already installed"):
            manager.request_install("vendor/example-plugin", "2.0")

        assert len(calls) == 1
        assert manager.record("vendor/example-plugin").installed_version == "1.0"

    def test_install_survives_handler_failure(self):
        """A failing install handler does not stop the transition."""
        registry, manager = _manager()
        after = []

        def broken(payload):
            raise RuntimeError("migration failed")

        registry.register("install_shop", broken, 0)
        registry.register("install_shop", lambda p: after.append(p["version"]), 1)

        outcome = manager.request_install("acme/shop", "2.1")

        assert after == ["2.1"]
        assert len(outcome.report.failures) == 1
        assert manager.state("acme/shop") == PluginState.INSTALLED

    def test_dispatch_completes_before_persist(self):
        """Handlers see no record yet; the store is written afterwards."""
        store = RecordingStore()
        registry, manager = _manager(store)
        seen = []
        registry.register("install_shop", lambda p: seen.append(list(store.writes)))

        manager.request_install("acme/shop", "1.0")

        assert seen == [[]]
        assert store.writes == [("put", "shop", "1.0")]

    def test_install_invalid_version(self):
        """Empty versions are rejected before anything happens."""
        _, manager = _manager()
        with pytest.raises(InvalidArgumentError, match="Invalid version"):
            manager.request_install("acme/shop", "")


class TestUpdate:
    """Test update transitions."""

    def test_update_dispatches_old_and_new(self):
        """Update payload carries both versions and the direction."""
        registry, manager = _manager()
        calls = []
        registry.register("update_shop", lambda p: calls.append(p))

        manager.request_install("acme/shop", "1.0")
        outcome = manager.request_update("acme/shop", "1.2")

        assert calls == [
            {
                "transition": "update",
                "identifier": "shop",
                "name": "acme/shop",
                "version": "1.2",
                "old_version": "1.0",
                "new_version": "1.2",
                "direction": "upgrade",
            }
        ]
        assert outcome.applied
        assert manager.record("acme/shop").installed_version == "1.2"

    def test_update_downgrade_and_incomparable(self):
        """Direction is 'downgrade' going back, None for non-numeric versions."""
        registry, manager = _manager()
        directions = []
        registry.register("update_shop", lambda p: directions.append(p["direction"]))

        manager.request_install("acme/shop", "2.0")
        manager.request_update("acme/shop", "1.9.5")
        manager.request_update("acme/shop", "2.0-beta")

        assert directions == ["downgrade", None]

    def test_update_same_version_is_noop(self):
        """Unchanged version: NOOP status, no dispatch, no store write."""
        store = RecordingStore()
        registry, manager = _manager(store)
        calls = []
        registry.register("update_shop", lambda p: calls.append(p))

        manager.request_install("acme/shop", "1.0")
        writes_before = list(store.writes)
        outcome = manager.request_update("acme/shop", "1.0")

        assert outcome.status is TransitionStatus.NOOP
        assert not outcome.applied
        assert outcome.report is None
        assert calls == []
        assert store.writes == writes_before

    def test_update_unknown_raises(self):
        """Updating a plugin without a record signals NotInstalled."""
        _, manager = _manager()
        with pytest.raises(NotInstalledError, match="not installed"):
            manager.request_update("acme/shop", "1.0")


class TestRemove:
    """Test remove transitions."""

    def test_remove_dispatches_then_deletes(self):
        """Remove fires remove_<id> with the installed version, then deletes the record."""
        store = RecordingStore()
        registry, manager = _manager(store)
        calls = []
        registry.register("remove_shop", lambda p: calls.append((p["version"], store.get("shop"))))

        manager.request_install("acme/shop", "1.0")
        outcome = manager.request_remove("acme/shop")

        # Record still present while handlers ran
        assert calls == [("1.0", "1.0")]
        assert store.writes[-1] == ("delete", "shop")
        assert outcome.record.installed_version is None
        assert manager.state("acme/shop") == PluginState.REMOVED
        assert manager.record("acme/shop") is None

    def test_remove_unknown_raises(self):
        """Removing an unknown plugin signals NotInstalled."""
        _, manager = _manager()
        with pytest.raises(NotInstalledError):
            manager.request_remove("vendor/never-installed")

    def test_remove_twice_raises(self):
        """A removed plugin cannot be removed again."""
        _, manager = _manager()
        manager.request_install("acme/shop", "1.0")
        manager.request_remove("acme/shop")

        with pytest.raises(NotInstalledError):
            manager.request_remove("acme/shop")

    def test_reinstall_after_remove(self):
        """A removed plugin can be installed again."""
        registry, manager = _manager()
        calls = []
        registry.register("install_shop", lambda p: calls.append(p["version"]))

        manager.request_install("acme/shop", "1.0")
        manager.request_remove("acme/shop")
        manager.request_install("acme/shop", "1.1")

        assert calls == ["1.0", "1.1"]
        assert manager.state("acme/shop") == PluginState.INSTALLED

    def test_repeated_cycles_keep_bookkeeping_bounded(self):
        """Install/remove cycles on one plugin reuse a single lock entry."""
        _, manager = _manager()

        for i in range(20):
            manager.request("acme/shop", f"1.{i}")
            manager.request_remove("acme/shop")

        assert list(manager._locks) == ["shop"]
        assert manager._removed == {"shop"}


class TestRequest:
    """Test the install-or-update convenience."""

    def test_request_installs_then_updates(self):
        """Absent -> install, present and different -> update, same -> noop."""
        _, manager = _manager()

        first = manager.request("acme/shop", "1.0")
        second = manager.request("acme/shop", "1.1")
        third = manager.request("acme/shop", "1.1")

        assert first.transition is LifecycleTransition.INSTALL
        assert second.transition is LifecycleTransition.UPDATE
        assert third.status is TransitionStatus.NOOP

    def test_concurrent_requests_install_once(self):
        """Concurrent install-or-update calls for a new plugin never collide."""
        registry, manager = _manager()
        installs = []
        registry.register("install_shop", lambda p: installs.append(p["version"]))
        barrier = threading.Barrier(8)
        outcomes = []
        errors = []

        def worker():
            barrier.wait()
            try:
                outcomes.append(manager.request("acme/shop", "1.0"))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert installs == ["1.0"]
        assert sum(1 for o in outcomes if o.transition is LifecycleTransition.INSTALL) == 1
        assert sum(1 for o in outcomes if o.status is TransitionStatus.NOOP) == 7

    def test_unknown_state(self):
        """A plugin never seen is UNKNOWN."""
        _, manager = _manager()
        assert manager.state("acme/ghost") == PluginState.UNKNOWN


class TestTomlVersionStore:
    """Test the TOML-backed store."""

    def test_put_get_delete(self):
        """Versions round-trip through the file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "state" / "plugins.toml"
            store = TomlVersionStore(path)

            assert store.get("shop") is None
            store.put("shop", "1.0")
            store.put("blog", "0.3")

            reopened = TomlVersionStore(path)
            assert reopened.get("shop") == "1.0"
            assert reopened.items() == {"shop": "1.0", "blog": "0.3"}

            reopened.delete("shop")
            reopened.delete("missing")
            assert store.get("shop") is None
            assert store.items() == {"blog": "0.3"}

    def test_other_tables_and_comments_survive(self):
        """Writes keep unrelated tables and comments."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "plugins.toml"
            path.write_text(
                "# managed by pm\n[meta]\nowner = \"ops\"\n\n[plugins]\nshop = \"1.0\"\n",
                encoding="utf-8",
            )
            store = TomlVersionStore(path)

            store.put("blog", "2.0")

            content = path.read_text(encoding="utf-8")
            assert "# managed by pm" in content
            assert 'owner = "ops"' in content
            assert store.items() == {"shop": "1.0", "blog": "2.0"}

    def test_lifecycle_with_toml_store(self):
        """The lifecycle manager persists through the TOML store."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "plugins.toml"
            _, manager = _manager(TomlVersionStore(path))

            manager.request_install("vendor/example-plugin", "1.0")
            manager.request_update("vendor/example-plugin", "1.1")

            assert TomlVersionStore(path).get("example_plugin") == "1.1"

            manager.request_remove("vendor/example-plugin")
            assert TomlVersionStore(path).get("example_plugin") is None
