"""
Tests for the Dispatcher and Payload container.

This test suite covers:
1. Dispatch order
2. Failure isolation and DispatchReport contents
3. Copy-on-pass payloads
4. Vetoes modeled as payload fields
5. Per-handler timeouts
"""

import logging
import tempfile
import threading
import time
import warnings
from pathlib import Path

import pytest

from hookline.core.dispatcher import DispatchError, Dispatcher
from hookline.core.payload import Payload
from hookline.core.registry import Registry
from hookline.core.utils import HandlerTimeoutError, UtilsError, call_with_timeout


def _dispatcher(**kwargs) -> Dispatcher:
    return Dispatcher(Registry(), **kwargs)


class RefusesPickling:
    """Object whose pickling hook raises an arbitrary error."""

    def __reduce__(self):
        raise RuntimeError("no pickling for this object")


class TestDispatchOrder:
    """Test handler invocation order."""

    def test_dispatch_in_priority_order(self):
        """Handlers run in ascending priority order."""
        dispatcher = _dispatcher()
        order = []

        dispatcher.registry.register("test.order", lambda p: order.append("late"), 20)
        dispatcher.registry.register("test.order", lambda p: order.append("early"), -5)
        dispatcher.registry.register("test.order", lambda p: order.append("middle"), 0)

        dispatcher.dispatch("test.order", {})

        assert order == ["early", "middle", "late"]

    def test_dispatch_passes_payload(self):
        """Every handler receives the payload value."""
        dispatcher = _dispatcher()
        seen = []

        dispatcher.registry.register("test.payload", lambda p: seen.append(p))
        dispatcher.registry.register("test.payload", lambda p: seen.append(p))

        dispatcher.dispatch("test.payload", {"version": "1.0"})

        assert seen == [{"version": "1.0"}, {"version": "1.0"}]

    def test_dispatch_no_subscribers(self):
        """Zero subscribers is a successful no-op."""
        report = _dispatcher().dispatch("test.nobody", {"x": 1})

        assert report.invoked == 0
        assert report.succeeded == 0
        assert report.failures == []
        assert report.ok

    def test_results_collected_in_order(self):
        """Handler return values are kept in dispatch order."""
        dispatcher = _dispatcher()
        dispatcher.registry.register("test.results", lambda p: "b", 2)
        dispatcher.registry.register("test.results", lambda p: "a", 1)
        dispatcher.registry.register("test.results", lambda p: None, 3)

        report = dispatcher.dispatch("test.results")

        assert report.values() == ["a", "b", None]
        assert [r.position for r in report.results] == [0, 1, 2]


class TestFailureIsolation:
    """Test that failing handlers never block siblings."""

    @pytest.mark.parametrize("failing", [0, 2, 4])
    def test_one_failure_all_invoked(self, failing):
        """N subscribers, subscriber k fails: N invoked, one failure at k."""
        dispatcher = _dispatcher(warn_on_failure=False)
        invoked = []

        def make(i):
            def handler(payload):
                invoked.append(i)
                if i == failing:
                    raise ValueError(f"handler {i} broke")
                return i

            return handler

        for i in range(5):
            dispatcher.registry.register("test.isolation", make(i), i)

        report = dispatcher.dispatch("test.isolation", {})

        assert invoked == [0, 1, 2, 3, 4]
        assert report.invoked == 5
        assert report.succeeded == 4
        assert len(report.failures) == 1
        assert report.failures[0].position == failing
        assert isinstance(report.failures[0].error, ValueError)
        assert not report.ok

    def test_failure_emits_runtime_warning(self):
        """Failures are announced as RuntimeWarning by default."""
        dispatcher = _dispatcher()

        def broken(payload):
            raise RuntimeError("boom")

        dispatcher.registry.register("test.warn", broken)

        with pytest.warns(RuntimeWarning, match="failed for 'test.warn': boom"):
            dispatcher.dispatch("test.warn", None)

    def test_warnings_can_be_disabled(self):
        """warn_on_failure=False records failures silently."""
        dispatcher = _dispatcher(warn_on_failure=False)
        dispatcher.registry.register("test.quiet", lambda p: 1 / 0)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            report = dispatcher.dispatch("test.quiet")

        assert len(report.failures) == 1

    def test_warnings_as_errors_do_not_abort_dispatch(self, caplog):
        """With warnings turned into errors, every handler still runs."""
        dispatcher = _dispatcher()
        called = []

        def broken(payload):
            raise ZeroDivisionError("division by zero")

        dispatcher.registry.register("test.strict_warnings", broken, 1)
        dispatcher.registry.register("test.strict_warnings", lambda p: called.append("B"), 2)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            with caplog.at_level(logging.WARNING, logger="hookline.core.dispatcher"):
                report = dispatcher.dispatch("test.strict_warnings", {})

        assert called == ["B"]
        assert report.invoked == 2
        assert len(report.failures) == 1
        assert "division by zero" in caplog.text

    def test_raise_for_failures(self):
        """Strictness is opt-in through the report."""
        dispatcher = _dispatcher(warn_on_failure=False)
        dispatcher.registry.register("test.strict", lambda p: 1 / 0, owner="shop")

        report = dispatcher.dispatch("test.strict")

        with pytest.raises(DispatchError, match="1 handler\\(s\\) failed") as exc_info:
            report.raise_for_failures()
        assert exc_info.value.report is report

    def test_raise_for_failures_ok(self):
        """A clean report does not raise."""
        dispatcher = _dispatcher()
        dispatcher.registry.register("test.clean", lambda p: None)

        dispatcher.dispatch("test.clean").raise_for_failures()


class TestPayloadCopies:
    """Test copy-on-pass semantics."""

    def test_mutation_not_visible_to_siblings(self):
        """A handler mutating its payload does not affect later handlers."""
        dispatcher = _dispatcher()
        seen = []

        def mutate(payload):
            payload["user"] = "mallory"
            payload["items"].append("injected")

        def observe(payload):
            seen.append((payload["user"], list(payload["items"])))

        dispatcher.registry.register("test.copy", mutate, 0)
        dispatcher.registry.register("test.copy", observe, 1)

        context = {"user": "ada", "items": ["a"]}
        dispatcher.dispatch("test.copy", context)

        assert seen == [("ada", ["a"])]
        assert context == {"user": "ada", "items": ["a"]}

    def test_shared_payload_when_copy_disabled(self):
        """copy_payloads=False hands the same object to every handler."""
        dispatcher = _dispatcher(copy_payloads=False)
        context = {"vetoed": False}

        def veto(payload):
            payload["vetoed"] = True

        skipped = []

        def later(payload):
            if payload["vetoed"]:
                skipped.append(True)
                return
            skipped.append(False)

        dispatcher.registry.register("test.veto", veto, 0)
        dispatcher.registry.register("test.veto", later, 1)

        report = dispatcher.dispatch("test.veto", context)

        # Dispatcher still invoked both; the veto is a payload field
        assert report.invoked == 2
        assert skipped == [True]

    def test_payload_copy_mode(self):
        """Serializable values are copied on every into()."""
        payload = Payload.any({"k": [1, 2]})
        first = payload.into()
        second = payload.into()

        first["k"].append(3)

        assert payload.is_copied
        assert second == {"k": [1, 2]}
        assert payload.inner_type() is dict

    def test_payload_shared_mode_for_unserializable(self):
        """Values dill cannot serialize are shared by reference."""
        stream = (i for i in range(3))
        payload = Payload.any(stream)

        assert not payload.is_copied
        assert payload.into() is stream

    def test_pickling_error_falls_back_to_shared(self):
        """An object whose pickling hook raises is passed by reference."""
        dispatcher = _dispatcher()
        obj = RefusesPickling()
        seen = []
        dispatcher.registry.register("test.refuse", lambda p: seen.append(p["obj"]) or "a")

        report = dispatcher.dispatch("test.refuse", {"obj": obj})

        assert report.values() == ["a"]
        assert seen == [obj]
        assert seen[0] is obj
        assert not Payload.any({"obj": obj}).is_copied

    def test_open_file_is_shared_not_reopened(self):
        """A payload holding an open file hands over the caller's handle."""
        dispatcher = _dispatcher()

        def append_line(payload):
            payload["out"].write("from handler\n")
            return payload["out"]

        dispatcher.registry.register("test.file", append_line)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out.log"
            with open(path, "w", encoding="utf-8") as f:
                f.write("keep\n")
                f.flush()

                report = dispatcher.dispatch("test.file", {"out": f})

                assert report.ok
                assert report.values()[0] is f
                assert not Payload.any({"out": f}).is_copied

            assert path.read_text(encoding="utf-8") == "keep\nfrom handler\n"

    def test_lock_inside_payload_is_shared(self):
        """Locks nested in a payload stay the caller's instance."""
        lock = threading.Lock()
        payload = Payload.any({"guard": lock, "n": 1})

        assert not payload.is_copied
        assert payload.into()["guard"] is lock

    def test_payload_wrap_idempotent(self):
        """Wrapping a Payload again returns it unchanged."""
        payload = Payload.any([1])
        assert Payload.any(payload) is payload
        assert Payload.shared(payload) is payload


class TestTimeouts:
    """Test call-site timeouts."""

    def test_timeout_recorded_as_failure(self):
        """A handler exceeding its timeout is a handler failure."""
        dispatcher = _dispatcher(warn_on_failure=False)
        after = []

        def slow(payload):
            time.sleep(0.5)

        dispatcher.registry.register("test.slow", call_with_timeout(slow, 0.05), 0)
        dispatcher.registry.register("test.slow", lambda p: after.append(True), 1)

        report = dispatcher.dispatch("test.slow")

        assert len(report.failures) == 1
        assert isinstance(report.failures[0].error, HandlerTimeoutError)
        assert after == [True]

    def test_fast_handler_returns_value(self):
        """Handlers finishing in time pass their result through."""
        wrapped = call_with_timeout(lambda p: p * 2, 1.0)
        assert wrapped(21) == 42

    def test_invalid_timeout(self):
        """Timeouts must be positive."""
        with pytest.raises(UtilsError, match="must be positive"):
            call_with_timeout(lambda p: p, 0)
