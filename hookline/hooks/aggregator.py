"""
Hook Aggregator - Collects response fragments from hook point subscribers.

A hook point is an event name the host declares as an extension point in
its rendering pipeline (e.g. "admin.dashboard", "page.footer"). Rendering
one fires the event with a context object and gathers what each subscriber
returns, in dispatch order, into a list of fragments.

Contributors are independent:
- each one receives its own copy of the context
- none of them sees another's fragment
- a failing contributor is dropped from the output, recorded in the
  dispatch report, and the rest still render

Fragments are opaque. The aggregator never inspects them; it only skips
None ("nothing to contribute") and anything the optional `accepts`
predicate rejects.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from hookline.core.dispatcher import DispatchReport, Dispatcher
from hookline.hooks.points import HookCatalogue


@dataclass
class HookResult:
    """
    Fragments of one hook point render plus how the dispatch went.

    Attributes:
        hook_name: The rendered hook point
        fragments: Contributed fragments in dispatch order
        report: Underlying dispatch report (failures live here)
    """

    hook_name: str
    fragments: list[Any] = field(default_factory=list)
    report: DispatchReport | None = None

    @property
    def dropped(self) -> int:
        """Number of contributors that failed."""
        return 0 if self.report is None else len(self.report.failures)

    def join(self, separator: str | bytes = "") -> Any:
        return join_fragments(self.fragments, separator)

    def __iter__(self):
        return iter(self.fragments)

    def __len__(self) -> int:
        return len(self.fragments)


def join_fragments(fragments: Sequence[Any], separator: str | bytes = "") -> Any:
    """
    Default concatenation policy.

    - all str fragments: joined into one str
    - all bytes fragments: joined into one bytes (separator encoded as UTF-8)
    - anything else: the fragments are returned unchanged as a list, for the
      rendering collaborator to compose
    - no fragments: empty str
    """
    if not fragments:
        return ""
    if all(isinstance(f, str) for f in fragments):
        sep = separator.decode("utf-8") if isinstance(separator, bytes) else separator
        return sep.join(fragments)
    if all(isinstance(f, bytes) for f in fragments):
        sep = separator if isinstance(separator, bytes) else separator.encode("utf-8")
        return sep.join(fragments)
    return list(fragments)


class HookAggregator:
    """
    Renders hook points through a dispatcher.

    Args:
        dispatcher: Dispatcher used to fire hook points
        accepts: Optional predicate deciding which handler results are fragments
        catalogue: Optional catalogue of declared hook points; strict
            catalogues reject undeclared names
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        accepts: Callable[[Any], bool] | None = None,
        catalogue: HookCatalogue | None = None,
    ):
        self.dispatcher = dispatcher
        self.accepts = accepts
        self.catalogue = catalogue

    def _is_fragment(self, value: Any) -> bool:
        if value is None:
            return False
        if self.accepts is not None:
            return bool(self.accepts(value))
        return True

    def render(self, hook_name: str, context: Any = None) -> HookResult:
        """
        Render a hook point and keep the dispatch report.

        Args:
            hook_name: Hook point name
            context: Caller-supplied context passed to every contributor

        Returns:
            HookResult with fragments in dispatch order
        """
        if self.catalogue is not None:
            self.catalogue.check(hook_name)

        report = self.dispatcher.dispatch(hook_name, context)
        fragments = [r.value for r in report.results if self._is_fragment(r.value)]
        return HookResult(hook_name, fragments, report)

    def render_hook_point(self, hook_name: str, context: Any = None) -> list[Any]:
        """Render a hook point and return only its fragments."""
        return self.render(hook_name, context).fragments
