"""
Hook point declarations.

Centralizes the hook point names a host exposes so that the host, its
plugins and tests reference constants instead of magic strings. A catalogue
can be strict, in which case rendering an undeclared name is an error.
"""

import re
from dataclasses import dataclass

from hookline.core.registry import InvalidArgumentError

# <domain>.<area> or deeper, lowercase, underscores allowed inside segments
_HOOK_NAME_RE = re.compile(r"^[a-z0-9_]+(\.[a-z0-9_]+)+$")


@dataclass(frozen=True)
class HookPoint:
    """
    A documented extension point.

    Attributes:
        name: Dotted hook point name (e.g. "admin.dashboard")
        description: What fragments rendered here end up as
    """

    name: str
    description: str = ""

    def __post_init__(self):
        if not isinstance(self.name, str) or not _HOOK_NAME_RE.match(self.name):
            raise InvalidArgumentError(
                f"Invalid hook point name: {self.name!r}. "
                f"Must be dotted lowercase segments (e.g. 'admin.dashboard')."
            )

    def __str__(self) -> str:
        return self.name


class HookCatalogue:
    """
    The set of hook points a host declares.

    Args:
        points: Initial hook points
        strict: Reject render requests for undeclared names
    """

    def __init__(self, points: list[HookPoint] | None = None, strict: bool = False):
        self._points: dict[str, HookPoint] = {}
        self.strict = strict
        for point in points or []:
            self.declare(point)

    def declare(self, point: HookPoint | str, description: str = "") -> HookPoint:
        """
        Declare a hook point.

        Raises:
            InvalidArgumentError: If the name is malformed or already declared
        """
        if isinstance(point, str):
            point = HookPoint(point, description)
        if point.name in self._points:
            raise InvalidArgumentError(f"Hook point '{point.name}' already declared")
        self._points[point.name] = point
        return point

    def check(self, hook_name: str) -> None:
        """Raise InvalidArgumentError for undeclared names in strict mode."""
        if self.strict and hook_name not in self._points:
            raise InvalidArgumentError(f"Undeclared hook point: {hook_name!r}")

    def get(self, hook_name: str) -> HookPoint | None:
        return self._points.get(hook_name)

    def names(self) -> list[str]:
        return sorted(self._points)

    def __contains__(self, hook_name: object) -> bool:
        return hook_name in self._points

    def __len__(self) -> int:
        return len(self._points)
