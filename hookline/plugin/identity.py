"""
Plugin identifiers and canonical lifecycle event names.

A plugin is distributed under a package-style name such as
"vendor/example-plugin". Its identifier is the part after the vendor prefix
with hyphens turned into underscores, lower-cased: "example_plugin". The
identifier is the namespace fragment of its three lifecycle events.
"""

import re
from dataclasses import dataclass

from hookline.core.registry import InvalidArgumentError

_IDENTIFIER_RE = re.compile(r"^[a-z0-9_]+$")


@dataclass(frozen=True)
class LifecycleEventNames:
    """The three event names a plugin's lifecycle is driven through."""

    install: str
    update: str
    remove: str


def derive_identifier(name: str) -> str:
    """
    Derive the identifier for a package-style plugin name.

    Examples:
        >>> derive_identifier("vendor/example-plugin")
        'example_plugin'
        >>> derive_identifier("Acme/Shop-Widgets")
        'shop_widgets'
        >>> derive_identifier("standalone")
        'standalone'

    Raises:
        InvalidArgumentError: If the name is empty or yields an invalid identifier
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgumentError(f"Invalid plugin name: {name!r}")

    tail = name.strip().rstrip("/").rsplit("/", 1)[-1]
    identifier = tail.replace("-", "_").replace("/", "_").lower()

    if not _IDENTIFIER_RE.match(identifier):
        raise InvalidArgumentError(
            f"Plugin name {name!r} does not yield a valid identifier (got {identifier!r})"
        )
    return identifier


def lifecycle_event_names(identifier: str) -> LifecycleEventNames:
    """Build install_<id>, update_<id> and remove_<id> for an identifier."""
    if not isinstance(identifier, str) or not _IDENTIFIER_RE.match(identifier):
        raise InvalidArgumentError(f"Invalid plugin identifier: {identifier!r}")
    return LifecycleEventNames(
        install=f"install_{identifier}",
        update=f"update_{identifier}",
        remove=f"remove_{identifier}",
    )
