"""
pm commands - shared setup for -S, -R, -U and -Q.
"""

import sys
from collections.abc import Callable
from typing import Any

from hookline.config import load_settings
from hookline.host import Host
from hookline.plugin.manager import PluginManager
from hookline.plugin.store import TomlVersionStore


def build_manager(args: Any) -> PluginManager:
    """Wire a plugin manager against the TOML store named in the config."""
    settings = load_settings(args.config)
    host = Host.create(settings, store=TomlVersionStore(settings.store_path))
    return PluginManager(host.registry, host.lifecycle)


def run_targets(args: Any, usage: str, action: Callable[[str], None]) -> int:
    """
    Apply an action to every target, reporting failures per target.

    Returns:
        0 if every target succeeded, 1 otherwise
    """
    if not args.targets:
        print("Error: No targets specified", file=sys.stderr)
        print(f"Usage: {usage}", file=sys.stderr)
        return 1

    success_count = 0
    fail_count = 0
    for target in args.targets:
        try:
            action(target)
            success_count += 1
        except Exception as e:
            print(f"Failed: {target}: {e}", file=sys.stderr)
            fail_count += 1

    if args.verbose:
        print(f"\nSucceeded: {success_count}, Failed: {fail_count}")

    return 0 if fail_count == 0 else 1


def describe_failures(outcome: Any) -> None:
    """Print handler failures recorded during a transition."""
    if outcome.report is None:
        return
    for failure in outcome.report.failures:
        print(
            f"  warning: handler {failure.subscriber.label} failed: {failure.error}",
            file=sys.stderr,
        )
