"""
pm remove command (-R).

Remove installed plugins by name ("vendor/name") or identifier.
"""

import sys
from typing import Any

from pm.commands import build_manager, describe_failures, run_targets


def remove_command(args: Any) -> int:
    """
    Execute remove command.

    When --plugins-dir is given, the plugins found there are activated first
    so that their remove handlers run.
    """
    manager = build_manager(args)

    if args.plugins_dir is not None:
        for info in manager.discover_plugins(args.plugins_dir):
            try:
                manager.activate(info.path)
            except Exception as e:
                print(f"  warning: could not load {info.manifest.name}: {e}", file=sys.stderr)

    def remove(target: str) -> None:
        outcome = manager.remove(target)
        print(f"removed {outcome.record.identifier}")
        describe_failures(outcome)

    return run_targets(args, "pm -R <plugin>...", remove)
