"""
pm install command (-S).

Install plugins from local plugin directories.
"""

from pathlib import Path
from typing import Any

from pm.commands import build_manager, describe_failures, run_targets


def install_command(args: Any) -> int:
    """
    Execute install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    manager = build_manager(args)

    def install(target: str) -> None:
        outcome = manager.install(Path(target))
        record = outcome.record
        print(f"installed {record.identifier} {record.installed_version}")
        describe_failures(outcome)

    return run_targets(args, "pm -S <plugin-dir>...", install)
