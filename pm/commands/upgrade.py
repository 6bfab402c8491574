"""
pm upgrade command (-U).

Move installed plugins to the version found in their directories.
"""

from pathlib import Path
from typing import Any

from pm.commands import build_manager, describe_failures, run_targets


def upgrade_command(args: Any) -> int:
    """Execute upgrade command."""
    manager = build_manager(args)

    def upgrade(target: str) -> None:
        outcome = manager.update(Path(target))
        record = outcome.record
        if not outcome.applied:
            print(f"{record.identifier} is up to date ({record.installed_version})")
            return
        print(f"updated {record.identifier} to {record.installed_version}")
        describe_failures(outcome)

    return run_targets(args, "pm -U <plugin-dir>...", upgrade)
