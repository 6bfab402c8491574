"""
pm query command (-Q).

List installed plugins and their versions.
"""

from typing import Any

from hookline.config import load_settings
from hookline.plugin.store import TomlVersionStore


def query_command(args: Any) -> int:
    """Execute query command."""
    settings = load_settings(args.config)
    installed = TomlVersionStore(settings.store_path).items()

    if not installed:
        if args.verbose:
            print("No plugins installed")
        return 0

    for identifier in sorted(installed):
        if args.targets and identifier not in args.targets:
            continue
        print(f"{identifier} {installed[identifier]}")
    return 0
