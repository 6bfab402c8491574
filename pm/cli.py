"""
pm CLI - hookline Package Manager.

Pacman-style interface for managing hookline plugins.

Usage:
    pm -S <plugin-dir>...        Install plugin(s) from directories
    pm -U <plugin-dir>...        Update plugin(s) to the directory's version
    pm -R <plugin>...            Remove plugin(s) by name or identifier
    pm -Q                        List installed plugins
"""

import argparse
import sys
from pathlib import Path

from hookline.config import DEFAULT_CONFIG_FILE, ConfigError


class PMError(Exception):
    """Base exception for pm errors."""

    pass


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with pacman-style flags."""
    parser = argparse.ArgumentParser(
        prog="pm",
        description="hookline Package Manager - Pacman-style plugin manager",
        add_help=False,
    )

    # Operation flags (mutually exclusive)
    ops = parser.add_mutually_exclusive_group()
    ops.add_argument("-S", "--sync", action="store_true", help="Install plugin")
    ops.add_argument("-R", "--remove", action="store_true", help="Remove plugin")
    ops.add_argument("-U", "--upgrade", action="store_true", help="Update plugin(s)")
    ops.add_argument("-Q", "--query", action="store_true", help="Query installed")
    ops.add_argument("-h", "--help", action="store_true", help="Show help")

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help="Path to hookline.toml",
    )
    parser.add_argument(
        "--plugins-dir",
        type=Path,
        default=None,
        help="Directory to load plugins from before removing (-R)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    parser.add_argument("targets", nargs="*", help="Plugin directories or names")

    return parser


def print_help():
    """Print help message."""
    help_text = """
pm - hookline Package Manager

Usage:
    pm -S <plugin-dir>...        Install plugin(s) from directories
    pm -U <plugin-dir>...        Update plugin(s) to the directory's version
    pm -R <plugin>...            Remove plugin(s) by name or identifier
    pm -Q                        List installed plugins

Options:
    -c, --config <file>          Path to hookline.toml (default: config/hookline.toml)
    --plugins-dir <dir>          Load plugins from <dir> so -R reaches their handlers
    -v, --verbose                Verbose output
    -h, --help                   Show this help
"""
    print(help_text.strip())


def main(argv: list[str] | None = None) -> int:
    """Main entry point for pm CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        if args.help or (
            not args.sync
            and not args.remove
            and not args.upgrade
            and not args.query
        ):
            print_help()
            return 0

        # Route to appropriate command
        if args.sync:
            # -S: Install
            from pm.commands.install import install_command

            return install_command(args)

        elif args.remove:
            # -R: Remove
            from pm.commands.remove import remove_command

            return remove_command(args)

        elif args.upgrade:
            # -U: Update
            from pm.commands.upgrade import upgrade_command

            return upgrade_command(args)

        elif args.query:
            # -Q: Query
            from pm.commands.query import query_command

            return query_command(args)

    except (PMError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
