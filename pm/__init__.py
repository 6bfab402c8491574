"""
pm - Package manager CLI for hookline plugins.

Installs, upgrades, removes and lists plugins recorded in the TOML
version store configured in config/hookline.toml.
"""

__all__ = []
