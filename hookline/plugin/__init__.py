"""
hookline Plugin System - Plugin lifecycle management and loading.

This module handles:
- Plugin identifiers and lifecycle event names
- Install / update / remove transitions
- Version persistence
- Manifest parsing and dynamic loading
- Subscriber registration
"""

__all__ = []
