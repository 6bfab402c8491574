"""
hookline Hooks - Composition of response fragments at host extension points.

This module handles:
- Hook point declarations and catalogues
- Fragment aggregation in dispatch order
- Default fragment concatenation
"""

__all__ = []
