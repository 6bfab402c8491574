"""
hookline Core - Event registration and dispatch.

This module contains the fundamental building blocks:
- Registry: Ordered subscribers per event name
- Dispatcher: Failure-isolating sequential dispatch
- Payload: Copy-on-pass container for dispatch payloads
- Utils: Event name validation, per-handler timeouts
"""

__all__ = []
