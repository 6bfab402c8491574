"""
Payload Container - Copy-on-pass transport for dispatch payloads.

Every subscriber of one event receives the same logical payload, but no
subscriber may change what its siblings see. Payload provides that by
serializing the value once with dill and handing each subscriber a fresh
copy.

Two transport modes:
1. Copy path: plain data dill can serialize (value semantics, one copy per call)
2. Shared path: everything else, passed by reference. That covers values
   dill refuses or fails on, and values holding live resources (open files
   and streams, sockets, locks) anywhere inside them. dill could pickle
   some of those, but restoring them reopens or recreates the resource
   instead of handing over the caller's object.
"""

import io
import socket
import threading
from typing import Any

import dill


class PayloadError(Exception):
    """Base exception for payload-related errors."""

    pass


class _HoldsResource(Exception):
    """Raised while pickling when a live resource is found in the value."""

    pass


# Objects that must stay the caller's own instance
_RESOURCE_TYPES: tuple[type, ...] = (
    io.IOBase,
    socket.socket,
    type(threading.Lock()),
    type(threading.RLock()),
)


class _CopyPickler(dill.Pickler):
    """dill pickler that refuses values holding live resources."""

    def persistent_id(self, obj: Any) -> None:
        if isinstance(obj, _RESOURCE_TYPES):
            raise _HoldsResource(type(obj).__name__)
        return None


def _serialize(obj: Any) -> bytes | None:
    """
    Serialize a value for copy-on-pass, or return None if it must be shared.

    Any failure while pickling (a refused resource, an unpicklable member,
    or a __reduce__ / __getstate__ that raises) means the value is passed by
    reference. Serialization happens once per dispatch, not once per
    subscriber.
    """
    buffer = io.BytesIO()
    try:
        _CopyPickler(buffer).dump(obj)
    except Exception:
        return None
    return buffer.getvalue()


class Payload:
    """
    Immutable wrapper around the value passed to subscribers.

    Usage:
        payload = Payload.any({"version": "1.0"})
        a = payload.into()  # independent copy
        b = payload.into()  # another independent copy
        a["version"] = "2.0"
        assert b["version"] == "1.0"
    """

    COPY = "copy"
    SHARED = "shared"

    def __init__(self, inner_type: type, transport_mode: str, data: Any):
        """
        Internal constructor. Use Payload.any() or Payload.shared() instead.

        Args:
            inner_type: The type of the contained value
            transport_mode: Either Payload.COPY or Payload.SHARED
            data: Serialized bytes (copy) or the value itself (shared)
        """
        self._inner_type = inner_type
        self._mode = transport_mode
        self._data = data

    @classmethod
    def any(cls, value: Any) -> "Payload":
        """Wrap a value, copying it per subscriber when it is plain serializable data."""
        if isinstance(value, Payload):
            return value
        data = _serialize(value)
        if data is not None:
            return cls(type(value), cls.COPY, data)
        return cls(type(value), cls.SHARED, value)

    @classmethod
    def shared(cls, value: Any) -> "Payload":
        """Wrap a value that every subscriber should see by reference."""
        if isinstance(value, Payload):
            return value
        return cls(type(value), cls.SHARED, value)

    def into(self) -> Any:
        """
        Unpack the payload.

        For copy mode: deserializes and returns a new copy
        For shared mode: returns the same object
        """
        if self._mode == self.COPY:
            try:
                return dill.loads(self._data)
            except Exception as e:
                raise PayloadError(
                    f"Failed to restore {self._inner_type.__name__} payload: {e}"
                ) from e
        return self._data

    @property
    def is_copied(self) -> bool:
        return self._mode == self.COPY

    def inner_type(self) -> type:
        """The type of the contained value."""
        return self._inner_type

    def __repr__(self) -> str:
        return f"Payload<{self._inner_type.__name__}, mode={self._mode}>"
