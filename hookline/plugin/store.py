"""
Plugin Version Stores.

The lifecycle manager persists "which version of which plugin is installed"
through a minimal key/value contract:

    get(identifier) -> version | None
    put(identifier, version)
    delete(identifier)

Two implementations ship here:
- MemoryVersionStore: dict-backed, for tests and embedding
- TomlVersionStore: a [plugins] table in a TOML file, written with tomlkit
"""

import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from hookline.config.toml_handler import TOMLError, read_toml, write_toml


class StoreError(Exception):
    """Raised when the backing store cannot be read or written."""

    pass


@runtime_checkable
class VersionStore(Protocol):
    """Persistence collaborator used by the lifecycle manager."""

    def get(self, identifier: str) -> str | None: ...

    def put(self, identifier: str, version: str) -> None: ...

    def delete(self, identifier: str) -> None: ...


class MemoryVersionStore:
    """In-process version store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._versions: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, identifier: str) -> str | None:
        with self._lock:
            return self._versions.get(identifier)

    def put(self, identifier: str, version: str) -> None:
        with self._lock:
            self._versions[identifier] = version

    def delete(self, identifier: str) -> None:
        with self._lock:
            self._versions.pop(identifier, None)

    def items(self) -> dict[str, str]:
        with self._lock:
            return dict(self._versions)


class TomlVersionStore:
    """
    Version store persisted as a TOML table.

    File layout:

        [plugins]
        example_plugin = "1.0"

    Every write re-reads the file so that other tables in it survive.
    """

    TABLE = "plugins"

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            return read_toml(self.path)
        except TOMLError as e:
            raise StoreError(f"Failed to read version store {self.path}: {e}") from e

    def _write_all(self, data: dict) -> None:
        try:
            write_toml(self.path, data)
        except TOMLError as e:
            raise StoreError(f"Failed to write version store {self.path}: {e}") from e

    def _table(self, data: dict) -> dict:
        table = data.get(self.TABLE, {})
        if not isinstance(table, dict):
            raise StoreError(f"'{self.TABLE}' in {self.path} must be a table")
        return table

    def get(self, identifier: str) -> str | None:
        with self._lock:
            version = self._table(self._read_all()).get(identifier)
        return None if version is None else str(version)

    def put(self, identifier: str, version: str) -> None:
        with self._lock:
            data = self._read_all()
            table = dict(self._table(data))
            table[identifier] = version
            data[self.TABLE] = table
            self._write_all(data)

    def delete(self, identifier: str) -> None:
        with self._lock:
            data = self._read_all()
            table = dict(self._table(data))
            if identifier not in table:
                return
            del table[identifier]
            data[self.TABLE] = table
            self._write_all(data)

    def items(self) -> dict[str, str]:
        with self._lock:
            return {k: str(v) for k, v in self._table(self._read_all()).items()}
