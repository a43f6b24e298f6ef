"""
Contract Key-Value Storage

Byte-keyed storage with namespaced tables and overlay transactions.
Every handler runs against a StorageTransaction; writes reach the parent
store only when the handler completes without raising.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional, Tuple

from ..exceptions import StorageError


def namespaced(namespace: bytes, key: bytes = b"") -> bytes:
    """
    Build a table key: 2-byte big-endian namespace length, namespace, key.

    The length prefix keeps "balance" + key from colliding with a table
    whose name happens to start with "balance".
    """
    if len(namespace) > 0xFFFF:
        raise StorageError(f"Namespace too long: {len(namespace)} bytes")
    return len(namespace).to_bytes(2, "big") + namespace + key


class Storage(ABC):
    """Abstract byte-keyed store with read-modify-write semantics."""

    @abstractmethod
    def get(self, key: bytes) -> Optional[bytes]:
        ...

    @abstractmethod
    def set(self, key: bytes, value: bytes) -> None:
        ...

    @abstractmethod
    def remove(self, key: bytes) -> None:
        ...

    @abstractmethod
    def scan(self, prefix: bytes = b"") -> Iterator[Tuple[bytes, bytes]]:
        """Yield (key, value) pairs whose key starts with *prefix*, in key order."""
        ...


class MemoryStorage(Storage):
    """Dict-backed storage."""

    def __init__(self, initial: Optional[Dict[bytes, bytes]] = None):
        self._data: Dict[bytes, bytes] = dict(initial or {})

    def get(self, key: bytes) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: bytes, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise StorageError(f"Storage values must be bytes, got {type(value).__name__}")
        self._data[key] = bytes(value)

    def remove(self, key: bytes) -> None:
        self._data.pop(key, None)

    def scan(self, prefix: bytes = b"") -> Iterator[Tuple[bytes, bytes]]:
        for key in sorted(k for k in self._data if k.startswith(prefix)):
            yield key, self._data[key]

    def __len__(self) -> int:
        return len(self._data)

    def snapshot(self) -> Dict[bytes, bytes]:
        return dict(self._data)


class StorageTransaction(Storage):
    """
    Write-buffering overlay on top of another Storage.

    Reads fall through to the parent for keys not written in this
    transaction. A removed key is recorded as None so it masks the parent.
    Transactions nest: a transaction over a transaction is a savepoint.
    """

    def __init__(self, parent: Storage):
        self.parent = parent
        self._writes: Dict[bytes, Optional[bytes]] = {}
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError("Transaction already committed or discarded")

    def get(self, key: bytes) -> Optional[bytes]:
        self._check_open()
        if key in self._writes:
            return self._writes[key]
        return self.parent.get(key)

    def set(self, key: bytes, value: bytes) -> None:
        self._check_open()
        if not isinstance(value, (bytes, bytearray)):
            raise StorageError(f"Storage values must be bytes, got {type(value).__name__}")
        self._writes[key] = bytes(value)

    def remove(self, key: bytes) -> None:
        self._check_open()
        self._writes[key] = None

    def scan(self, prefix: bytes = b"") -> Iterator[Tuple[bytes, bytes]]:
        self._check_open()
        merged = {k: v for k, v in self.parent.scan(prefix)}
        for key, value in self._writes.items():
            if not key.startswith(prefix):
                continue
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        for key in sorted(merged):
            yield key, merged[key]

    @property
    def changes(self) -> Dict[bytes, Optional[bytes]]:
        """Write-set of this transaction (None marks a removal)."""
        return dict(self._writes)

    def commit(self) -> Dict[bytes, Optional[bytes]]:
        """Apply buffered writes to the parent and close the transaction."""
        self._check_open()
        for key, value in self._writes.items():
            if value is None:
                self.parent.remove(key)
            else:
                self.parent.set(key, value)
        self._closed = True
        return dict(self._writes)

    def discard(self) -> None:
        self._writes.clear()
        self._closed = True
