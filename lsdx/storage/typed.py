"""
Typed storage tables.

Singleton and Bucket wrap a Storage namespace and (de)serialize values at
the boundary with a JSON codec. `update` follows load -> transform -> store:
nothing is written when the transform raises.
"""

import json
from typing import Any, Callable, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from ..exceptions import NotFoundError, StorageError
from .base import Storage, namespaced

T = TypeVar("T")


class JsonCodec(Generic[T]):
    """
    Canonical JSON codec.

    Dataclass records are stored through their to_dict/from_dict pair; plain
    JSON values (ints, strings, lists) are stored as-is.
    """

    def __init__(self, record_type: Optional[Type[T]] = None):
        self.record_type = record_type

    def encode(self, value: T) -> bytes:
        payload: Any = value.to_dict() if hasattr(value, "to_dict") else value
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()

    def decode(self, raw: bytes) -> T:
        try:
            payload = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Corrupt storage value: {e}") from e
        if self.record_type is not None and hasattr(self.record_type, "from_dict"):
            return self.record_type.from_dict(payload)
        return payload


INT_CODEC: JsonCodec[int] = JsonCodec()
STRING_LIST_CODEC: JsonCodec[List[str]] = JsonCodec()


class Singleton(Generic[T]):
    """A single typed value stored under one key."""

    def __init__(self, storage: Storage, key: bytes, codec: JsonCodec[T]):
        self.storage = storage
        self.key = namespaced(key)
        self.name = key.decode()
        self.codec = codec

    def may_load(self) -> Optional[T]:
        raw = self.storage.get(self.key)
        return None if raw is None else self.codec.decode(raw)

    def load(self) -> T:
        value = self.may_load()
        if value is None:
            raise NotFoundError(self.name)
        return value

    def save(self, value: T) -> None:
        self.storage.set(self.key, self.codec.encode(value))

    def update(self, action: Callable[[T], T]) -> T:
        updated = action(self.load())
        self.save(updated)
        return updated

    def remove(self) -> None:
        self.storage.remove(self.key)


class Bucket(Generic[T]):
    """A namespace of typed values keyed by raw bytes (canonical addresses)."""

    def __init__(self, storage: Storage, namespace: bytes, codec: JsonCodec[T]):
        self.storage = storage
        self.prefix = namespaced(namespace)
        self.name = namespace.decode()
        self.codec = codec

    def may_load(self, key: bytes) -> Optional[T]:
        raw = self.storage.get(self.prefix + key)
        return None if raw is None else self.codec.decode(raw)

    def load(self, key: bytes) -> T:
        value = self.may_load(key)
        if value is None:
            raise NotFoundError(f"{self.name} entry {key!r}")
        return value

    def save(self, key: bytes, value: T) -> None:
        self.storage.set(self.prefix + key, self.codec.encode(value))

    def remove(self, key: bytes) -> None:
        self.storage.remove(self.prefix + key)

    def update(self, key: bytes, action: Callable[[Optional[T]], T]) -> T:
        updated = action(self.may_load(key))
        self.save(key, updated)
        return updated

    def range(self) -> Iterator[Tuple[bytes, T]]:
        offset = len(self.prefix)
        for key, raw in self.storage.scan(self.prefix):
            yield key[offset:], self.codec.decode(raw)
