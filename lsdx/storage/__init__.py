"""
LSDX Storage

Namespaced byte-key storage, overlay transactions, typed tables and the
SQLite persistence adapter.
"""

from .base import Storage, MemoryStorage, StorageTransaction, namespaced
from .typed import Bucket, Singleton, JsonCodec, INT_CODEC, STRING_LIST_CODEC
from .sqlite import SqliteStateStore

__all__ = [
    "Storage",
    "MemoryStorage",
    "StorageTransaction",
    "namespaced",
    "Bucket",
    "Singleton",
    "JsonCodec",
    "INT_CODEC",
    "STRING_LIST_CODEC",
    "SqliteStateStore",
]
