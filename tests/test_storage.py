"""
Contract Storage Test Suite

Coverage:
  - MemoryStorage ordering and value checks
  - StorageTransaction overlay, commit, discard and nesting
  - Namespaced table keys
  - Typed Singleton / Bucket tables
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from lsdx.exceptions import NotFoundError, StorageError
from lsdx.storage import (
    Bucket,
    INT_CODEC,
    JsonCodec,
    MemoryStorage,
    Singleton,
    StorageTransaction,
    namespaced,
)
from lsdx.staking.types import Supply


# ══════════════════════════════════════════════════════════════════════
#  MEMORY STORAGE
# ══════════════════════════════════════════════════════════════════════


class TestMemoryStorage:
    """Dict-backed base store."""

    def test_get_set_remove(self):
        store = MemoryStorage()
        assert store.get(b"k") is None
        store.set(b"k", b"v")
        assert store.get(b"k") == b"v"
        store.remove(b"k")
        assert store.get(b"k") is None
        # removing a missing key is a no-op
        store.remove(b"k")

    def test_scan_is_ordered_and_prefixed(self):
        store = MemoryStorage({b"b2": b"2", b"a1": b"1", b"b1": b"3"})
        assert [k for k, _ in store.scan()] == [b"a1", b"b1", b"b2"]
        assert list(store.scan(b"b")) == [(b"b1", b"3"), (b"b2", b"2")]

    def test_rejects_non_bytes(self):
        with pytest.raises(StorageError, match="must be bytes"):
            MemoryStorage().set(b"k", "text")


# ══════════════════════════════════════════════════════════════════════
#  TRANSACTIONS
# ══════════════════════════════════════════════════════════════════════


class TestStorageTransaction:
    """Write-buffering overlay semantics."""

    def test_writes_invisible_until_commit(self):
        base = MemoryStorage({b"a": b"1"})
        txn = StorageTransaction(base)
        txn.set(b"a", b"2")
        txn.set(b"b", b"3")
        assert txn.get(b"a") == b"2"
        assert base.get(b"a") == b"1"
        assert base.get(b"b") is None

        changes = txn.commit()
        assert changes == {b"a": b"2", b"b": b"3"}
        assert base.get(b"a") == b"2"
        assert base.get(b"b") == b"3"

    def test_discard_leaves_parent_untouched(self):
        base = MemoryStorage({b"a": b"1"})
        txn = StorageTransaction(base)
        txn.set(b"a", b"2")
        txn.remove(b"a")
        txn.discard()
        assert base.snapshot() == {b"a": b"1"}

    def test_removal_masks_parent(self):
        base = MemoryStorage({b"a": b"1", b"b": b"2"})
        txn = StorageTransaction(base)
        txn.remove(b"a")
        assert txn.get(b"a") is None
        assert list(txn.scan()) == [(b"b", b"2")]
        txn.commit()
        assert base.get(b"a") is None

    def test_scan_merges_overlay(self):
        base = MemoryStorage({b"x1": b"old", b"x3": b"3"})
        txn = StorageTransaction(base)
        txn.set(b"x1", b"new")
        txn.set(b"x2", b"2")
        txn.set(b"y", b"other")
        assert list(txn.scan(b"x")) == [(b"x1", b"new"), (b"x2", b"2"), (b"x3", b"3")]

    def test_closed_transaction_rejects_use(self):
        txn = StorageTransaction(MemoryStorage())
        txn.commit()
        with pytest.raises(StorageError, match="already committed"):
            txn.get(b"a")

    def test_nested_savepoint(self):
        base = MemoryStorage()
        outer = StorageTransaction(base)
        outer.set(b"a", b"1")

        inner = StorageTransaction(outer)
        inner.set(b"b", b"2")
        inner.discard()
        assert outer.get(b"b") is None

        inner = StorageTransaction(outer)
        inner.set(b"c", b"3")
        inner.commit()
        assert outer.get(b"c") == b"3"
        assert base.get(b"c") is None

        outer.commit()
        assert base.snapshot() == {b"a": b"1", b"c": b"3"}


# ══════════════════════════════════════════════════════════════════════
#  TYPED TABLES
# ══════════════════════════════════════════════════════════════════════


class TestTypedTables:
    """Singleton and Bucket wrappers."""

    def test_namespace_prefix_prevents_collisions(self):
        assert namespaced(b"balance", b"x") != namespaced(b"balancex", b"")
        assert namespaced(b"ab", b"c").startswith(b"\x00\x02ab")

    def test_singleton_roundtrip(self):
        store = MemoryStorage()
        table = Singleton(store, b"total_supply", JsonCodec(Supply))
        assert table.may_load() is None
        with pytest.raises(NotFoundError, match="total_supply not found"):
            table.load()

        table.save(Supply(issued=10, bonded=15, claims=2))
        assert table.load() == Supply(issued=10, bonded=15, claims=2)

    def test_singleton_update_writes_nothing_on_failure(self):
        store = MemoryStorage()
        table = Singleton(store, b"total_supply", JsonCodec(Supply))
        table.save(Supply(issued=10, bonded=10))
        before = store.snapshot()

        def explode(supply):
            raise ValueError("boom")

        with pytest.raises(ValueError):
            table.update(explode)
        assert store.snapshot() == before

    def test_bucket_range_and_update(self):
        store = MemoryStorage()
        table = Bucket(store, b"balance", INT_CODEC)
        table.save(b"bob", 5)
        table.update(b"alice", lambda v: (v or 0) + 7)
        table.update(b"bob", lambda v: v + 1)

        assert dict(table.range()) == {b"alice": 7, b"bob": 6}
        with pytest.raises(NotFoundError):
            table.load(b"carol")

    def test_buckets_do_not_overlap(self):
        store = MemoryStorage()
        Bucket(store, b"balance", INT_CODEC).save(b"bob", 1)
        Bucket(store, b"claim", INT_CODEC).save(b"bob", 2)
        assert dict(Bucket(store, b"balance", INT_CODEC).range()) == {b"bob": 1}

    def test_corrupt_value_reported(self):
        store = MemoryStorage()
        table = Bucket(store, b"balance", INT_CODEC)
        store.set(namespaced(b"balance", b"bob"), b"\xff{")
        with pytest.raises(StorageError, match="Corrupt"):
            table.load(b"bob")
