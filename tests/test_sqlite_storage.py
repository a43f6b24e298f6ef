"""
SQLite State Store Test Suite

Coverage:
  - Schema creation and reopen
  - Applying write-sets (set and delete)
  - Per-contract isolation
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from lsdx.exceptions import StorageError
from lsdx.storage import MemoryStorage, SqliteStateStore, StorageTransaction


class TestSqliteStateStore:
    """aiosqlite persistence of contract key spaces."""

    @pytest.mark.asyncio
    async def test_apply_and_reload(self, tmp_path):
        db_path = str(tmp_path / "nested" / "state.db")
        store = await SqliteStateStore.create(db_path)
        try:
            await store.apply("contract1", {b"a": b"1", b"b": b"2"})
            await store.apply("contract1", {b"a": None, b"c": b"3"})
            storage = await store.load("contract1")
        finally:
            await store.close()

        assert isinstance(storage, MemoryStorage)
        assert storage.snapshot() == {b"b": b"2", b"c": b"3"}

    @pytest.mark.asyncio
    async def test_state_survives_reopen(self, tmp_path):
        db_path = str(tmp_path / "state.db")
        store = await SqliteStateStore.create(db_path)
        base = MemoryStorage()
        txn = StorageTransaction(base)
        txn.set(b"\x00\x01k", b"value")
        await store.apply("c", txn.commit())
        await store.close()

        store = await SqliteStateStore.create(db_path)
        try:
            storage = await store.load("c")
        finally:
            await store.close()
        assert storage.get(b"\x00\x01k") == b"value"

    @pytest.mark.asyncio
    async def test_contracts_are_isolated(self, tmp_path):
        store = await SqliteStateStore.create(str(tmp_path / "state.db"))
        try:
            await store.apply("beta", {b"k": b"b"})
            await store.apply("alpha", {b"k": b"a"})
            await store.apply("empty", {})

            assert await store.contracts() == ["alpha", "beta"]
            assert (await store.load("alpha")).get(b"k") == b"a"
            assert len(await store.load("missing")) == 0
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_closed_store_raises(self, tmp_path):
        store = await SqliteStateStore.create(str(tmp_path / "state.db"))
        await store.close()
        with pytest.raises(StorageError, match="is not open"):
            await store.load("c")
