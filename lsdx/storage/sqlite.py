"""
SQLite persistence for contract storage.

The engine itself works on in-memory storage; this adapter loads a
contract's key space at startup and flushes the write-set of every
committed operation.
"""
import os
from typing import Dict, List, Optional

import aiosqlite

from ..exceptions import StorageError
from ..logger import get_logger
from .base import MemoryStorage

logger = get_logger(__name__)


class SqliteStateStore:
    """aiosqlite-backed store of contract key/value state."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.connection: Optional[aiosqlite.Connection] = None

    @staticmethod
    async def create(db_path: str) -> "SqliteStateStore":
        """Open (creating if needed) the state database."""
        self = SqliteStateStore(db_path)

        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.connection = await aiosqlite.connect(db_path)
        await self.connection.execute("PRAGMA journal_mode=WAL")
        await self.connection.execute("PRAGMA synchronous=NORMAL")
        await self._init_schema()

        logger.info(f"State database opened: {db_path}")
        return self

    async def _init_schema(self):
        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS contract_state (
                contract TEXT NOT NULL,
                key BLOB NOT NULL,
                value BLOB NOT NULL,
                PRIMARY KEY (contract, key)
            )
            """
        )
        await self.connection.commit()

    def _require_open(self) -> aiosqlite.Connection:
        if self.connection is None:
            raise StorageError(f"State database {self.db_path} is not open")
        return self.connection

    async def load(self, contract: str) -> MemoryStorage:
        """Load every key of *contract* into a MemoryStorage."""
        conn = self._require_open()
        async with conn.execute(
            "SELECT key, value FROM contract_state WHERE contract = ?",
            (contract,),
        ) as cursor:
            rows = await cursor.fetchall()
        return MemoryStorage({bytes(key): bytes(value) for key, value in rows})

    async def apply(self, contract: str, changes: Dict[bytes, Optional[bytes]]) -> None:
        """Persist a write-set atomically (None values delete the key)."""
        if not changes:
            return
        conn = self._require_open()
        try:
            for key, value in changes.items():
                if value is None:
                    await conn.execute(
                        "DELETE FROM contract_state WHERE contract = ? AND key = ?",
                        (contract, key),
                    )
                else:
                    await conn.execute(
                        "INSERT OR REPLACE INTO contract_state (contract, key, value) "
                        "VALUES (?, ?, ?)",
                        (contract, key, value),
                    )
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            raise StorageError(f"Failed to persist state for {contract}: {e}") from e
        logger.debug(f"Persisted {len(changes)} key(s) for {contract}")

    async def contracts(self) -> List[str]:
        conn = self._require_open()
        async with conn.execute(
            "SELECT DISTINCT contract FROM contract_state ORDER BY contract"
        ) as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def close(self):
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
