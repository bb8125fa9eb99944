"""
Snapshot Storage Module

Where ledger snapshots are written. A snapshot is a set of entity tables
(accounts, users, cards), each a mapping of record id to a JSON-compatible
record. Bank.save replaces every table inside one atomic block and Bank.load
reads them back; nothing else touches storage.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union
from pathlib import Path
from contextlib import contextmanager
import json
import sqlite3
import threading


class StorageInterface(ABC):
    """Backend holding the entity tables of a ledger snapshot"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Insert or replace one record"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Every record of a table, in insertion order"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Drop every record of a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def begin_transaction(self) -> None:
        """Start a transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit the current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Discard the current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """All writes in the block land together or not at all"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise


class InMemoryStorage(StorageInterface):
    """
    Process-local snapshot storage for tests

    Records are kept as JSON text, so callers never share mutable state with
    the store.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[str, str]] = {}
        self._pending: Optional[Dict[str, Dict[str, str]]] = None
        self._lock = threading.RLock()

    def _active(self) -> Dict[str, Dict[str, str]]:
        # Writes inside a transaction go to a working copy
        return self._pending if self._pending is not None else self._tables

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._active().setdefault(table, {})[record_id] = json.dumps(data)

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [json.loads(text) for text in self._active().get(table, {}).values()]

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._active().pop(table, None)

    def begin_transaction(self) -> None:
        with self._lock:
            if self._pending is None:
                self._pending = {table: dict(records) for table, records in self._tables.items()}

    def commit(self) -> None:
        with self._lock:
            if self._pending is not None:
                self._tables = self._pending
                self._pending = None

    def rollback(self) -> None:
        with self._lock:
            self._pending = None

    def close(self) -> None:
        pass


class SQLiteStorage(StorageInterface):
    """
    SQLite snapshot storage

    Every entity lives in a single ledger_snapshot table keyed by
    (entity, record_id). The connection runs in autocommit mode and
    transactions are opened explicitly, so a snapshot written through
    atomic() is one BEGIN ... COMMIT.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS ledger_snapshot (
            entity TEXT NOT NULL,
            record_id TEXT NOT NULL,
            data TEXT NOT NULL,
            PRIMARY KEY (entity, record_id)
        )
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        self._lock = threading.RLock()
        self._in_transaction = False
        self._connection.execute(self.SCHEMA)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._connection.execute(
                """
                INSERT INTO ledger_snapshot (entity, record_id, data) VALUES (?, ?, ?)
                ON CONFLICT (entity, record_id) DO UPDATE SET data = excluded.data
                """,
                (table, record_id, json.dumps(data))
            )

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self._connection.execute(
                "SELECT data FROM ledger_snapshot WHERE entity = ? ORDER BY rowid",
                (table,)
            ).fetchall()
            return [json.loads(data) for (data,) in rows]

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._connection.execute("DELETE FROM ledger_snapshot WHERE entity = ?", (table,))

    def begin_transaction(self) -> None:
        with self._lock:
            if not self._in_transaction:
                self._connection.execute("BEGIN IMMEDIATE")
                self._in_transaction = True

    def commit(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._connection.execute("COMMIT")
                self._in_transaction = False

    def rollback(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._connection.execute("ROLLBACK")
                self._in_transaction = False

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
