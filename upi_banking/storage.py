"""
Storage Backend Module

Provides abstract storage interface and implementations for in-memory (testing,
demo) and SQLite (persistence). All monetary values stored as Decimal strings.

Both backends hold a re-entrant lock for the whole of an ``atomic()`` scope, so
a read-check-write sequence inside the scope is serialised against every other
storage caller, and both undo all writes made in the scope when it fails.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple, Union
from decimal import Decimal
from datetime import datetime, timezone
from enum import Enum
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager

from .exceptions import StorageError


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: int
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
            elif isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, Enum):
                result[key] = value.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary"""
        data = dict(data)
        if 'created_at' in data and isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if 'updated_at' in data and isinstance(data['updated_at'], str):
            data['updated_at'] = datetime.fromisoformat(data['updated_at'])

        return cls(**data)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: int, data: Dict[str, Any]) -> None:
        """Insert or replace a record"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: int) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table in insertion order"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters, in insertion order"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def next_id(self, table: str) -> int:
        """Allocate the next integer surrogate key for a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    @abstractmethod
    def begin_transaction(self) -> None:
        """Start (or join) a transaction and take the storage lock"""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit the current transaction scope and release the lock"""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Roll back the current transaction scope and release the lock"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
        except BaseException:
            self.rollback()
            raise
        self.commit()


class InMemoryStorage(StorageInterface):
    """
    In-memory storage implementation

    Writes made inside a transaction are journaled (the previous value of each
    touched key is remembered once) and replayed backwards on rollback.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._sequences: Dict[str, int] = {}
        self._lock = threading.RLock()
        self._depth = 0
        self._rollback_only = False
        self._undo: Dict[Tuple[str, str], Optional[Dict[str, Any]]] = {}
        self._undo_sequences: Dict[str, Optional[int]] = {}

    def _ensure_table(self, table: str) -> None:
        if table not in self._data:
            self._data[table] = {}

    @staticmethod
    def _copy(record: Dict[str, Any]) -> Dict[str, Any]:
        # Deep copy to prevent external mutation
        return json.loads(json.dumps(record, default=str))

    def save(self, table: str, record_id: int, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            key = str(record_id)
            if self._depth and (table, key) not in self._undo:
                self._undo[(table, key)] = self._data[table].get(key)
            self._data[table][key] = self._copy(data)

    def load(self, table: str, record_id: int) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(str(record_id))
            if record is not None:
                return self._copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [self._copy(record) for record in self._data[table].values()]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        with self._lock:
            self._ensure_table(table)
            results = []
            for record in self._data[table].values():
                if all(key in record and record[key] == value
                       for key, value in filters.items()):
                    results.append(self._copy(record))
            return results

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def next_id(self, table: str) -> int:
        """Allocate the next id for a table"""
        with self._lock:
            if self._depth and table not in self._undo_sequences:
                self._undo_sequences[table] = self._sequences.get(table)
            self._sequences[table] = self._sequences.get(table, 0) + 1
            return self._sequences[table]

    def begin_transaction(self) -> None:
        """Start a transaction, or join the one already open on this thread"""
        self._lock.acquire()
        if self._depth == 0:
            self._rollback_only = False
        self._depth += 1

    def commit(self) -> None:
        """Commit current transaction scope"""
        if self._depth == 0:
            raise StorageError("No active transaction to commit")
        try:
            self._depth -= 1
            if self._depth == 0:
                if self._rollback_only:
                    self._restore()
                    raise StorageError("Transaction rolled back by a nested scope")
                self._clear_journal()
        finally:
            self._lock.release()

    def rollback(self) -> None:
        """Roll back current transaction scope"""
        if self._depth == 0:
            raise StorageError("No active transaction to roll back")
        try:
            self._depth -= 1
            if self._depth == 0:
                self._restore()
            else:
                self._rollback_only = True
        finally:
            self._lock.release()

    def _restore(self) -> None:
        for (table, key), previous in self._undo.items():
            if previous is None:
                self._data[table].pop(key, None)
            else:
                self._data[table][key] = previous
        for table, previous in self._undo_sequences.items():
            if previous is None:
                self._sequences.pop(table, None)
            else:
                self._sequences[table] = previous
        self._clear_journal()

    def _clear_journal(self) -> None:
        self._undo = {}
        self._undo_sequences = {}
        self._rollback_only = False

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        # Autocommit mode; transactions are opened explicitly with BEGIN IMMEDIATE
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0
        self._rollback_only = False

        with self._lock:
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS _sequences (
                    name TEXT PRIMARY KEY,
                    value INTEGER NOT NULL
                )
            """)

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

    def save(self, table: str, record_id: int, data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock:
            self._ensure_table(table)

            now = utcnow().isoformat()
            data_json = json.dumps(data, default=str)

            # Upsert keeps the original rowid so insertion order survives updates
            self._connection.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
            """, (str(record_id), data_json, now, now))

    def load(self, table: str, record_id: int) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (str(record_id),))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY rowid
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        results = []
        for record in self.load_all(table):
            if all(key in record and record[key] == value
                   for key, value in filters.items()):
                results.append(record)
        return results

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def next_id(self, table: str) -> int:
        """Allocate the next id from the _sequences table"""
        with self._lock:
            self._connection.execute("""
                INSERT INTO _sequences (name, value) VALUES (?, 1)
                ON CONFLICT(name) DO UPDATE SET value = value + 1
            """, (table,))
            cursor = self._connection.execute("""
                SELECT value FROM _sequences WHERE name = ?
            """, (table,))
            return cursor.fetchone()['value']

    def begin_transaction(self) -> None:
        """Start a database transaction, taking the write lock up front"""
        self._lock.acquire()
        if self._depth == 0:
            try:
                self._connection.execute("BEGIN IMMEDIATE")
            except Exception:
                self._lock.release()
                raise
            self._rollback_only = False
        self._depth += 1

    def commit(self) -> None:
        """Commit current transaction"""
        if self._depth == 0:
            raise StorageError("No active transaction to commit")
        try:
            self._depth -= 1
            if self._depth == 0:
                if self._rollback_only:
                    self._rollback_only = False
                    self._connection.execute("ROLLBACK")
                    raise StorageError("Transaction rolled back by a nested scope")
                try:
                    self._connection.execute("COMMIT")
                except Exception:
                    self._connection.execute("ROLLBACK")
                    raise
        finally:
            self._lock.release()

    def rollback(self) -> None:
        """Rollback current transaction"""
        if self._depth == 0:
            raise StorageError("No active transaction to roll back")
        try:
            self._depth -= 1
            if self._depth == 0:
                self._rollback_only = False
                self._connection.execute("ROLLBACK")
            else:
                self._rollback_only = True
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
