"""On-disk storage that persists the replica state and the log."""

from __future__ import annotations

import pickle
import sqlite3
import struct
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from .ops import Storage, StorageError

_DEFAULT_PATH = "/default_storage/"
_DB_FILE = "storage.sqlite3"

_NPROM = "NPROM"
_ACC = "ACC"
_DECIDE = "DECIDE"
_TRIM = "TRIM"
_STOPSIGN = "STOPSIGN"
_SNAPSHOT = "SNAPSHOT"

_INDEX = struct.Struct("<Q")


def _dumps(value: Any) -> bytes:
    try:
        return pickle.dumps(value)
    except (pickle.PicklingError, TypeError, AttributeError) as exc:
        raise StorageError(f"cannot serialize {value!r}: {exc}") from exc


def _loads(data: bytes) -> Any:
    try:
        return pickle.loads(data)
    except Exception as exc:
        raise StorageError(f"cannot deserialize stored value: {exc}") from exc


def _decode_index(data: bytes) -> int:
    if len(data) != _INDEX.size:
        raise StorageError("stored index has an unexpected format")
    return _INDEX.unpack(data)[0]


@dataclass
class PersistentStorageConfig:
    """Where the storage lives and whether it may be created."""

    path: str = _DEFAULT_PATH
    create_if_missing: bool = True

    @classmethod
    def with_path(cls, path: str) -> "PersistentStorageConfig":
        return cls(path=str(path))


class PersistentStorage(Storage):
    """Writes the log and the replica state to an on-disk database."""

    def __init__(self, conn: sqlite3.Connection, next_log_key: int) -> None:
        self._conn = conn
        self._next_log_key = next_log_key
        self._depth = 0

    @classmethod
    def open(cls, config: PersistentStorageConfig) -> "PersistentStorage":
        """Create a storage, or open the one already at ``config.path``."""
        directory = Path(config.path)
        if not directory.exists():
            if not config.create_if_missing:
                raise StorageError(f"no storage exists in {directory}")
            directory.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(directory / _DB_FILE, isolation_level=None)
            conn.execute(
                "CREATE TABLE IF NOT EXISTS log "
                "(idx INTEGER PRIMARY KEY, value BLOB NOT NULL)"
            )
            conn.execute(
                "CREATE TABLE IF NOT EXISTS state "
                "(key TEXT PRIMARY KEY, value BLOB NOT NULL)"
            )
            (max_key,) = conn.execute("SELECT MAX(idx) FROM log").fetchone()
            trim_row = conn.execute(
                "SELECT value FROM state WHERE key = ?", (_TRIM,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open storage in {directory}: {exc}") from exc
        if max_key is not None:
            next_log_key = max_key + 1
        elif trim_row is not None:
            next_log_key = _decode_index(trim_row[0])
        else:
            next_log_key = 0
        return cls(conn, next_log_key)

    @classmethod
    def new(cls, config: PersistentStorageConfig) -> "PersistentStorage":
        """Create a fresh storage; fail if anything exists at the path."""
        if Path(config.path).exists():
            raise FileExistsError(
                f"Cannot create new instance, database already exists in {config.path}"
            )
        return cls.open(config)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "PersistentStorage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return
        saved_key = self._next_log_key
        self._execute("BEGIN")
        self._depth = 1
        try:
            yield
            self._execute("COMMIT")
        except BaseException:
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error:
                pass
            self._next_log_key = saved_key
            raise
        finally:
            self._depth = 0

    def _put_state(self, key: str, value: bytes) -> None:
        self._execute(
            "INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)", (key, value)
        )

    def _get_state(self, key: str) -> Optional[bytes]:
        row = self._execute("SELECT value FROM state WHERE key = ?", (key,)).fetchone()
        return None if row is None else row[0]

    def _delete_log_range(self, from_key: int, to_key: int) -> None:
        self._execute(
            "DELETE FROM log WHERE idx >= ? AND idx < ?", (from_key, to_key)
        )

    def write_atomically(self, ops) -> None:
        with self._transaction():
            super().write_atomically(ops)

    def append_entry(self, entry: Any) -> None:
        data = _dumps(entry)
        with self._transaction():
            self._execute(
                "INSERT OR REPLACE INTO log (idx, value) VALUES (?, ?)",
                (self._next_log_key, data),
            )
            self._next_log_key += 1

    def append_entries(self, entries: Iterable[Any]) -> None:
        with self._transaction():
            for entry in entries:
                self.append_entry(entry)

    def append_on_prefix(self, from_idx: int, entries: Iterable[Any]) -> None:
        entries = list(entries)
        with self._transaction():
            # Entries that will be overwritten need not be deleted.
            delete_idx = from_idx + len(entries)
            if delete_idx < self._next_log_key:
                self._delete_log_range(delete_idx, self._next_log_key)
            self._next_log_key = from_idx
            self.append_entries(entries)

    def get_entries(self, from_idx: int, to_idx: int) -> list:
        if to_idx > self._next_log_key or from_idx >= to_idx:
            return []
        count = to_idx - from_idx
        rows = self._execute(
            "SELECT value FROM log WHERE idx >= ? ORDER BY idx LIMIT ?",
            (from_idx, count),
        ).fetchall()
        if len(rows) < count:
            raise StorageError(f"log entries missing between {from_idx} and {to_idx}")
        return [_loads(value) for (value,) in rows]

    def get_log_len(self) -> int:
        return self._next_log_key - self.get_compacted_idx()

    def get_suffix(self, from_idx: int) -> list:
        return self.get_entries(from_idx, self._next_log_key)

    def get_promise(self) -> Optional[Any]:
        data = self._get_state(_NPROM)
        return None if data is None else _loads(data)

    def set_promise(self, n_prom: Any) -> None:
        self._put_state(_NPROM, _dumps(n_prom))

    def get_decided_idx(self) -> int:
        data = self._get_state(_DECIDE)
        return 0 if data is None else _decode_index(data)

    def set_decided_idx(self, ld: int) -> None:
        self._put_state(_DECIDE, _INDEX.pack(ld))

    def get_accepted_round(self) -> Optional[Any]:
        data = self._get_state(_ACC)
        return None if data is None else _loads(data)

    def set_accepted_round(self, na: Any) -> None:
        self._put_state(_ACC, _dumps(na))

    def get_compacted_idx(self) -> int:
        data = self._get_state(_TRIM)
        return 0 if data is None else _decode_index(data)

    def set_compacted_idx(self, trimmed_idx: int) -> None:
        self._put_state(_TRIM, _INDEX.pack(trimmed_idx))

    def get_stopsign(self) -> Optional[Any]:
        data = self._get_state(_STOPSIGN)
        return None if data is None else _loads(data)

    def set_stopsign(self, s: Optional[Any]) -> None:
        self._put_state(_STOPSIGN, _dumps(s))

    def get_snapshot(self) -> Optional[Any]:
        data = self._get_state(_SNAPSHOT)
        return None if data is None else _loads(data)

    def set_snapshot(self, snapshot: Optional[Any]) -> None:
        self._put_state(_SNAPSHOT, _dumps(snapshot))

    def trim(self, trimmed_idx: int) -> None:
        self._delete_log_range(0, trimmed_idx)