"""Record-store and blob-store adapters.

The engine only needs two narrow operations from each collaborator. The record
store keeps one active signature per (user, entity): regenerating an artifact
overwrites it, which revokes every artifact issued earlier for that key. The
blob store persists raw bytes under a relative path.

The concrete classes here are reference adapters for the UI and tests;
production deployments plug in their own implementations of the protocols.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Generator, Optional, Protocol, Tuple

from .utils import write_atomic


@dataclass
class SignatureRecord:
    user_id: str
    entity_name: str
    signature: str
    created_at: datetime
    updated_at: datetime


class RecordStore(Protocol):
    def upsert(self, user_id: str, entity_name: str, signature: str) -> None: ...

    def exists(self, user_id: str, signature: str) -> bool: ...


class BlobStore(Protocol):
    def save(self, data: bytes, path: str) -> str: ...

    def load(self, path: str) -> bytes: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRecordStore:
    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], SignatureRecord] = {}

    def upsert(self, user_id: str, entity_name: str, signature: str) -> None:
        now = _now()
        existing = self._records.get((user_id, entity_name))
        created = existing.created_at if existing else now
        self._records[(user_id, entity_name)] = SignatureRecord(
            user_id, entity_name, signature, created, now
        )

    def exists(self, user_id: str, signature: str) -> bool:
        return any(
            r.user_id == user_id and r.signature == signature for r in self._records.values()
        )

    def get(self, user_id: str, entity_name: str) -> Optional[SignatureRecord]:
        return self._records.get((user_id, entity_name))


class SqliteRecordStore:
    """Signature records in a SQLite table ``user_file_hashes``."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._shared: Optional[sqlite3.Connection] = (
            sqlite3.connect(db_path) if db_path == ":memory:" else None
        )
        self.init_db()

    @contextmanager
    def get_db(self) -> Generator[sqlite3.Connection, None, None]:
        if self._shared is not None:
            yield self._shared
            return
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.get_db() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS user_file_hashes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    entity_name TEXT NOT NULL,
                    hash_key TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (user_id, entity_name)
                )
            ''')
            conn.commit()

    def upsert(self, user_id: str, entity_name: str, signature: str) -> None:
        now = _now().isoformat()
        with self.get_db() as conn:
            conn.execute(
                '''
                INSERT INTO user_file_hashes (user_id, entity_name, hash_key, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id, entity_name)
                DO UPDATE SET hash_key = excluded.hash_key, updated_at = excluded.updated_at
                ''',
                (user_id, entity_name, signature, now, now),
            )
            conn.commit()

    def exists(self, user_id: str, signature: str) -> bool:
        with self.get_db() as conn:
            row = conn.execute(
                "SELECT 1 FROM user_file_hashes WHERE user_id = ? AND hash_key = ? LIMIT 1",
                (user_id, signature),
            ).fetchone()
        return row is not None

    def get(self, user_id: str, entity_name: str) -> Optional[SignatureRecord]:
        with self.get_db() as conn:
            row = conn.execute(
                "SELECT user_id, entity_name, hash_key, created_at, updated_at "
                "FROM user_file_hashes WHERE user_id = ? AND entity_name = ?",
                (user_id, entity_name),
            ).fetchone()
        if row is None:
            return None
        return SignatureRecord(
            row[0], row[1], row[2], datetime.fromisoformat(row[3]), datetime.fromisoformat(row[4])
        )


class LocalBlobStore:
    """Stores blobs as files below ``root``, written atomically."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise ValueError(f"path escapes storage root: {path!r}")
        return target

    def save(self, data: bytes, path: str) -> str:
        target = self._resolve(path)
        write_atomic(target, data)
        return str(target)

    def load(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()


__all__ = [
    "SignatureRecord",
    "RecordStore",
    "BlobStore",
    "InMemoryRecordStore",
    "SqliteRecordStore",
    "LocalBlobStore",
]
