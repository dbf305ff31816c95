"""SQLite-backed document store with WAL mode."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..errors import ServiceError
from .base import DocumentStore, Record, apply_field_updates, to_json_safe

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    data TEXT NOT NULL DEFAULT '{}',
    PRIMARY KEY (collection, doc_id)
);
"""


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Tag sqlite failures at the boundary: locked/busy DBs are transient."""
    try:
        yield
    except sqlite3.OperationalError as exc:
        raise ServiceError.from_code("unavailable", f"Database temporarily unavailable: {exc}") from exc
    except sqlite3.DatabaseError as exc:
        raise ServiceError.from_code("internal", f"Database error: {exc}") from exc


class SQLiteDocumentStore(DocumentStore):
    """JSON documents in one SQLite table.

    Uses WAL mode for concurrent reads and fast writes. Calls are synchronous
    under the hood; each completes in well under a millisecond for the
    document sizes involved.
    """

    def __init__(self, db_path: str) -> None:
        super().__init__()
        path = Path(db_path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.executescript(_SCHEMA)
        logger.info("Opened document store at %s", path)

    def _load(self, collection: str, doc_id: str) -> Record | None:
        row = self._conn.execute(
            "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        ).fetchone()
        return None if row is None else json.loads(row[0])

    def _save(self, collection: str, doc_id: str, data: Record) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO documents (collection, doc_id, data) VALUES (?, ?, ?)",
            (collection, doc_id, json.dumps(data)),
        )
        self._conn.commit()

    async def get(self, collection: str, doc_id: str) -> Record | None:
        with _translate_errors():
            return self._load(collection, doc_id)

    async def add(self, collection: str, data: Record, doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex[:20]
        with _translate_errors():
            self._save(collection, doc_id, to_json_safe(data))
        await self._notify(collection, doc_id)
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: Record) -> None:
        with _translate_errors():
            current = self._load(collection, doc_id)
            if current is None:
                raise ServiceError.from_code("not-found", f"No document {collection}/{doc_id}")
            self._save(collection, doc_id, apply_field_updates(current, fields))
        await self._notify(collection, doc_id)

    async def delete(self, collection: str, doc_id: str) -> bool:
        with _translate_errors():
            cursor = self._conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            self._conn.commit()
        removed = cursor.rowcount > 0
        if removed:
            await self._notify(collection, doc_id)
        return removed

    async def _scan(self, collection: str) -> list[tuple[str, Record]]:
        with _translate_errors():
            rows = self._conn.execute(
                "SELECT doc_id, data FROM documents WHERE collection = ?",
                (collection,),
            ).fetchall()
        return [(row[0], json.loads(row[1])) for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
