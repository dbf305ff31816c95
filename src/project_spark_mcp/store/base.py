"""Document-store contract shared by the in-memory and SQLite backends.

Records are JSON-safe dicts keyed by ``(collection, id)``. ``update`` takes
partial fields whose keys may be dotted paths (``"progress.status"``) so that
concurrent writers touching different fields do not clobber each other.
Subscriptions deliver the full record after every change and ``None`` once
the document is deleted.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Record = dict[str, Any]
SnapshotCallback = Callable[[Record | None], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json_safe(data: Record) -> Record:
    """Deep-copy *data* into plain JSON types (datetimes become ISO strings)."""
    return json.loads(json.dumps(data, default=_json_default))


def apply_field_updates(record: Record, fields: Record) -> Record:
    """Return a copy of *record* with dotted-path *fields* applied."""
    updated = to_json_safe(record)
    for path, value in to_json_safe(fields).items():
        parts = path.split(".")
        target = updated
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = value
    return updated


def get_field(record: Record, path: str) -> Any:
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _sort_key(value: Any) -> tuple[bool, Any]:
    return (value is not None, value)


class DocumentStore(ABC):
    """Async CRUD + query + live subscription over JSON documents."""

    def __init__(self) -> None:
        self._subscribers: dict[tuple[str, str], list[tuple[SnapshotCallback, ErrorCallback | None]]] = {}

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Record | None:
        """Return the record or None when absent."""

    @abstractmethod
    async def add(self, collection: str, data: Record, doc_id: str | None = None) -> str:
        """Insert a document, returning its id (generated when not given)."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Record) -> None:
        """Apply a partial update. Raises a ``not-found`` ServiceError when absent."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Remove a document. Returns True if one was removed."""

    @abstractmethod
    async def _scan(self, collection: str) -> list[tuple[str, Record]]:
        """All ``(id, record)`` pairs of a collection."""

    async def query(
        self,
        collection: str,
        where: Record | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        """Equality-filtered query with a client-side sort.

        Returned records include their ``id``. Documents missing the sort
        field sort first ascending and last descending.
        """
        results: list[Record] = []
        for doc_id, record in await self._scan(collection):
            if all(get_field(record, k) == v for k, v in (where or {}).items()):
                results.append({**record, "id": doc_id})
        if order_by:
            results.sort(key=lambda r: _sort_key(get_field(r, order_by)), reverse=descending)
        if limit is not None:
            results = results[:limit]
        return results

    async def subscribe(
        self,
        collection: str,
        doc_id: str,
        callback: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Deliver the current record now and after every change.

        Returns a zero-arg callable that removes the subscription.
        """
        key = (collection, doc_id)
        entry = (callback, on_error)
        self._subscribers.setdefault(key, []).append(entry)

        def _unsubscribe() -> None:
            entries = self._subscribers.get(key, [])
            if entry in entries:
                entries.remove(entry)
            if not entries:
                self._subscribers.pop(key, None)

        await self._notify(collection, doc_id, only=[entry])
        return _unsubscribe

    def subscriber_count(self, collection: str, doc_id: str) -> int:
        return len(self._subscribers.get((collection, doc_id), []))

    async def _notify(
        self,
        collection: str,
        doc_id: str,
        *,
        only: list[tuple[SnapshotCallback, ErrorCallback | None]] | None = None,
    ) -> None:
        entries = only if only is not None else list(self._subscribers.get((collection, doc_id), []))
        if not entries:
            return
        try:
            record = await self.get(collection, doc_id)
        except Exception as exc:
            for _, on_error in entries:
                if on_error is not None:
                    on_error(exc)
            logger.warning("Snapshot read failed for %s/%s: %s", collection, doc_id, exc)
            return
        snapshot = None if record is None else {**record, "id": doc_id}
        for callback, on_error in entries:
            try:
                callback(None if snapshot is None else dict(snapshot))
            except Exception as exc:
                if on_error is None:
                    logger.exception("Subscriber for %s/%s failed", collection, doc_id)
                else:
                    on_error(exc)
