"""In-process document store — used for tests and when SPARK_DB_PATH is empty."""

from __future__ import annotations

import uuid

from ..errors import ServiceError
from .base import DocumentStore, Record, apply_field_updates, to_json_safe


class MemoryDocumentStore(DocumentStore):
    """Dict-backed store with the same semantics as the SQLite backend."""

    def __init__(self) -> None:
        super().__init__()
        self._docs: dict[str, dict[str, Record]] = {}

    async def get(self, collection: str, doc_id: str) -> Record | None:
        record = self._docs.get(collection, {}).get(doc_id)
        return None if record is None else to_json_safe(record)

    async def add(self, collection: str, data: Record, doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex[:20]
        self._docs.setdefault(collection, {})[doc_id] = to_json_safe(data)
        await self._notify(collection, doc_id)
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: Record) -> None:
        docs = self._docs.get(collection, {})
        if doc_id not in docs:
            raise ServiceError.from_code("not-found", f"No document {collection}/{doc_id}")
        docs[doc_id] = apply_field_updates(docs[doc_id], fields)
        await self._notify(collection, doc_id)

    async def delete(self, collection: str, doc_id: str) -> bool:
        removed = self._docs.get(collection, {}).pop(doc_id, None) is not None
        if removed:
            await self._notify(collection, doc_id)
        return removed

    async def _scan(self, collection: str) -> list[tuple[str, Record]]:
        return [(k, to_json_safe(v)) for k, v in self._docs.get(collection, {}).items()]
