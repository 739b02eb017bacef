"""
Canteen Service — Document store

The core only ever talks to the ``DocumentStore`` interface:

    subscribe(collection, filters)  → async stream of full result-set snapshots
    list / get                      → one-shot reads
    create / update / delete        → writes (timestamps assigned by the store)

Two backends:
  - SqlDocumentStore    PostgreSQL JSON rows + Redis pub/sub change feed
  - MemoryDocumentStore in-process dicts + asyncio queues (tests, demos)

There are no transactions and no fencing: concurrent updates to the same
document are last-write-wins.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Protocol

from canteen.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# ── Collections ──────────────────────────────────────────────
ORDERS = "orders"
MENU = "menu"
USERS = "users"
ACCOUNTS = "accounts"
REVOKED_TOKENS = "revoked_tokens"

# Writers may send these, but the store owns them.
_STORE_FIELDS = ("id", "createdAt", "updatedAt")


class StoreError(Exception):
    """The backing store rejected or failed a read/write."""


class DocumentNotFound(StoreError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class DocumentStore(Protocol):
    async def list(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict]: ...
    async def get(self, collection: str, doc_id: str) -> dict | None: ...
    async def create(self, collection: str, fields: dict[str, Any]) -> str: ...
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...
    async def delete(self, collection: str, doc_id: str) -> None: ...
    def subscribe(self, collection: str, filters: dict[str, Any] | None = None) -> AsyncIterator[list[dict]]: ...


class BlobStore(Protocol):
    """Menu-image uploads. Only the interface lives here; images are stored as URLs."""
    async def upload(self, path: str, data: bytes) -> str: ...


def _payload(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in _STORE_FIELDS}


def matches(doc: dict, filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    return all(doc.get(k) == v for k, v in filters.items())


# ── In-process ────────────────────────────────────────────────────────────────

class MemoryDocumentStore:
    """Dict-backed store with the same semantics as the SQL backend.

    ``clock`` supplies the store-assigned timestamps, which lets tests pin
    ``createdAt`` / ``updatedAt``.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._data: dict[str, dict[str, dict]] = {}
        self._listeners: dict[str, list[asyncio.Queue]] = {}

    def _collection(self, name: str) -> dict[str, dict]:
        return self._data.setdefault(name, {})

    def _notify(self, collection: str) -> None:
        for q in self._listeners.get(collection, []):
            q.put_nowait(True)

    async def list(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict]:
        docs = [dict(d) for d in self._collection(collection).values()]
        return [d for d in docs if matches(d, filters)]

    async def get(self, collection: str, doc_id: str) -> dict | None:
        doc = self._collection(collection).get(doc_id)
        return dict(doc) if doc is not None else None

    async def create(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = str(uuid.uuid4())
        ts = self._clock()
        self._collection(collection)[doc_id] = {**_payload(fields), "id": doc_id, "createdAt": ts, "updatedAt": ts}
        self._notify(collection)
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentNotFound(collection, doc_id)
        docs[doc_id] = {**docs[doc_id], **_payload(fields), "updatedAt": self._clock()}
        self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        docs = self._collection(collection)
        if docs.pop(doc_id, None) is None:
            raise DocumentNotFound(collection, doc_id)
        self._notify(collection)

    async def subscribe(self, collection: str, filters: dict[str, Any] | None = None) -> AsyncIterator[list[dict]]:
        queue: asyncio.Queue = asyncio.Queue()
        self._listeners.setdefault(collection, []).append(queue)
        try:
            yield await self.list(collection, filters)
            while True:
                await queue.get()
                yield await self.list(collection, filters)
        finally:
            self._listeners[collection].remove(queue)


# ── Dependency ────────────────────────────────────────────────────────────────

_store: DocumentStore | None = None


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        if settings.DOCUMENT_STORE_BACKEND == "memory":
            _store = MemoryDocumentStore()
        else:
            from canteen.db.sql_store import SqlDocumentStore
            _store = SqlDocumentStore()
        logger.info("Document store backend: %s", settings.DOCUMENT_STORE_BACKEND)
    return _store
