"""
Canteen Service — PostgreSQL document store with Redis change feed
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from canteen.core.redis_client import change_channel, get_redis, publish_change
from canteen.db.database import AsyncSessionLocal
from canteen.db.document_store import DocumentNotFound, StoreError, _payload, matches
from canteen.models.document import Document


class SqlDocumentStore:
    def __init__(self, session_factory=AsyncSessionLocal):
        self._sessions = session_factory

    async def _row(self, db, collection: str, doc_id: str) -> Document:
        row = await db.get(Document, doc_id)
        if row is None or row.collection != collection:
            raise DocumentNotFound(collection, doc_id)
        return row

    async def list(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict]:
        query = select(Document).where(Document.collection == collection)
        # String equality runs in SQL (data ->> key); other values are matched below.
        for key, value in (filters or {}).items():
            if isinstance(value, str):
                query = query.where(Document.data[key].as_string() == value)
        try:
            async with self._sessions() as db:
                result = await db.execute(query.order_by(Document.created_at))
                docs = [d.to_dict() for d in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise StoreError(f"list {collection} failed: {exc}") from exc
        return [d for d in docs if matches(d, filters)]

    async def get(self, collection: str, doc_id: str) -> dict | None:
        try:
            async with self._sessions() as db:
                return (await self._row(db, collection, doc_id)).to_dict()
        except DocumentNotFound:
            return None
        except SQLAlchemyError as exc:
            raise StoreError(f"get {collection}/{doc_id} failed: {exc}") from exc

    async def create(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = str(uuid.uuid4())
        try:
            async with self._sessions() as db:
                db.add(Document(id=doc_id, collection=collection, data=_payload(fields)))
                await db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"create in {collection} failed: {exc}") from exc
        await publish_change(collection, doc_id, "create")
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        try:
            async with self._sessions() as db:
                row = await self._row(db, collection, doc_id)
                # Reassign rather than mutate so the JSON column is flagged dirty.
                row.data = {**row.data, **_payload(fields)}
                row.updated_at = datetime.now(timezone.utc)
                await db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"update {collection}/{doc_id} failed: {exc}") from exc
        await publish_change(collection, doc_id, "update")

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            async with self._sessions() as db:
                await db.delete(await self._row(db, collection, doc_id))
                await db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"delete {collection}/{doc_id} failed: {exc}") from exc
        await publish_change(collection, doc_id, "delete")

    async def subscribe(self, collection: str, filters: dict[str, Any] | None = None) -> AsyncIterator[list[dict]]:
        """Yield the current result set, then a fresh one after every change notice."""
        pubsub = get_redis().pubsub()
        channel = change_channel(collection)
        try:
            await pubsub.subscribe(channel)
        except RedisError as exc:
            await pubsub.aclose()
            raise StoreError(f"subscribe {collection} failed: {exc}") from exc

        try:
            yield await self.list(collection, filters)
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message and message["type"] == "message":
                    yield await self.list(collection, filters)
                else:
                    await asyncio.sleep(0.1)
        except RedisError as exc:
            raise StoreError(f"change feed for {collection} lost: {exc}") from exc
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
