"""Collection-scoped document store backed by Redis hashes.

Each collection is one hash (``{prefix}:{collection}``) holding one JSON document
per field. Batches are limited to a single collection and commit as one
MULTI/EXEC pipeline, so there are no cross-collection transactions.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from redis.asyncio import Redis

from app.config import settings
from app.core.exceptions import DocumentNotFoundError
from app.core.redis import get_redis_client

logger = logging.getLogger(__name__)

RAW_LEADS = "raw_leads"
DRAFT_ARTICLES = "draft_articles"
NEWSPAPER_EDITIONS = "newspaper_editions"
WORKFLOW_QUEUE = "workflow_queue"
WORKFLOW_STATE = "workflow_state"
SPORTS_BOXES = "sports_boxes"

ModelT = TypeVar("ModelT", bound=BaseModel)


def shard_collection(worker_index: int) -> str:
    """Lead shard owned by journalist ``worker_index`` (1-based)."""
    return f"journalist_{worker_index}_leads"


def new_document_id() -> str:
    return uuid.uuid4().hex


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing values sort first so "oldest first" treats them as oldest.
    if value is None:
        return (0, "")
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    text = str(value)
    # ISO timestamps compare by instant, not text: "...:30Z" precedes "...:30.5Z"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return (3, text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (2, moment.timestamp())


class WriteBatch:
    """Buffered writes against one collection, committed together."""

    def __init__(self, store: DocumentStore, collection: str) -> None:
        self._store = store
        self.collection = collection
        self._sets: dict[str, dict[str, Any]] = {}
        self._updates: dict[str, dict[str, Any]] = {}
        self._deletes: set[str] = set()

    def __len__(self) -> int:
        return len(self._sets) + len(self._updates) + len(self._deletes)

    def set(self, doc_id: str, data: Mapping[str, Any]) -> WriteBatch:
        self._deletes.discard(doc_id)
        self._updates.pop(doc_id, None)
        self._sets[doc_id] = dict(data)
        return self

    def update(self, doc_id: str, fields: Mapping[str, Any]) -> WriteBatch:
        if doc_id in self._sets:
            self._sets[doc_id].update(fields)
            return self
        self._updates.setdefault(doc_id, {}).update(fields)
        return self

    def delete(self, doc_id: str) -> WriteBatch:
        self._sets.pop(doc_id, None)
        self._updates.pop(doc_id, None)
        self._deletes.add(doc_id)
        return self

    async def commit(self) -> int:
        """Apply all buffered writes. Updates to missing documents are dropped."""
        if not len(self):
            return 0

        key = self._store.collection_key(self.collection)
        payloads = {doc_id: json.dumps(data) for doc_id, data in self._sets.items()}

        if self._updates:
            update_ids = list(self._updates)
            current_values = await self._store.redis.hmget(key, update_ids)
            for doc_id, raw in zip(update_ids, current_values, strict=True):
                if raw is None:
                    logger.warning(
                        "Dropping batch update for missing document",
                        extra={"collection": self.collection, "doc_id": doc_id},
                    )
                    continue
                merged = {**json.loads(raw), **self._updates[doc_id]}
                payloads[doc_id] = json.dumps(merged)

        pipe = self._store.redis.pipeline(transaction=True)
        if payloads:
            pipe.hset(key, mapping=payloads)
        if self._deletes:
            pipe.hdel(key, *self._deletes)
        await pipe.execute()

        written = len(payloads) + len(self._deletes)
        logger.debug(
            "Batch committed",
            extra={
                "collection": self.collection,
                "written": len(payloads),
                "deleted": len(self._deletes),
            },
        )
        self._sets.clear()
        self._updates.clear()
        self._deletes.clear()
        return written


class DocumentStore:
    """Document collections with get/query/batch-write/delete over Redis."""

    def __init__(self, redis_client: Redis | None = None, key_prefix: str | None = None) -> None:
        self.redis = redis_client or get_redis_client()
        self.key_prefix = key_prefix or settings.store_key_prefix

    def collection_key(self, collection: str) -> str:
        return f"{self.key_prefix}:{collection}"

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return one document (with ``id``) or None."""
        raw = await self.redis.hget(self.collection_key(collection), doc_id)
        if raw is None:
            return None
        return self._decode(collection, doc_id, raw)

    async def list(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents matching all equality filters in ``where``."""
        raw_documents = await self.redis.hgetall(self.collection_key(collection))
        documents: list[dict[str, Any]] = []
        for doc_id, raw in raw_documents.items():
            document = self._decode(collection, doc_id, raw)
            if document is None:
                continue
            if where and any(document.get(field) != value for field, value in where.items()):
                continue
            documents.append(document)

        if order_by:
            documents.sort(key=lambda doc: _sort_key(doc.get(order_by)), reverse=descending)
        if limit is not None:
            documents = documents[: max(limit, 0)]
        return documents

    async def count(self, collection: str, *, where: Mapping[str, Any] | None = None) -> int:
        if not where:
            return int(await self.redis.hlen(self.collection_key(collection)))
        return len(await self.list(collection, where=where))

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Create or fully overwrite a document."""
        await self.redis.hset(self.collection_key(collection), doc_id, json.dumps(dict(data)))

    async def create(
        self,
        collection: str,
        data: Mapping[str, Any],
        *,
        doc_id: str | None = None,
    ) -> str:
        """Store a new document and return its id."""
        document_id = doc_id or new_document_id()
        await self.set(collection, document_id, data)
        return document_id

    async def create_if_absent(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
    ) -> bool:
        """Store a document only when ``doc_id`` is unused. Returns True if written."""
        created = await self.redis.hsetnx(
            self.collection_key(collection),
            doc_id,
            json.dumps(dict(data)),
        )
        return bool(created)

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Merge ``fields`` into an existing document."""
        current = await self.get(collection, doc_id)
        if current is None:
            raise DocumentNotFoundError(collection, doc_id)
        current.pop("id", None)
        current.update(fields)
        await self.set(collection, doc_id, current)
        return {**current, "id": doc_id}

    async def delete(self, collection: str, doc_id: str) -> bool:
        removed = await self.redis.hdel(self.collection_key(collection), doc_id)
        return bool(removed)

    async def clear(self, collection: str) -> int:
        """Delete every document in a collection. Returns how many existed."""
        key = self.collection_key(collection)
        existing = int(await self.redis.hlen(key))
        if existing:
            await self.redis.delete(key)
        return existing

    def batch(self, collection: str) -> WriteBatch:
        return WriteBatch(self, collection)

    async def get_model(self, collection: str, doc_id: str, model: type[ModelT]) -> ModelT | None:
        document = await self.get(collection, doc_id)
        if document is None:
            return None
        return self._to_model(collection, document, model)

    async def list_models(
        self,
        collection: str,
        model: type[ModelT],
        **query: Any,
    ) -> list[ModelT]:
        """Query and validate documents, skipping any that fail validation."""
        documents = await self.list(collection, **query)
        models: list[ModelT] = []
        for document in documents:
            parsed = self._to_model(collection, document, model)
            if parsed is not None:
                models.append(parsed)
        return models

    @staticmethod
    def _to_model(collection: str, document: dict[str, Any], model: type[ModelT]) -> ModelT | None:
        try:
            return model.model_validate(document)
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid document",
                extra={
                    "collection": collection,
                    "doc_id": document.get("id"),
                    "model": model.__name__,
                    "errors": exc.error_count(),
                },
            )
            return None

    @staticmethod
    def _decode(collection: str, doc_id: str, raw: str) -> dict[str, Any] | None:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(
                "Invalid document payload in Redis",
                extra={"collection": collection, "doc_id": doc_id},
            )
            return None
        if not isinstance(payload, dict):
            return None
        payload["id"] = doc_id
        return payload


_document_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """Get singleton document store on the shared Redis client."""
    global _document_store
    if _document_store is None:
        _document_store = DocumentStore()
    return _document_store
