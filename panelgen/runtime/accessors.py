"""
Per-request choice between the typed client and the raw-document fallback.

Generated handlers never talk to the database directly. They declare
``Depends(resource_accessor(MODEL_KEY, COLLECTION_NAME))`` and receive an
accessor that answers the same CRUD contract whichever path backs it.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import Request

from panelgen.runtime.raw import RawCollection
from panelgen.runtime.sanitize import sanitize_create_data

log = logging.getLogger(__name__)

Document = Dict[str, Any]


class ResourceAccessor(ABC):
    fallback = False

    @abstractmethod
    async def find_many(self, skip: int = 0, take: Optional[int] = None) -> Tuple[List[Document], int]:
        ...

    @abstractmethod
    async def find_one(self, id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def insert(self, payload: Any) -> Document:
        ...

    @abstractmethod
    async def replace_all(self, items: List[Any]) -> List[Document]:
        ...

    @abstractmethod
    async def update(self, id: str, payload: Any) -> Optional[Document]:
        ...

    @abstractmethod
    async def delete(self, id: str) -> bool:
        ...

    @abstractmethod
    async def get_singleton(self, defaults: Document) -> Document:
        """Return the resource's single document, creating it from ``defaults`` on first read."""

    @abstractmethod
    async def put_singleton(self, values: Document) -> Document:
        ...


class TypedAccessor(ResourceAccessor):
    def __init__(self, delegate):
        self.delegate = delegate

    async def find_many(self, skip=0, take=None):
        docs = await self.delegate.find_many(skip=skip, take=take, order={"createdAt": "desc"})
        total = await self.delegate.count()
        return docs, total

    async def find_one(self, id):
        return await self.delegate.find_unique(where={"id": id})

    async def insert(self, payload):
        return await self.delegate.create(data=sanitize_create_data(payload))

    async def replace_all(self, items):
        await self.delegate.delete_many()
        return [await self.delegate.create(data=sanitize_create_data(item)) for item in items or []]

    async def update(self, id, payload):
        return await self.delegate.update(where={"id": id}, data=sanitize_create_data(payload))

    async def delete(self, id):
        return await self.delegate.delete(where={"id": id}) is not None

    async def get_singleton(self, defaults):
        doc = await self.delegate.find_first()
        if doc is None:
            doc = await self.delegate.create(data=dict(defaults))
        return doc

    async def put_singleton(self, values):
        doc = await self.delegate.find_first()
        if doc is None:
            return await self.delegate.create(data=dict(values))
        return await self.delegate.update(where={"id": doc["id"]}, data=dict(values))


class RawFallbackAccessor(ResourceAccessor):
    fallback = True

    def __init__(self, collection: RawCollection):
        self.collection = collection

    async def find_many(self, skip=0, take=None):
        return await self.collection.find_many(skip=skip, take=take)

    async def find_one(self, id):
        return await self.collection.find_one(id)

    async def insert(self, payload):
        return await self.collection.insert(payload)

    async def replace_all(self, items):
        return await self.collection.replace_all(items)

    async def update(self, id, payload):
        return await self.collection.update(id, payload)

    async def delete(self, id):
        return await self.collection.delete(id)

    async def get_singleton(self, defaults):
        return await self.collection.ensure_first(defaults)

    async def put_singleton(self, values):
        return await self.collection.upsert_first(values)


def select_accessor(model_client, database, model_key: str, collection: str) -> ResourceAccessor:
    """Typed accessor when the running client knows ``model_key``, raw fallback otherwise."""
    delegate = model_client.get(model_key) if model_client is not None else None
    if delegate is not None:
        return TypedAccessor(delegate)
    log.debug("Model %s unknown to the typed client, using raw collection %s", model_key, collection)
    return RawFallbackAccessor(RawCollection(database, collection))


def resource_accessor(model_key: str, collection: str) -> Callable[[Request], ResourceAccessor]:
    def dependency(request: Request) -> ResourceAccessor:
        state = request.app.state
        return select_accessor(
            getattr(state, "model_client", None),
            state.database,
            model_key,
            collection,
        )

    return dependency
