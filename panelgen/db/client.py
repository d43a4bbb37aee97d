"""
Typed model client.

Built once at process start from the schema document: every model block gets a
delegate keyed like the generated client keys its models (first letter
lower-cased, ``Cases`` -> ``cases``). A model merged into the schema after boot
stays unknown until the process restarts, which is what sends generated
handlers down the raw fallback path in the meantime.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from panelgen.generators.resource_gen.utils import lower_first
from panelgen.schema.document import Block, SchemaDocument

log = logging.getLogger(__name__)


def _parse_default(raw: Optional[str]) -> Tuple[bool, Any]:
    """Literal ``@default(...)`` values; function defaults such as now() or auto() are skipped."""
    if raw is None or "(" in raw:
        return False, None
    try:
        return True, json.loads(raw)
    except ValueError:
        return False, None


class ModelDelegate:
    def __init__(
        self,
        collection,
        field_map: Dict[str, str],
        defaults: Optional[Dict[str, Any]] = None,
        created_fields: Iterable[str] = (),
        updated_fields: Iterable[str] = (),
    ):
        self.collection = collection
        self.field_map = field_map
        self.reverse_map = {physical: logical for logical, physical in field_map.items()}
        self.defaults = defaults or {}
        self.created_fields = list(created_fields)
        self.updated_fields = list(updated_fields)

    @classmethod
    def from_block(cls, block: Block, collection) -> "ModelDelegate":
        defaults = {}
        created, updated = [], []
        for f in block.all_fields():
            if "@updatedAt" in f.attributes:
                updated.append(f.name)
            elif f.default == "now()":
                created.append(f.name)
            else:
                has_default, value = _parse_default(f.default)
                if has_default:
                    defaults[f.name] = value
        return cls(collection, block.field_map(), defaults, created, updated)

    def _physical(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {self.field_map.get(key, key): value for key, value in data.items()}

    def _logical(self, doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if doc is None:
            return None
        result = {}
        for key, value in doc.items():
            if key == "_id" and isinstance(value, ObjectId):
                value = str(value)
            result[self.reverse_map.get(key, key)] = value
        return result

    def _where(self, where: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        query = {}
        for key, value in where.items():
            physical = self.field_map.get(key, key)
            if physical == "_id":
                try:
                    value = ObjectId(str(value))
                except (InvalidId, TypeError):
                    return None
            query[physical] = value
        return query

    async def find_many(
        self,
        skip: int = 0,
        take: Optional[int] = None,
        order: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        cursor = self.collection.find({})
        if order:
            cursor = cursor.sort([
                (self.field_map.get(key, key), -1 if direction == "desc" else 1)
                for key, direction in order.items()
            ])
        if skip:
            cursor = cursor.skip(skip)
        if take:
            cursor = cursor.limit(take)
        return [self._logical(doc) for doc in await cursor.to_list(length=None)]

    async def count(self) -> int:
        return await self.collection.count_documents({})

    async def find_unique(self, where: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        query = self._where(where)
        if query is None:
            return None
        return self._logical(await self.collection.find_one(query))

    async def find_first(self) -> Optional[Dict[str, Any]]:
        return self._logical(await self.collection.find_one({}))

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        values = {**self.defaults, **data}
        for name in self.created_fields + self.updated_fields:
            values.setdefault(name, now)
        doc = self._physical(values)
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._logical(doc)

    async def update(self, where: Dict[str, Any], data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        query = self._where(where)
        if query is None:
            return None
        now = datetime.now(timezone.utc)
        values = dict(data)
        for name in self.updated_fields:
            values[name] = now
        doc = await self.collection.find_one_and_update(
            query,
            {"$set": self._physical(values)},
            return_document=ReturnDocument.AFTER,
        )
        return self._logical(doc)

    async def delete(self, where: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        query = self._where(where)
        if query is None:
            return None
        return self._logical(await self.collection.find_one_and_delete(query))

    async def delete_many(self) -> int:
        result = await self.collection.delete_many({})
        return result.deleted_count


class ModelClient:
    def __init__(self, delegates: Optional[Dict[str, Any]] = None):
        self._delegates = dict(delegates or {})

    @classmethod
    def from_schema(cls, schema_text: str, database) -> "ModelClient":
        delegates = {}
        for block in SchemaDocument.parse(schema_text).models():
            delegates[lower_first(block.name)] = ModelDelegate.from_block(
                block, database.collection(block.collection_name)
            )
        log.info("Typed client loaded with %d models: %s", len(delegates), ", ".join(sorted(delegates)))
        return cls(delegates)

    @classmethod
    def from_schema_file(cls, schema_path: Path, database) -> "ModelClient":
        text = schema_path.read_text(encoding="utf-8") if schema_path.exists() else ""
        return cls.from_schema(text, database)

    def get(self, key: str):
        return self._delegates.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._delegates

    def keys(self) -> List[str]:
        return list(self._delegates)
