"""
Raw-document access to a resource collection.

Used while the typed client does not know a freshly generated model yet. Every
call goes through the database's raw command interface (``find``, ``insert``,
``update``, ``delete``, ``count``) and reproduces the typed CRUD contract:
string ids, ``isPublished`` defaulting to false, newest documents first.

Raw documents keep their physical timestamp names (``created_at`` /
``updated_at``). Reads first run an idempotent normalization pass so sorting by
creation time stays correct for documents written by other tools.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Tuple

from bson import ObjectId
from bson.errors import InvalidId

from panelgen.runtime.sanitize import normalize_document, sanitize_create_data


class CommandDatabase(Protocol):
    async def command(self, command: Dict[str, Any]) -> Dict[str, Any]:
        ...


def object_id_filter(id: Any) -> Optional[Dict[str, Any]]:
    """Translate an external id string into a native ``_id`` filter, or None if it cannot match."""
    try:
        return {"_id": ObjectId(str(id))}
    except (InvalidId, TypeError):
        return None


def literal_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap values for an update pipeline so strings starting with ``$`` stay data."""
    return {key: {"$literal": value} for key, value in values.items()}


TIMESTAMP_UPDATES = [
    {
        "q": {"created_at": {"$type": "string"}},
        "u": [{"$set": {"created_at": {"$toDate": "$created_at"}}}],
        "multi": True,
    },
    {
        "q": {"updated_at": {"$type": "string"}},
        "u": [{"$set": {"updated_at": {"$toDate": "$updated_at"}}}],
        "multi": True,
    },
    {
        "q": {"created_at": {"$exists": False}},
        "u": [{"$set": {"created_at": "$$NOW"}}],
        "multi": True,
    },
    {
        "q": {"updated_at": {"$exists": False}},
        "u": [{"$set": {"updated_at": "$$NOW"}}],
        "multi": True,
    },
]


class RawCollection:
    def __init__(self, database: CommandDatabase, name: str):
        self.database = database
        self.name = name

    async def _command(self, command: Dict[str, Any]) -> Dict[str, Any]:
        return await self.database.command(command)

    async def ensure_timestamps(self) -> None:
        await self._command({"update": self.name, "updates": TIMESTAMP_UPDATES})

    async def _find(
        self,
        filter: Dict[str, Any],
        sort: Optional[Dict[str, int]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        command: Dict[str, Any] = {"find": self.name, "filter": filter}
        if sort:
            command["sort"] = sort
        if skip:
            command["skip"] = skip
        if limit:
            command["limit"] = limit

        result = await self._command(command)
        cursor = result.get("cursor") or {}
        docs = list(cursor.get("firstBatch") or [])
        while cursor.get("id"):
            result = await self._command({"getMore": cursor["id"], "collection": self.name})
            cursor = result.get("cursor") or {}
            docs.extend(cursor.get("nextBatch") or [])
        return [normalize_document(doc) for doc in docs]

    async def count(self) -> int:
        result = await self._command({"count": self.name, "query": {}})
        return int(result.get("n") or 0)

    async def find_many(self, skip: int = 0, take: Optional[int] = None) -> Tuple[List[Dict[str, Any]], int]:
        await self.ensure_timestamps()
        docs = await self._find({}, sort={"created_at": -1, "_id": -1}, skip=skip, limit=take)
        total = await self.count()
        return docs, total

    async def find_one(self, id: Any) -> Optional[Dict[str, Any]]:
        id_filter = object_id_filter(id)
        if id_filter is None:
            return None
        await self.ensure_timestamps()
        docs = await self._find(id_filter, limit=1)
        return docs[0] if docs else None

    async def first(self) -> Optional[Dict[str, Any]]:
        docs = await self._find({}, limit=1)
        return docs[0] if docs else None

    async def insert(self, payload: Any) -> Dict[str, Any]:
        data = sanitize_create_data(payload)
        new_id = ObjectId()
        await self._command({"insert": self.name, "documents": [{"_id": new_id, **data}]})
        await self.ensure_timestamps()
        return await self.find_one(new_id)

    async def replace_all(self, items: List[Any]) -> List[Dict[str, Any]]:
        """Delete everything, then bulk-insert the sanitized items. Not transactional."""
        await self._command({"delete": self.name, "deletes": [{"q": {}, "limit": 0}]})
        docs = [sanitize_create_data(item) for item in items or []]
        if docs:
            await self._command({"insert": self.name, "documents": docs})
        docs, _ = await self.find_many()
        return docs

    async def update(self, id: Any, payload: Any) -> Optional[Dict[str, Any]]:
        id_filter = object_id_filter(id)
        if id_filter is None:
            return None
        values = literal_values(sanitize_create_data(payload))
        values["created_at"] = {"$ifNull": ["$created_at", "$$NOW"]}
        values["updated_at"] = "$$NOW"
        await self._command({
            "update": self.name,
            "updates": [{"q": id_filter, "u": [{"$set": values}], "multi": False}],
        })
        return await self.find_one(id)

    async def delete(self, id: Any) -> bool:
        id_filter = object_id_filter(id)
        if id_filter is None:
            return False
        result = await self._command({"delete": self.name, "deletes": [{"q": id_filter, "limit": 1}]})
        return int(result.get("n") or 0) > 0

    async def _upsert_first(self, values: Dict[str, Any]) -> Dict[str, Any]:
        await self._command({
            "update": self.name,
            "updates": [{"q": {}, "u": [{"$set": values}], "upsert": True, "multi": False}],
        })
        return await self.first()

    async def ensure_first(self, defaults: Dict[str, Any]) -> Dict[str, Any]:
        """Return the single document, creating it with ``defaults`` for missing keys."""
        values = {
            key: {"$ifNull": [f"${key}", {"$literal": value}]}
            for key, value in defaults.items()
        }
        values["created_at"] = {"$ifNull": ["$created_at", "$$NOW"]}
        values["updated_at"] = {"$ifNull": ["$updated_at", "$$NOW"]}
        return await self._upsert_first(values)

    async def upsert_first(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite ``data`` keys on the single document, creating it if needed."""
        values = literal_values(data)
        values["created_at"] = {"$ifNull": ["$created_at", "$$NOW"]}
        values["updated_at"] = "$$NOW"
        return await self._upsert_first(values)
