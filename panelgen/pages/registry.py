"""Slug-keyed dynamic admin pages stored in the ``dynamic_pages`` collection."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from panelgen.core.errors import ConflictError
from panelgen.runtime.raw import CommandDatabase
from panelgen.runtime.sanitize import normalize_document

log = logging.getLogger(__name__)

DYNAMIC_PAGES_COLLECTION = "dynamic_pages"


class DynamicPageRegistry:
    def __init__(self, database: CommandDatabase, collection: str = DYNAMIC_PAGES_COLLECTION):
        self.database = database
        self.collection = collection

    async def find_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        result = await self.database.command({
            "find": self.collection,
            "filter": {"slug": str(slug)},
            "limit": 1,
        })
        batch = (result.get("cursor") or {}).get("firstBatch") or []
        return normalize_document(batch[0]) if batch else None

    async def upsert(
        self,
        slug: str,
        title: Optional[str] = None,
        blocks: Optional[list] = None,
        structure: Optional[dict] = None,
    ) -> Dict[str, Any]:
        """Create or overwrite the page; ``created_at`` is only set on insert."""
        now = datetime.now(timezone.utc)
        await self.database.command({
            "update": self.collection,
            "updates": [{
                "q": {"slug": str(slug)},
                "u": {
                    "$set": {
                        "slug": str(slug),
                        "title": title or str(slug),
                        "blocks": blocks or [],
                        "structure": structure or {},
                        "updated_at": now,
                    },
                    "$setOnInsert": {"created_at": now},
                },
                "upsert": True,
                "multi": False,
            }],
        })
        return await self.find_by_slug(slug)

    async def get_or_create(self, slug: str) -> Dict[str, Any]:
        page = await self.find_by_slug(slug)
        if page is None:
            page = await self.upsert(slug, title=slug, blocks=[], structure={"fields": []})
            log.info("Dynamic page %s not found, created", slug)
        return page

    async def create(
        self,
        slug: str,
        title: Optional[str] = None,
        blocks: Optional[list] = None,
        structure: Optional[dict] = None,
    ) -> Dict[str, Any]:
        if await self.find_by_slug(slug) is not None:
            raise ConflictError(f'Dynamic page with slug "{slug}" already exists')
        return await self.upsert(slug, title, blocks, structure)

    async def update(self, slug: str, changes: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """
        Partial update: keys absent from ``changes`` keep their stored value.

        Returns the page and whether it had to be created.
        """
        page = await self.find_by_slug(slug)
        if page is None:
            created = await self.upsert(
                slug,
                changes.get("title"),
                changes.get("blocks"),
                changes.get("structure"),
            )
            return created, True

        merged = {key: changes.get(key, page.get(key)) for key in ("title", "blocks", "structure")}
        updated = await self.upsert(slug, merged["title"], merged["blocks"], merged["structure"])
        return updated, False
