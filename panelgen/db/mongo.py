from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection

from panelgen.core.config import Settings

log = logging.getLogger(__name__)


class MongoDatabase:
    """Explicitly constructed database handle; one per process, closed on shutdown."""

    def __init__(self, client: AsyncIOMotorClient, name: str):
        self.client = client
        self.name = name
        self.db = client[name]

    @classmethod
    def from_settings(cls, cfg: Settings) -> "MongoDatabase":
        return cls(AsyncIOMotorClient(cfg.mongo_url), cfg.mongo_db)

    async def command(self, command: Dict[str, Any]) -> Dict[str, Any]:
        return await self.db.command(command)

    def collection(self, name: str) -> AsyncIOMotorCollection:
        return self.db[name]

    async def ping(self) -> None:
        await self.db.command("ping")

    def close(self) -> None:
        self.client.close()


async def wait_for_database(database: MongoDatabase, max_retries: int = 30, retry_delay: float = 1.0) -> None:
    """Wait for MongoDB to be available."""
    for attempt in range(max_retries):
        try:
            await database.ping()
            log.info("Database connection successful")
            return
        except Exception as e:
            if attempt < max_retries - 1:
                log.warning("Database not ready, retrying in %s seconds (attempt %d/%d): %s",
                            retry_delay, attempt + 1, max_retries, e)
                await asyncio.sleep(retry_delay)
            else:
                log.error("Database connection failed after %d attempts", max_retries)
                raise
