import logging
from typing import Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from messenger.config import settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


async def connect_to_mongo(url: str | None = None, db_name: str | None = None) -> AsyncIOMotorDatabase:
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(url or settings.mongo_url)
        logger.info("Connected to MongoDB at %s", url or settings.mongo_url)
    return _client[db_name or settings.mongo_db_name]


async def close_mongo_connection() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed")


def mongo_db_dependency(request: Request) -> AsyncIOMotorDatabase:
    return request.app.state.db
