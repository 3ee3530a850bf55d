from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from messenger.models.notification import READ, UNREAD
from messenger.utils.pagination import aggregate_page


class NotificationRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["notifications"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("user", ASCENDING), ("created_at", DESCENDING)])

    async def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "status": UNREAD,
            **{key: value for key, value in fields.items() if value is not None},
            "created_at": datetime.now(timezone.utc),
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def list_page(
        self,
        user_id: Optional[ObjectId] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if user_id:
            query["user"] = user_id
        pipeline = [
            {"$match": query},
            {"$sort": {"created_at": -1}},
        ]
        return await aggregate_page(self.collection, pipeline, page, limit)

    async def mark_read_for_user(self, user_id: ObjectId) -> int:
        result = await self.collection.update_many({"user": user_id}, {"$set": {"status": READ}})
        return result.modified_count or 0
