from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from messenger.utils.pagination import aggregate_page

_HIDDEN = {"created_at": 0, "updated_at": 0}


class CustomerRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["customers"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("user", ASCENDING)], unique=True)

    async def create(self, user_id: ObjectId) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        doc: Dict[str, Any] = {"user": user_id, "created_at": now, "updated_at": now}
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def get_by_user(self, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"user": user_id}, _HIDDEN)

    async def touch(self, user_id: ObjectId, fields: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        update = {**(fields or {}), "updated_at": datetime.now(timezone.utc)}
        return await self.collection.find_one_and_update(
            {"user": user_id},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_by_user(self, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one_and_delete({"user": user_id})

    async def list_page(self, page: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        pipeline = [
            {"$sort": {"created_at": -1}},
            {"$project": _HIDDEN},
        ]
        return await aggregate_page(self.collection, pipeline, page, limit)
