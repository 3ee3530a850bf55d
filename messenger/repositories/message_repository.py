from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from messenger.models.message import READ, SENT
from messenger.utils.pagination import aggregate_page


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("conversation", ASCENDING), ("created_at", DESCENDING)])
        await self.collection.create_index([("user_to", ASCENDING), ("status", ASCENDING)])

    async def save_message(
        self,
        conversation_id: ObjectId,
        user_from: ObjectId,
        user_to: ObjectId,
        text: Optional[str] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        doc: Dict[str, Any] = {
            "conversation": conversation_id,
            "user_from": user_from,
            "user_to": user_to,
            "status": SENT,
            "created_at": now,
            "updated_at": now,
        }
        if text:
            doc["text"] = text
        if attachments:
            doc["attachments"] = attachments
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def list_page(
        self,
        query: Dict[str, Any],
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        pipeline = [
            {"$match": query},
            {"$sort": {"created_at": -1}},
            {"$project": {"updated_at": 0}},
        ]
        return await aggregate_page(self.collection, pipeline, page, limit)

    async def update_message(self, message_id: ObjectId, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one_and_update(
            {"_id": message_id},
            {"$set": {**fields, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_message(self, message_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one_and_delete({"_id": message_id})

    async def delete_by_conversation(self, conversation_id: ObjectId) -> int:
        result = await self.collection.delete_many({"conversation": conversation_id})
        return result.deleted_count or 0

    async def mark_read(self, conversation_id: ObjectId, user_to: ObjectId) -> int:
        result = await self.collection.update_many(
            {"conversation": conversation_id, "user_to": user_to},
            {"$set": {"status": READ}},
        )
        return result.modified_count or 0
