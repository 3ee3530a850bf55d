import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from messenger.models.conversation import ACCEPTED, PENDING, pair_key
from messenger.utils.pagination import aggregate_page


class ConversationRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["conversations"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("pair_key", ASCENDING)], unique=True)
        await self.collection.create_index([("user_from", ASCENDING)])
        await self.collection.create_index([("user_to", ASCENDING)])

    async def get_or_create_one_to_one(self, user_from: ObjectId, user_to: ObjectId) -> Dict[str, Any]:
        """Insert-if-absent keyed on the unordered pair.

        May raise ``DuplicateKeyError`` when two first contacts race on the
        upsert; the caller retries.
        """
        now = datetime.now(timezone.utc)
        return await self.collection.find_one_and_update(
            {"pair_key": pair_key(user_from, user_to)},
            {
                "$setOnInsert": {
                    "user_from": user_from,
                    "user_to": user_to,
                    "status": PENDING,
                    "last_message": None,
                    "created_at": now,
                    "updated_at": now,
                }
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    async def get_conversation(self, conversation_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"_id": conversation_id})

    async def exists(self, conversation_id: ObjectId) -> bool:
        return await self.collection.count_documents({"_id": conversation_id}, limit=1) > 0

    async def accept(self, conversation_id: ObjectId, user_to: ObjectId) -> Optional[Dict[str, Any]]:
        """Flip pending to accepted only when ``user_to`` is the stored recipient."""
        return await self.transition(conversation_id, PENDING, ACCEPTED, extra={"user_to": user_to})

    async def transition(
        self,
        conversation_id: ObjectId,
        from_status: str,
        to_status: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one_and_update(
            {"_id": conversation_id, "status": from_status, **(extra or {})},
            {"$set": {"status": to_status, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )

    async def update_on_new_message(self, conversation_id: ObjectId, message_id: ObjectId) -> None:
        await self.collection.update_one(
            {"_id": conversation_id},
            {"$set": {"last_message": message_id, "updated_at": datetime.now(timezone.utc)}},
        )

    async def delete_conversation(self, conversation_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one_and_delete({"_id": conversation_id})

    async def list_for_user(
        self,
        user_id: Optional[ObjectId] = None,
        keyword: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        keyword_query: Dict[str, Any] = {}
        if user_id:
            query["$or"] = [{"user_to": user_id}, {"user_from": user_id}]
        if keyword and keyword.strip():
            pattern = re.escape(keyword.strip())
            keyword_query["$or"] = [
                {"last_message.text": {"$regex": pattern, "$options": "i"}},
                {"user.name": {"$regex": pattern, "$options": "i"}},
            ]

        pipeline = [
            {"$match": query},
            {
                "$lookup": {
                    "from": "messages",
                    "localField": "last_message",
                    "foreignField": "_id",
                    "as": "last_message",
                    "pipeline": [
                        {"$project": {"text": 1, "user_from": 1, "created_at": 1, "attachments.type": 1}},
                    ],
                }
            },
            {"$unwind": {"path": "$last_message"}},
            {"$sort": {"last_message.created_at": -1}},
            {
                "$project": {
                    "user": {
                        "$cond": {
                            "if": {"$eq": ["$user_to", user_id]},
                            "then": "$user_from",
                            "else": "$user_to",
                        }
                    },
                    "status": 1,
                    "last_message": 1,
                }
            },
            {
                "$lookup": {
                    "from": "users",
                    "localField": "user",
                    "foreignField": "_id",
                    "as": "user",
                    "pipeline": [{"$project": {"name": 1, "image": 1}}],
                }
            },
            {"$unwind": {"path": "$user"}},
            {"$match": keyword_query},
        ]
        return await aggregate_page(self.collection, pipeline, page, limit)
