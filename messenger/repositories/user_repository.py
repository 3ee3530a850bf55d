from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")

    async def exists(self, user_id: ObjectId) -> bool:
        return await self._collection.count_documents({"_id": user_id}, limit=1) > 0

    async def get_user_by_id(self, user_id: ObjectId) -> Optional[dict]:
        return await self._collection.find_one({"_id": user_id})

    async def get_push_tokens(self, user_id: ObjectId) -> List[str]:
        user = await self._collection.find_one({"_id": user_id}, {"fcms": 1})
        if not user:
            return []
        return [fcm["token"] for fcm in user.get("fcms", []) if fcm.get("token")]

    async def get_push_tokens_many(self, query: Optional[Dict[str, Any]] = None) -> List[str]:
        tokens: List[str] = []
        async for user in self._collection.find(query or {}, {"fcms": 1}):
            tokens.extend(fcm["token"] for fcm in user.get("fcms", []) if fcm.get("token"))
        return tokens

    async def add_push_token(self, user_id: ObjectId, token: str, device: Optional[str] = None) -> bool:
        result = await self._collection.update_one(
            {"_id": user_id, "fcms.token": {"$ne": token}},
            {"$push": {"fcms": {"token": token, "device": device}}},
        )
        return bool(result.modified_count)

    async def update_user(self, user_id: ObjectId, fields: Dict[str, Any]) -> bool:
        result = await self._collection.update_one({"_id": user_id}, {"$set": fields})
        return bool(result.matched_count)
