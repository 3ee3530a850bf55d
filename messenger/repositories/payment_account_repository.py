from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase


class PaymentAccountRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("payment_accounts")

    async def get_by_user(self, user_id: ObjectId, account_type: Optional[str] = None) -> Optional[dict]:
        query: Dict[str, Any] = {"user": user_id}
        if account_type:
            query["type"] = account_type
        return await self._collection.find_one(query)

    async def get_by_key(self, key: str, value: Any) -> Optional[dict]:
        return await self._collection.find_one({key: value})

    async def create(self, user_id: ObjectId, account_type: str, account: Dict[str, Any]) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "user": user_id,
            "type": account_type,
            "account": account,
            "created_at": datetime.now(timezone.utc),
        }
        result = await self._collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc
