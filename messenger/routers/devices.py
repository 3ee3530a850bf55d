from fastapi import APIRouter, Depends

from messenger.database.connection import mongo_db_dependency
from messenger.exceptions import NotFoundError
from messenger.repositories.user_repository import UserRepository
from messenger.schemas.device import DeviceRegister
from messenger.utils.ids import require_object_id


router = APIRouter(prefix="/devices", tags=["push"])


@router.post("/register")
async def register_device(payload: DeviceRegister, db = Depends(mongo_db_dependency)):
    repo = UserRepository(db)
    user_id = require_object_id(payload.user, "user")
    if not await repo.exists(user_id):
        raise NotFoundError("User not found!")
    added = await repo.add_push_token(user_id, payload.token, payload.device)
    return {"ok": True, "added": added, "device": {"token": payload.token, "device": payload.device}}
