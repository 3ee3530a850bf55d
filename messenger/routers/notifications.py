from typing import Optional

from fastapi import APIRouter, Depends, Query

from messenger.services.notification_service import NotificationService
from messenger.utils.dependencies import get_notification_service
from messenger.utils.serialization import to_jsonable


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    user: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: NotificationService = Depends(get_notification_service),
):
    return to_jsonable(await service.get_notifications(user, page, limit))


@router.patch("/{user_id}/read")
async def read_notifications(user_id: str, service: NotificationService = Depends(get_notification_service)):
    await service.read_notifications(user_id)
    return {"message": "Notifications read successfully!"}
