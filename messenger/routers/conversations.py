from typing import Optional

from fastapi import APIRouter, Depends, Query

from messenger.schemas.message import ConversationStatusUpdate
from messenger.services.chat_service import ChatService
from messenger.utils.dependencies import get_chat_service
from messenger.utils.serialization import to_jsonable


router = APIRouter(prefix="/conversations", tags=["chat"])


@router.get("")
async def list_conversations(
    user: Optional[str] = None,
    keyword: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: ChatService = Depends(get_chat_service),
):
    return to_jsonable(await service.get_conversations(user, keyword, page, limit))


@router.get("/{conversation_id}")
async def get_conversation(conversation_id: str, service: ChatService = Depends(get_chat_service)):
    return to_jsonable(await service.get_conversation(conversation_id))


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: ChatService = Depends(get_chat_service),
):
    return to_jsonable(await service.get_messages(conversation_id, page=page, limit=limit))


@router.patch("/{conversation_id}")
async def update_conversation(conversation_id: str, body: ConversationStatusUpdate, service: ChatService = Depends(get_chat_service)):
    return to_jsonable(await service.update_conversation_status(conversation_id, body.status))


@router.delete("/{conversation_id}")
async def delete_conversation(conversation_id: str, service: ChatService = Depends(get_chat_service)):
    return to_jsonable(await service.delete_conversation(conversation_id))
