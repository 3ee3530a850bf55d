import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from messenger.schemas.message import MessageSend, MessagesRead, MessageUpdate
from messenger.services.chat_service import ChatService
from messenger.utils.dependencies import get_chat_service
from messenger.utils.realtime_bus import BROADCAST_CHANNEL, user_channel
from messenger.utils.serialization import to_jsonable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["chat"])
ws_router = APIRouter(tags=["chat"])


@router.post("")
async def send_message(body: MessageSend, service: ChatService = Depends(get_chat_service)):
    message = await service.send(
        body.user_from,
        body.user_to,
        username=body.username,
        text=body.text,
        attachments=[a.model_dump() for a in body.attachments],
    )
    return to_jsonable(message)


@router.get("")
async def list_messages(
    conversation: Optional[str] = None,
    user1: Optional[str] = None,
    user2: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: ChatService = Depends(get_chat_service),
):
    return to_jsonable(await service.get_messages(conversation, user1, user2, page, limit))


@router.patch("/read")
async def read_messages(body: MessagesRead, service: ChatService = Depends(get_chat_service)):
    await service.read_messages(body.conversation, body.user_to)
    return {"message": "Messages read successfully!"}


@router.patch("/{message_id}")
async def update_message(message_id: str, body: MessageUpdate, service: ChatService = Depends(get_chat_service)):
    return to_jsonable(await service.update_message(message_id, text=body.text, status=body.status))


@router.delete("/{message_id}")
async def delete_message(message_id: str, service: ChatService = Depends(get_chat_service)):
    return to_jsonable(await service.delete_message(message_id))


@ws_router.websocket("/ws/{user_id}")
async def chat_socket(websocket: WebSocket, user_id: str):
    state = websocket.app.state
    manager = state.connection_manager
    bus = state.bus
    await manager.connect(user_id, websocket)

    subscriber = None
    if getattr(bus, "enabled", False):
        subscriber = await bus.subscribe(user_channel(user_id), websocket.send_text, BROADCAST_CHANNEL)
        subscriber.start()

    try:
        while True:
            # inbound frames only keep the connection alive; sends go through POST /messages
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Websocket closed for user %s", user_id)
    finally:
        manager.disconnect(user_id, websocket)
        if subscriber:
            await subscriber.cancel()
