import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt

from messenger.exceptions import NotFoundError, ValidationError
from messenger.models.conversation import ACCEPTED, PENDING, REJECTED
from messenger.models.message import MESSAGE_STATUSES
from messenger.models.notification import NEW_MESSAGE
from messenger.repositories.conversation_repository import ConversationRepository
from messenger.repositories.message_repository import MessageRepository
from messenger.repositories.user_repository import UserRepository
from messenger.services.notification_service import (
    DeliveryPlan,
    NotificationService,
    PushDelivery,
    RealtimeDelivery,
    RecordDelivery,
    UserTarget,
)
from messenger.utils.files_deleter import FilesDeleter
from messenger.utils.ids import optional_object_id, require_object_id

logger = logging.getLogger(__name__)

# attempts at the conversation upsert before a duplicate-key conflict is raised
PAIR_UPSERT_ATTEMPTS = 3

CONVERSATIONS_UPDATED = "conversationsUpdated"


def new_message_event(conversation_id: Any) -> str:
    return f"newMessage_{conversation_id}"


class ChatService:

    def __init__(
        self,
        message_repo: MessageRepository,
        conversation_repo: ConversationRepository,
        user_repo: UserRepository,
        notifications: NotificationService,
        files_deleter: FilesDeleter,
    ) -> None:
        self._message_repo = message_repo
        self._conversation_repo = conversation_repo
        self._user_repo = user_repo
        self._notifications = notifications
        self._files_deleter = files_deleter

    # messages

    async def add_message(
        self,
        user_from: Any,
        user_to: Any,
        conversation: Any,
        text: Optional[str] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        return await self._message_repo.save_message(
            conversation_id=require_object_id(conversation, "conversation"),
            user_from=require_object_id(user_from, "userFrom"),
            user_to=require_object_id(user_to, "userTo"),
            text=text,
            attachments=attachments,
        )

    async def get_messages(
        self,
        conversation: Any = None,
        user1: Any = None,
        user2: Any = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        if conversation:
            query: Dict[str, Any] = {"conversation": require_object_id(conversation, "conversation")}
        elif user1 and user2:
            first = require_object_id(user1, "user")
            second = require_object_id(user2, "user")
            query = {
                "$or": [
                    {"user_to": first, "user_from": second},
                    {"user_from": first, "user_to": second},
                ]
            }
        else:
            raise ValidationError("Please enter conversation id!")
        return await self._message_repo.list_page(query, page, limit)

    async def update_message(self, message: Any, text: Optional[str] = None, status: Optional[str] = None) -> Dict[str, Any]:
        message_id = require_object_id(message, "message")
        fields: Dict[str, Any] = {}
        if text:
            fields["text"] = text
        if status:
            if status not in MESSAGE_STATUSES:
                raise ValidationError("Please enter valid message status!")
            fields["status"] = status
        updated = await self._message_repo.update_message(message_id, fields)
        if not updated:
            raise NotFoundError("Message not found!")
        return updated

    async def delete_message(self, message: Any) -> Dict[str, Any]:
        deleted = await self._message_repo.delete_message(require_object_id(message, "message"))
        if not deleted:
            raise NotFoundError("Message not found!")
        for attachment in deleted.get("attachments") or []:
            if attachment.get("path"):
                await self._files_deleter.delete_attachment(attachment["path"])
        return deleted

    async def read_messages(self, conversation: Any, user_to: Any) -> None:
        user_id = require_object_id(user_to, "userTo")
        conversation_id = require_object_id(conversation, "conversation")
        if not await self._user_repo.exists(user_id):
            raise NotFoundError("User not found!")
        if not await self._conversation_repo.exists(conversation_id):
            raise NotFoundError("Conversation not found!")
        await self._message_repo.mark_read(conversation_id, user_id)

    # conversations

    async def add_conversation(self, user_from: Any, user_to: Any) -> Dict[str, Any]:
        """Resolve the conversation of an unordered pair, creating it pending.

        A pending conversation is accepted once its original recipient sends;
        a rejected one refuses new messages.
        """
        sender = require_object_id(user_from, "userFrom")
        receiver = require_object_id(user_to, "userTo")

        conversation = await self._resolve_pair(sender, receiver)

        if conversation["status"] == REJECTED:
            raise ValidationError("Conversation request rejected!")
        if conversation["status"] == PENDING and conversation["user_to"] == sender:
            accepted = await self._conversation_repo.accept(conversation["_id"], sender)
            conversation = accepted or await self._conversation_repo.get_conversation(conversation["_id"]) or conversation
        return conversation

    # concurrent first contact: the other upsert won the unique pair_key
    @retry(
        stop=stop_after_attempt(PAIR_UPSERT_ATTEMPTS),
        retry=retry_if_exception_type(DuplicateKeyError),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    )
    async def _resolve_pair(self, sender: ObjectId, receiver: ObjectId) -> Dict[str, Any]:
        return await self._conversation_repo.get_or_create_one_to_one(sender, receiver)

    async def get_conversation(self, conversation: Any) -> Dict[str, Any]:
        found = await self._conversation_repo.get_conversation(require_object_id(conversation, "conversation"))
        if not found:
            raise NotFoundError("Conversation not found!")
        return found

    async def update_conversation_status(self, conversation: Any, status: str) -> Dict[str, Any]:
        if status not in (ACCEPTED, REJECTED):
            raise ValidationError("Please enter valid conversation status!")
        existing = await self.get_conversation(conversation)
        if existing["status"] != PENDING:
            raise ValidationError(f"Conversation already {existing['status']}!")
        updated = await self._conversation_repo.transition(existing["_id"], PENDING, status)
        if not updated:
            raise ValidationError("Conversation status changed, please retry!")
        return updated

    async def delete_conversation(self, conversation: Any) -> Dict[str, Any]:
        deleted = await self._conversation_repo.delete_conversation(require_object_id(conversation, "conversation"))
        if not deleted:
            raise NotFoundError("Conversation not found!")
        await self._message_repo.delete_by_conversation(deleted["_id"])
        return deleted

    async def get_conversations(
        self,
        user: Any = None,
        keyword: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        return await self._conversation_repo.list_for_user(optional_object_id(user, "user"), keyword, page, limit)

    # orchestration

    async def send(
        self,
        user_from: Any,
        user_to: Any,
        username: Optional[str] = None,
        text: Optional[str] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        sender = require_object_id(user_from, "userFrom")
        receiver = require_object_id(user_to, "userTo")
        if sender == receiver:
            raise ValidationError("Cannot send a message to yourself!")
        text = text.strip() if text else None
        if not text and not attachments:
            raise ValidationError("Please enter message text or attachments!")

        conversation = await self.add_conversation(sender, receiver)
        message = await self.add_message(sender, receiver, conversation["_id"], text, attachments)

        await self._conversation_repo.update_on_new_message(conversation["_id"], message["_id"])
        conversation["last_message"] = message

        await self._notify_new_message(message, conversation, username)
        return message

    async def _notify_new_message(self, message: Dict[str, Any], conversation: Dict[str, Any], username: Optional[str]) -> None:
        receiver = message["user_to"]
        body = f"New message from {username}" if username else "You have a new message"
        await self._notify_secondary(
            message,
            UserTarget(receiver),
            DeliveryPlan(
                push=PushDelivery(
                    title="New Message",
                    body=body,
                    data={"conversation": str(message["conversation"]), "message": str(message["_id"])},
                ),
                realtime=RealtimeDelivery(new_message_event(message["conversation"]), message),
                record=RecordDelivery({
                    "user": receiver,
                    "message": message["_id"],
                    "messenger": message["user_from"],
                }),
            ),
            NEW_MESSAGE,
        )
        await self._notify_secondary(
            message,
            UserTarget(receiver),
            DeliveryPlan(realtime=RealtimeDelivery(CONVERSATIONS_UPDATED, conversation)),
        )

    async def _notify_secondary(self, message: Dict[str, Any], target: UserTarget, plan: DeliveryPlan, type: Optional[str] = None) -> None:
        # the message is already stored; notification problems are logged only
        try:
            report = await self._notifications.notify(target, plan, type)
        except Exception:
            logger.exception("Secondary notification failed for message %s", message["_id"])
            return
        for channel, error in report.failed.items():
            logger.error("Secondary %s delivery failed for message %s: %r", channel, message["_id"], error)
