"""
Shared fixtures: in-memory stand-ins for the Mongo repositories and mocked
provider clients (push, realtime, Stripe).
"""

import os
from copy import deepcopy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

os.environ.setdefault("LOG_LEVEL", "WARNING")

from messenger.models.conversation import ACCEPTED, PENDING, pair_key
from messenger.models.message import READ as MESSAGE_READ
from messenger.models.message import SENT
from messenger.models.notification import READ as NOTIFICATION_READ
from messenger.models.notification import UNREAD
from messenger.services.chat_service import ChatService
from messenger.services.customer_service import CustomerService
from messenger.services.notification_service import NotificationService
from messenger.utils.pagination import normalize_paging


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


def _page(items: List[Dict[str, Any]], page: Optional[int], limit: Optional[int]) -> Dict[str, Any]:
    page, limit = normalize_paging(page, limit)
    items = sorted(items, key=lambda d: d["created_at"], reverse=True)
    total = len(items)
    return {
        "data": items[(page - 1) * limit: page * limit],
        "total_count": total,
        "total_pages": -(-total // limit),
    }


class _Clock:
    def __init__(self) -> None:
        self._now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


class FakeUserRepository:

    def __init__(self) -> None:
        self.users: Dict[ObjectId, Dict[str, Any]] = {}

    def add(self, name: str = "user", tokens: Optional[List[str]] = None, **extra: Any) -> ObjectId:
        user_id = ObjectId()
        self.users[user_id] = {
            "_id": user_id,
            "name": name,
            "fcms": [{"token": t, "device": "android"} for t in tokens or []],
            **extra,
        }
        return user_id

    async def exists(self, user_id):
        return user_id in self.users

    async def get_user_by_id(self, user_id):
        return self.users.get(user_id)

    async def get_push_tokens(self, user_id):
        user = self.users.get(user_id)
        return [f["token"] for f in user["fcms"]] if user else []

    async def get_push_tokens_many(self, query=None):
        tokens = []
        for user in self.users.values():
            if _matches(user, query or {}):
                tokens.extend(f["token"] for f in user["fcms"])
        return tokens

    async def add_push_token(self, user_id, token, device=None):
        user = self.users[user_id]
        if any(f["token"] == token for f in user["fcms"]):
            return False
        user["fcms"].append({"token": token, "device": device})
        return True

    async def update_user(self, user_id, fields):
        if user_id not in self.users:
            return False
        self.users[user_id].update(fields)
        return True


class FakeConversationRepository:

    def __init__(self, clock: _Clock) -> None:
        self.conversations: Dict[ObjectId, Dict[str, Any]] = {}
        self._clock = clock

    async def get_or_create_one_to_one(self, user_from, user_to):
        key = pair_key(user_from, user_to)
        for conversation in self.conversations.values():
            if conversation["pair_key"] == key:
                return deepcopy(conversation)
        now = self._clock()
        doc = {
            "_id": ObjectId(),
            "pair_key": key,
            "user_from": user_from,
            "user_to": user_to,
            "status": PENDING,
            "last_message": None,
            "created_at": now,
            "updated_at": now,
        }
        self.conversations[doc["_id"]] = doc
        return deepcopy(doc)

    async def get_conversation(self, conversation_id):
        found = self.conversations.get(conversation_id)
        return deepcopy(found) if found else None

    async def exists(self, conversation_id):
        return conversation_id in self.conversations

    async def accept(self, conversation_id, user_to):
        return await self.transition(conversation_id, PENDING, ACCEPTED, extra={"user_to": user_to})

    async def transition(self, conversation_id, from_status, to_status, extra=None):
        found = self.conversations.get(conversation_id)
        if not found or found["status"] != from_status or not _matches(found, extra or {}):
            return None
        found["status"] = to_status
        return deepcopy(found)

    async def update_on_new_message(self, conversation_id, message_id):
        self.conversations[conversation_id]["last_message"] = message_id

    async def delete_conversation(self, conversation_id):
        return self.conversations.pop(conversation_id, None)

    async def list_for_user(self, user_id=None, keyword=None, page=None, limit=None):
        items = [c for c in self.conversations.values() if user_id in (None, c["user_from"], c["user_to"])]
        return _page(items, page, limit)


class FakeMessageRepository:

    def __init__(self, clock: _Clock) -> None:
        self.messages: Dict[ObjectId, Dict[str, Any]] = {}
        self._clock = clock

    async def save_message(self, conversation_id, user_from, user_to, text=None, attachments=None):
        now = self._clock()
        doc = {
            "_id": ObjectId(),
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
        self.messages[doc["_id"]] = doc
        return deepcopy(doc)

    async def list_page(self, query, page=None, limit=None):
        if "$or" in query:
            items = [m for m in self.messages.values() if any(_matches(m, q) for q in query["$or"])]
        else:
            items = [m for m in self.messages.values() if _matches(m, query)]
        return _page(items, page, limit)

    async def update_message(self, message_id, fields):
        found = self.messages.get(message_id)
        if not found:
            return None
        found.update(fields)
        return deepcopy(found)

    async def delete_message(self, message_id):
        return self.messages.pop(message_id, None)

    async def delete_by_conversation(self, conversation_id):
        doomed = [k for k, m in self.messages.items() if m["conversation"] == conversation_id]
        for key in doomed:
            del self.messages[key]
        return len(doomed)

    async def mark_read(self, conversation_id, user_to):
        modified = 0
        for message in self.messages.values():
            if message["conversation"] == conversation_id and message["user_to"] == user_to:
                if message["status"] != MESSAGE_READ:
                    modified += 1
                message["status"] = MESSAGE_READ
        return modified


class FakeNotificationRepository:

    def __init__(self, clock: _Clock) -> None:
        self.notifications: List[Dict[str, Any]] = []
        self._clock = clock

    async def create(self, fields):
        doc = {
            "status": UNREAD,
            **{k: v for k, v in fields.items() if v is not None},
            "_id": ObjectId(),
            "created_at": self._clock(),
        }
        self.notifications.append(doc)
        return deepcopy(doc)

    async def list_page(self, user_id=None, page=None, limit=None):
        items = [n for n in self.notifications if user_id is None or n.get("user") == user_id]
        return _page(items, page, limit)

    async def mark_read_for_user(self, user_id):
        modified = 0
        for notification in self.notifications:
            if notification.get("user") == user_id:
                if notification["status"] != NOTIFICATION_READ:
                    modified += 1
                notification["status"] = NOTIFICATION_READ
        return modified


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def conversation_repo(clock):
    return FakeConversationRepository(clock)


@pytest.fixture
def message_repo(clock):
    return FakeMessageRepository(clock)


@pytest.fixture
def notification_repo(clock):
    return FakeNotificationRepository(clock)


@pytest.fixture
def push():
    client = MagicMock()
    client.multicast = AsyncMock(return_value={"success": 0, "failure": 0})
    return client


@pytest.fixture
def emitter():
    client = MagicMock()
    client.emit = AsyncMock()
    client.emit_broadcast = AsyncMock()
    return client


@pytest.fixture
def files_deleter():
    deleter = MagicMock()
    deleter.delete_attachment = AsyncMock()
    deleter.delete_image = AsyncMock()
    return deleter


@pytest.fixture
def notification_service(notification_repo, user_repo, push, emitter):
    return NotificationService(notification_repo, user_repo, push, emitter)


@pytest.fixture
def chat_service(message_repo, conversation_repo, user_repo, notification_service, files_deleter):
    return ChatService(message_repo, conversation_repo, user_repo, notification_service, files_deleter)


@pytest.fixture
def customer_repo():
    repo = MagicMock()
    repo.create = AsyncMock(side_effect=lambda user_id: {"_id": ObjectId(), "user": user_id})
    repo.get_by_user = AsyncMock(return_value=None)
    repo.touch = AsyncMock(return_value=None)
    repo.delete_by_user = AsyncMock(return_value=None)
    repo.list_page = AsyncMock(return_value={"data": [], "total_count": 0, "total_pages": 0})
    return repo


@pytest.fixture
def customer_service(customer_repo, user_repo):
    return CustomerService(customer_repo, user_repo)
