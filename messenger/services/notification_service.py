import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from messenger.exceptions import NotFoundError
from messenger.repositories.notification_repository import NotificationRepository
from messenger.repositories.user_repository import UserRepository
from messenger.utils.ids import optional_object_id, require_object_id

logger = logging.getLogger(__name__)

PUSH = "push"
REALTIME = "realtime"
RECORD = "record"


@dataclass(frozen=True)
class UserTarget:
    user_id: Any


@dataclass(frozen=True)
class GroupTarget:
    """Every user matching ``query`` (all users when empty)."""

    query: Dict[str, Any] = field(default_factory=dict)


Target = Union[UserTarget, GroupTarget]


@dataclass(frozen=True)
class PushDelivery:
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError("Push delivery requires a title")


@dataclass(frozen=True)
class RealtimeDelivery:
    event: str
    payload: Any = None

    def __post_init__(self) -> None:
        if not self.event:
            raise ValueError("Realtime delivery requires an event name")


@dataclass(frozen=True)
class RecordDelivery:
    fields: Dict[str, Any]

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError("Record delivery requires notification fields")


@dataclass(frozen=True)
class DeliveryPlan:
    push: Optional[PushDelivery] = None
    realtime: Optional[RealtimeDelivery] = None
    record: Optional[RecordDelivery] = None

    def __post_init__(self) -> None:
        if not (self.push or self.realtime or self.record):
            raise ValueError("Delivery plan must use at least one channel")


@dataclass
class DeliveryReport:
    delivered: List[str] = field(default_factory=list)
    failed: Dict[str, BaseException] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class NotificationService:

    def __init__(
        self,
        notification_repo: NotificationRepository,
        user_repo: UserRepository,
        push: Any,
        emitter: Any,
    ) -> None:
        self._notification_repo = notification_repo
        self._user_repo = user_repo
        self._push = push
        self._emitter = emitter

    async def add_notification(
        self,
        user: Any,
        type: Optional[str] = None,
        message: Any = None,
        messenger: Any = None,
    ) -> Dict[str, Any]:
        return await self._notification_repo.create({
            "user": optional_object_id(user, "user"),
            "type": type,
            "message": optional_object_id(message, "message"),
            "messenger": optional_object_id(messenger, "messenger"),
        })

    async def get_notifications(self, user: Any = None, page: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        return await self._notification_repo.list_page(optional_object_id(user, "user"), page, limit)

    async def read_notifications(self, user: Any) -> None:
        user_id = require_object_id(user, "user")
        if not await self._user_repo.exists(user_id):
            raise NotFoundError("User not found!")
        await self._notification_repo.mark_read_for_user(user_id)

    async def notify(self, target: Target, plan: DeliveryPlan, type: Optional[str] = None) -> DeliveryReport:
        """Fan one event out over the channels named by ``plan``.

        Channels run concurrently; a failure in one is logged and reported
        but never cancels or rolls back the others.
        """
        jobs = {}
        if plan.push:
            jobs[PUSH] = self._deliver_push(target, plan.push, type)
        if plan.realtime:
            jobs[REALTIME] = self._deliver_realtime(target, plan.realtime)
        if plan.record:
            jobs[RECORD] = self._deliver_record(plan.record, type)

        results = await asyncio.gather(*jobs.values(), return_exceptions=True)
        report = DeliveryReport()
        for channel, result in zip(jobs, results):
            if isinstance(result, BaseException):
                logger.warning("Notification %s delivery to %s failed: %r", channel, target, result)
                report.failed[channel] = result
            else:
                report.delivered.append(channel)
        return report

    async def _deliver_push(self, target: Target, push: PushDelivery, type: Optional[str]) -> Any:
        if isinstance(target, GroupTarget):
            tokens = await self._user_repo.get_push_tokens_many(target.query)
        else:
            tokens = await self._user_repo.get_push_tokens(require_object_id(target.user_id, "user"))
        # same multicast call for one user, many users or nobody
        unique_tokens = list(dict.fromkeys(tokens))
        data = {**push.data, "type": type} if type else dict(push.data)
        return await self._push.multicast(unique_tokens, push.title, push.body, data)

    async def _deliver_realtime(self, target: Target, realtime: RealtimeDelivery) -> None:
        if isinstance(target, GroupTarget):
            await self._emitter.emit_broadcast(realtime.event, realtime.payload)
        else:
            await self._emitter.emit(target.user_id, realtime.event, realtime.payload)

    async def _deliver_record(self, record: RecordDelivery, type: Optional[str]) -> Dict[str, Any]:
        return await self._notification_repo.create({**record.fields, "type": type})
