from datetime import datetime
from typing import Literal, Optional, TypedDict

from bson import ObjectId


NotificationStatus = Literal["unread", "read"]

UNREAD = "unread"
READ = "read"

# notification type tags
NEW_MESSAGE = "new_message"


class NotificationDocument(TypedDict, total=False):
    _id: ObjectId
    user: ObjectId
    type: str
    message: Optional[ObjectId]
    messenger: Optional[ObjectId]
    status: NotificationStatus
    created_at: datetime
