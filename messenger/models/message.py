from datetime import datetime
from typing import List, Literal, Optional, TypedDict

from bson import ObjectId


MessageStatus = Literal["sent", "read"]

SENT = "sent"
READ = "read"

MESSAGE_STATUSES = (SENT, READ)


class AttachmentDocument(TypedDict, total=False):
    type: str
    path: str


class MessageDocument(TypedDict, total=False):
    _id: ObjectId
    user_from: ObjectId
    user_to: ObjectId
    conversation: ObjectId
    text: Optional[str]
    attachments: List[AttachmentDocument]
    status: MessageStatus
    created_at: datetime
    updated_at: datetime
