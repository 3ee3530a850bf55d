from datetime import datetime
from typing import Any, Literal, Optional, TypedDict

from bson import ObjectId


ConversationStatus = Literal["pending", "accepted", "rejected"]

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"

CONVERSATION_STATUSES = (PENDING, ACCEPTED, REJECTED)


class ConversationDocument(TypedDict, total=False):
    _id: ObjectId
    user_from: ObjectId
    user_to: ObjectId
    # canonical "<min>:<max>" of both participants, unique
    pair_key: str
    status: ConversationStatus
    # message id when stored, full message document on the value returned by send
    last_message: Optional[Any]
    created_at: datetime
    updated_at: datetime


def pair_key(user_a, user_b) -> str:
    a, b = sorted([str(user_a), str(user_b)])
    return f"{a}:{b}"
