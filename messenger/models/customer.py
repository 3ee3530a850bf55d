from datetime import datetime
from typing import TypedDict

from bson import ObjectId


class CustomerDocument(TypedDict, total=False):
    _id: ObjectId
    user: ObjectId
    created_at: datetime
    updated_at: datetime
