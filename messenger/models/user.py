from typing import List, Optional, TypedDict

from bson import ObjectId


class PushTokenDocument(TypedDict, total=False):
    token: str
    device: Optional[str]


class UserDocument(TypedDict, total=False):

    _id: ObjectId
    name: Optional[str]
    image: Optional[str]
    fcms: List[PushTokenDocument]
    is_stripe_connected: bool
