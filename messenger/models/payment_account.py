from datetime import datetime
from typing import Any, Dict, Literal, TypedDict

from bson import ObjectId


PaymentAccountType = Literal["stripe_account", "stripe_customer"]

STRIPE_ACCOUNT = "stripe_account"
STRIPE_CUSTOMER = "stripe_customer"


class PaymentAccountDocument(TypedDict, total=False):
    _id: ObjectId
    user: ObjectId
    type: PaymentAccountType
    # raw Stripe object (account or card)
    account: Dict[str, Any]
    created_at: datetime
