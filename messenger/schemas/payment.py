from typing import List, Optional

from pydantic import BaseModel, Field


class PaymentIntentCreate(BaseModel):

    amount: float = Field(gt=0)
    customer: Optional[str] = None
    currency: Optional[str] = None
    payment_method: Optional[str] = None
    payment_method_types: Optional[List[str]] = None


class PaymentIntentCapture(BaseModel):

    amount: float = Field(gt=0)


class AccountLinkCreate(BaseModel):

    user: str
    email: Optional[str] = None
    refresh_url: Optional[str] = None
    return_url: Optional[str] = None
