from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from messenger.schemas.payment import AccountLinkCreate, PaymentIntentCapture, PaymentIntentCreate
from messenger.services.payment_service import StripeGateway, to_plain
from messenger.utils.dependencies import get_stripe_gateway
from messenger.utils.serialization import to_jsonable


router = APIRouter(prefix="/payments", tags=["payments"])


def _stripe_json(obj):
    return to_jsonable(to_plain(obj))


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    raw_body = await request.body()
    event = await gateway.construct_webhook_event(raw_body, stripe_signature)
    return {"message": "Done", "event": event.type}


@router.post("/intents")
async def create_payment_intent(body: PaymentIntentCreate, gateway: StripeGateway = Depends(get_stripe_gateway)):
    intent = await gateway.create_payment_intent(
        body.amount,
        customer=body.customer,
        currency=body.currency,
        payment_method=body.payment_method,
        payment_method_types=body.payment_method_types,
    )
    return _stripe_json(intent)


@router.post("/intents/{payment_intent}/capture")
async def capture_payment_intent(payment_intent: str, body: PaymentIntentCapture, gateway: StripeGateway = Depends(get_stripe_gateway)):
    return _stripe_json(await gateway.capture_payment_intent(payment_intent, body.amount))


@router.post("/intents/{payment_intent}/cancel")
async def cancel_payment_intent(payment_intent: str, gateway: StripeGateway = Depends(get_stripe_gateway)):
    return _stripe_json(await gateway.cancel_payment_intent(payment_intent))


@router.post("/intents/{payment_intent}/refund")
async def refund_payment_intent(payment_intent: str, gateway: StripeGateway = Depends(get_stripe_gateway)):
    return _stripe_json(await gateway.refund_payment_intent(payment_intent))


@router.post("/accounts/link")
async def create_account_link(body: AccountLinkCreate, gateway: StripeGateway = Depends(get_stripe_gateway)):
    link = await gateway.create_account_link(
        body.user,
        email=body.email,
        refresh_url=body.refresh_url,
        return_url=body.return_url,
    )
    return _stripe_json(link)
