import logging
from typing import Any, Dict, List, Optional

import stripe

from messenger.config import Settings
from messenger.exceptions import NotFoundError, ValidationError
from messenger.models.payment_account import STRIPE_ACCOUNT, STRIPE_CUSTOMER
from messenger.repositories.payment_account_repository import PaymentAccountRepository
from messenger.repositories.user_repository import UserRepository
from messenger.utils.ids import require_object_id

logger = logging.getLogger(__name__)

EXTERNAL_ACCOUNT_CREATED = "account.external_account.created"

_CAPABILITIES = {
    "card_payments": {"requested": True},
    "transfers": {"requested": True},
}


def to_plain(obj: Any) -> Dict[str, Any]:
    """Stripe objects to plain dicts, for storage."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def _to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


class StripeGateway:
    """Thin adapter over the Stripe API plus the payment-account records it keeps."""

    def __init__(
        self,
        client: stripe.StripeClient,
        payment_account_repo: PaymentAccountRepository,
        user_repo: UserRepository,
        settings: Settings,
    ) -> None:
        self._client = client
        self._payment_account_repo = payment_account_repo
        self._user_repo = user_repo
        self._settings = settings

    @property
    def currency(self) -> str:
        return self._settings.stripe_currency

    async def create_token(
        self,
        number: Optional[str] = None,
        exp_month: Optional[int] = None,
        exp_year: Optional[int] = None,
        cvc: Optional[str] = None,
        name: Optional[str] = None,
    ):
        card: Dict[str, Any] = {}
        if number:
            card["number"] = number
        if isinstance(exp_month, int):
            card["exp_month"] = exp_month
        if isinstance(exp_year, int):
            card["exp_year"] = exp_year
        if cvc:
            card["cvc"] = cvc
        if name:
            card["name"] = name
        return await self._client.tokens.create_async(params={"card": card})

    async def create_customer(self, email: Optional[str] = None, phone: Optional[str] = None, **metadata: Any):
        params: Dict[str, Any] = {}
        if email:
            params["email"] = email
        if phone:
            params["phone"] = phone
        if metadata:
            params["metadata"] = {key: str(value) for key, value in metadata.items()}
        return await self._client.customers.create_async(params=params)

    async def delete_customer(self, customer_id: str):
        if not customer_id:
            raise ValidationError("Please enter customer id!")
        return await self._client.customers.delete_async(customer_id)

    async def create_customer_source_with_check(
        self,
        source: str,
        user: Any,
        card_holder_name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Attach a card to the user's Stripe customer, creating the customer once."""
        user_id = require_object_id(user, "user")
        existing = await self._payment_account_repo.get_by_user(user_id, STRIPE_CUSTOMER)
        if existing:
            customer_id = existing["account"]["customer"]
        else:
            customer = await self.create_customer(email=email, phone=phone)
            customer_id = customer.id

        card = to_plain(await self._client.customers.payment_sources.create_async(
            customer_id, params={"source": source}
        ))
        card["card_holder_name"] = card_holder_name
        return await self._payment_account_repo.create(user_id, STRIPE_CUSTOMER, card)

    async def get_customer_sources(
        self,
        customer: str,
        limit: Optional[int] = None,
        starting_after: Optional[str] = None,
        ending_before: Optional[str] = None,
    ):
        params: Dict[str, Any] = {"customer": customer, "type": "card"}
        if limit:
            params["limit"] = limit
        if starting_after:
            params["starting_after"] = starting_after
        if ending_before:
            params["ending_before"] = ending_before
        return await self._client.payment_methods.list_async(params=params)

    async def create_account_with_check(self, user: Any, email: Optional[str] = None) -> Dict[str, Any]:
        user_id = require_object_id(user, "user")
        existing = await self._payment_account_repo.get_by_user(user_id, STRIPE_ACCOUNT)
        if existing:
            return existing
        params: Dict[str, Any] = {"type": "express", "capabilities": _CAPABILITIES}
        if email:
            params["email"] = email
        account = await self._client.accounts.create_async(params=params)
        return await self._payment_account_repo.create(user_id, STRIPE_ACCOUNT, to_plain(account))

    async def create_account_link(
        self,
        user: Any,
        email: Optional[str] = None,
        account: Optional[str] = None,
        refresh_url: Optional[str] = None,
        return_url: Optional[str] = None,
    ):
        """Onboarding link for the user's connected account (created if missing)."""
        user_id = require_object_id(user, "user")
        existing = await self._payment_account_repo.get_by_user(user_id, STRIPE_ACCOUNT)
        if existing:
            account_obj = existing["account"]
        else:
            params: Dict[str, Any] = {"type": "custom", "country": "US", "capabilities": _CAPABILITIES}
            if email:
                params["email"] = email
            account_obj = to_plain(await self._client.accounts.create_async(params=params))
            await self._payment_account_repo.create(user_id, STRIPE_ACCOUNT, account_obj)
        return await self._client.account_links.create_async(params={
            "account": account or account_obj["id"],
            "refresh_url": refresh_url or self._settings.stripe_refresh_url,
            "return_url": return_url or self._settings.stripe_return_url,
            "type": "account_onboarding",
        })

    async def create_charge(
        self,
        amount: int,
        customer: Optional[str] = None,
        source: Optional[str] = None,
        currency: Optional[str] = None,
        description: Optional[str] = None,
    ):
        params: Dict[str, Any] = {"amount": amount, "currency": currency or self.currency}
        if customer:
            params["customer"] = customer
        if source:
            params["source"] = source
        if description:
            params["description"] = description
        return await self._client.charges.create_async(params=params)

    async def create_refund(self, charge: str):
        return await self._client.refunds.create_async(params={"charge": charge})

    async def create_top_up(
        self,
        amount: int,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        statement_descriptor: Optional[str] = None,
    ):
        params: Dict[str, Any] = {"amount": amount, "currency": currency or self.currency}
        if description:
            params["description"] = description
        if statement_descriptor:
            params["statement_descriptor"] = statement_descriptor
        return await self._client.topups.create_async(params=params)

    async def create_transfer(
        self,
        user: Any,
        amount: int,
        currency: Optional[str] = None,
        description: Optional[str] = None,
    ):
        existing = await self._payment_account_repo.get_by_user(require_object_id(user, "user"), STRIPE_ACCOUNT)
        if not existing:
            raise NotFoundError("Payment account not found!")
        params: Dict[str, Any] = {
            "amount": amount,
            "currency": currency or self.currency,
            "destination": existing["account"]["id"],
        }
        if description:
            params["description"] = description
        return await self._client.transfers.create_async(params=params)

    async def create_payment_intent(
        self,
        amount: float,
        customer: Optional[str] = None,
        currency: Optional[str] = None,
        payment_method: Optional[str] = None,
        payment_method_types: Optional[List[str]] = None,
    ):
        """Manual-capture intent; ``amount`` is in major currency units."""
        params: Dict[str, Any] = {
            "amount": _to_minor_units(amount),
            "currency": currency or self.currency,
            "capture_method": "manual",
            "setup_future_usage": "on_session",
        }
        if customer:
            params["customer"] = customer
        if payment_method:
            params["payment_method"] = payment_method
            params["confirm"] = True
            params["off_session"] = True
        if payment_method_types:
            params["payment_method_types"] = payment_method_types
        return await self._client.payment_intents.create_async(params=params)

    async def capture_payment_intent(self, payment_intent: str, amount: float):
        return await self._client.payment_intents.capture_async(
            payment_intent, params={"amount_to_capture": _to_minor_units(amount)}
        )

    async def cancel_payment_intent(self, payment_intent: str):
        return await self._client.payment_intents.cancel_async(payment_intent)

    async def refund_payment_intent(self, payment_intent: str):
        return await self._client.refunds.create_async(params={"payment_intent": payment_intent})

    async def construct_webhook_event(self, raw_body: bytes, signature: Optional[str]):
        if not signature:
            raise ValidationError("Please enter stripe signature!")
        try:
            event = self._client.construct_event(raw_body, signature, self._settings.stripe_endpoint_secret)
        except ValueError:
            raise ValidationError("Invalid webhook payload!")
        except stripe.SignatureVerificationError:
            raise ValidationError("Invalid stripe signature!")

        logger.info("Stripe webhook event %s received", event.type)
        if event.type == EXTERNAL_ACCOUNT_CREATED:
            await self._mark_user_connected(getattr(event, "account", None))
        return event

    async def _mark_user_connected(self, account_id: Optional[str]) -> None:
        payment_account = await self._payment_account_repo.get_by_key("account.id", account_id) if account_id else None
        if not payment_account:
            logger.warning("No payment account for connected account %s", account_id)
            return
        await self._user_repo.update_user(payment_account["user"], {"is_stripe_connected": True})
