from fastapi import Depends, Request

from messenger.database.connection import mongo_db_dependency
from messenger.exceptions import AppError
from messenger.repositories.conversation_repository import ConversationRepository
from messenger.repositories.customer_repository import CustomerRepository
from messenger.repositories.message_repository import MessageRepository
from messenger.repositories.notification_repository import NotificationRepository
from messenger.repositories.payment_account_repository import PaymentAccountRepository
from messenger.repositories.user_repository import UserRepository
from messenger.services.chat_service import ChatService
from messenger.services.customer_service import CustomerService
from messenger.services.notification_service import NotificationService
from messenger.services.payment_service import StripeGateway


def get_notification_service(request: Request, db=Depends(mongo_db_dependency)) -> NotificationService:
    state = request.app.state
    return NotificationService(NotificationRepository(db), UserRepository(db), state.push, state.emitter)


def get_chat_service(
    request: Request,
    db=Depends(mongo_db_dependency),
    notifications: NotificationService = Depends(get_notification_service),
) -> ChatService:
    return ChatService(
        MessageRepository(db),
        ConversationRepository(db),
        UserRepository(db),
        notifications,
        request.app.state.files_deleter,
    )


def get_customer_service(db=Depends(mongo_db_dependency)) -> CustomerService:
    return CustomerService(CustomerRepository(db), UserRepository(db))


def get_stripe_gateway(request: Request, db=Depends(mongo_db_dependency)) -> StripeGateway:
    state = request.app.state
    if state.stripe is None:
        raise AppError("Payments are not configured!", 503)
    return StripeGateway(state.stripe, PaymentAccountRepository(db), UserRepository(db), state.settings)
