from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError

from messenger.exceptions import NotFoundError, ValidationError
from messenger.repositories.customer_repository import CustomerRepository
from messenger.repositories.user_repository import UserRepository
from messenger.utils.ids import require_object_id


class CustomerService:

    def __init__(self, customer_repo: CustomerRepository, user_repo: UserRepository) -> None:
        self._customer_repo = customer_repo
        self._user_repo = user_repo

    async def add_customer(self, user: Any) -> Dict[str, Any]:
        user_id = require_object_id(user, "user")
        if not await self._user_repo.exists(user_id):
            raise NotFoundError("User not found!")
        try:
            return await self._customer_repo.create(user_id)
        except DuplicateKeyError:
            raise ValidationError("Customer already exists!")

    async def get_customer(self, user: Any) -> Dict[str, Any]:
        customer = await self._customer_repo.get_by_user(require_object_id(user, "user"))
        if not customer:
            raise NotFoundError("Customer not found!")
        return customer

    async def update_customer(self, user: Any) -> Dict[str, Any]:
        customer = await self._customer_repo.touch(require_object_id(user, "user"))
        if not customer:
            raise NotFoundError("Customer not found!")
        return customer

    async def delete_customer(self, user: Any) -> Dict[str, Any]:
        customer = await self._customer_repo.delete_by_user(require_object_id(user, "user"))
        if not customer:
            raise NotFoundError("Customer not found!")
        return customer

    async def get_customers(self, page: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        return await self._customer_repo.list_page(page, limit)
