from fastapi import APIRouter, Depends, Query

from messenger.schemas.customer import CustomerCreate
from messenger.services.customer_service import CustomerService
from messenger.utils.dependencies import get_customer_service
from messenger.utils.serialization import to_jsonable


router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("")
async def add_customer(body: CustomerCreate, service: CustomerService = Depends(get_customer_service)):
    return to_jsonable(await service.add_customer(body.user))


@router.get("")
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: CustomerService = Depends(get_customer_service),
):
    return to_jsonable(await service.get_customers(page, limit))


@router.get("/{user_id}")
async def get_customer(user_id: str, service: CustomerService = Depends(get_customer_service)):
    return to_jsonable(await service.get_customer(user_id))


@router.put("/{user_id}")
async def update_customer(user_id: str, service: CustomerService = Depends(get_customer_service)):
    return to_jsonable(await service.update_customer(user_id))


@router.delete("/{user_id}")
async def delete_customer(user_id: str, service: CustomerService = Depends(get_customer_service)):
    return to_jsonable(await service.delete_customer(user_id))
