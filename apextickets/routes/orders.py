from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError

from ..errors import ApiError, ErrorCode
from ..infra.timings import timeit
from ..orders import STORE_ERRORS, OrderStore, order_json
from .deps import get_orders

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("")
async def create_order(payload: dict, orders: OrderStore = Depends(get_orders)):
    try:
        row = await orders.create(payload)
    except (ValueError, IntegrityError) as e:
        raise ApiError(ErrorCode.BAD_REQUEST, str(e))
    except STORE_ERRORS as e:
        raise ApiError(ErrorCode.STORE, "Failed to create order",
                       message=str(e))
    return order_json(row)


@router.get("")
async def get_order(id: str = "", orders: OrderStore = Depends(get_orders)):
    if not id:
        raise ApiError(ErrorCode.BAD_REQUEST, "id required")
    try:
        async with timeit("db.get_order"):
            row = await orders.get(id)
    except STORE_ERRORS as e:
        raise ApiError(ErrorCode.STORE, "Failed to fetch order",
                       message=str(e))
    if row is None:
        raise ApiError(ErrorCode.NOT_FOUND, "order not found")
    return order_json(row)
