"""Checkout router: turn the cart into an order."""

from fastapi import APIRouter, Depends, status
from libs.common.responses import ApiResponse, ok
from libs.db.session import get_async_db
from services.store_service.models import User
from services.store_service.routers._helpers import get_active_user, require_customer
from services.store_service.schemas import (
    CheckoutRequest,
    CheckoutValidation,
    OrderResponse,
)
from services.store_service.services import order_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.get("/validate", response_model=ApiResponse[CheckoutValidation])
async def validate_checkout(
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Report every stock problem in the cart without placing an order."""
    return ok(await order_ops.validate_checkout(db, user.id))


@router.post(
    "", response_model=ApiResponse[OrderResponse], status_code=status.HTTP_201_CREATED
)
async def checkout(
    data: CheckoutRequest,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    customer = await require_customer(db, user.id)
    order = await order_ops.checkout(db, user.id, customer, data)
    return ok(order, "Order placed successfully")
