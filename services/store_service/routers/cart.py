"""Cart router: the caller's cart lines."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.common.responses import ApiResponse, ok
from libs.db.session import get_async_db
from services.store_service.models import User
from services.store_service.routers._helpers import get_active_user
from services.store_service.schemas import CartItemAdd, CartItemUpdate, CartResponse
from services.store_service.services import cart_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/cart", tags=["cart"])


async def _cart(db: AsyncSession, user_id: uuid.UUID) -> CartResponse:
    return cart_ops.build_cart_response(await cart_ops.get_cart_items(db, user_id))


@router.get("", response_model=ApiResponse[CartResponse])
async def get_cart(
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await _cart(db, user.id))


@router.post(
    "", response_model=ApiResponse[CartResponse], status_code=status.HTTP_201_CREATED
)
async def add_to_cart(
    data: CartItemAdd,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    await cart_ops.add_item(db, user.id, data.product_id, data.quantity)
    return ok(await _cart(db, user.id), "Product added to cart")


@router.put("/{item_id}", response_model=ApiResponse[CartResponse])
async def update_cart_item(
    item_id: uuid.UUID,
    data: CartItemUpdate,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    await cart_ops.update_item(db, user.id, item_id, data.quantity)
    return ok(await _cart(db, user.id), "Cart updated")


@router.delete("/{item_id}", response_model=ApiResponse[CartResponse])
async def remove_cart_item(
    item_id: uuid.UUID,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    await cart_ops.remove_item(db, user.id, item_id)
    return ok(await _cart(db, user.id), "Item removed from cart")


@router.delete("", response_model=ApiResponse[CartResponse])
async def clear_cart(
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    await cart_ops.clear_cart(db, user.id)
    return ok(CartResponse(), "Cart cleared")
