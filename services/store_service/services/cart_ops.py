"""Cart operations: stock-checked add/update, totals and expiry."""

import uuid
from decimal import Decimal

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.models import CartItem, Product, cart_expiry
from services.store_service.schemas import (
    CartItemResponse,
    CartResponse,
    ProductSummary,
)
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def _check_stock(product: Product, quantity: int) -> None:
    if quantity > product.stock_quantity:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {product.stock_quantity} items available in stock",
        )


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Quantity must be at least 1",
        )


async def get_cart_items(db: AsyncSession, user_id: uuid.UUID) -> list[CartItem]:
    """Return the user's live cart lines, dropping expired ones first."""
    purged = await db.execute(
        delete(CartItem).where(
            CartItem.user_id == user_id, CartItem.expires_at < utc_now()
        )
    )
    if purged.rowcount:
        logger.info("Purged %d expired cart items for %s", purged.rowcount, user_id)
        await db.commit()

    result = await db.execute(
        select(CartItem)
        .options(selectinload(CartItem.product))
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.created_at)
    )
    return list(result.scalars().all())


def build_cart_response(items: list[CartItem]) -> CartResponse:
    lines = []
    subtotal = Decimal("0")
    total_items = 0

    for item in items:
        unit_price = item.product.final_price
        line_total = unit_price * item.quantity
        subtotal += line_total
        total_items += item.quantity
        lines.append(
            CartItemResponse(
                id=item.id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=unit_price,
                subtotal=line_total,
                expires_at=item.expires_at,
                product=ProductSummary.model_validate(item.product),
            )
        )

    return CartResponse(
        items=lines,
        subtotal=subtotal.quantize(Decimal("0.01")),
        total_items=total_items,
    )


async def add_item(
    db: AsyncSession, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int = 1
) -> CartItem:
    """Add a product to the cart, merging with an existing line."""
    _check_quantity(quantity)

    product = await db.get(Product, product_id)
    if not product or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")

    result = await db.execute(
        select(CartItem).where(
            CartItem.user_id == user_id, CartItem.product_id == product_id
        )
    )
    item = result.scalar_one_or_none()

    if item:
        new_quantity = item.quantity + quantity
        _check_stock(product, new_quantity)
        item.quantity = new_quantity
        item.expires_at = cart_expiry()
    else:
        _check_stock(product, quantity)
        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(item)

    await db.commit()
    logger.info(
        "Cart %s: product %s now x%d", user_id, product_id, item.quantity
    )
    return item


async def update_item(
    db: AsyncSession, user_id: uuid.UUID, item_id: uuid.UUID, quantity: int
) -> CartItem:
    _check_quantity(quantity)

    result = await db.execute(
        select(CartItem)
        .options(selectinload(CartItem.product))
        .where(CartItem.id == item_id, CartItem.user_id == user_id)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="Cart item not found")

    _check_stock(item.product, quantity)
    item.quantity = quantity
    item.expires_at = cart_expiry()
    await db.commit()
    return item


async def remove_item(db: AsyncSession, user_id: uuid.UUID, item_id: uuid.UUID) -> None:
    result = await db.execute(
        select(CartItem).where(CartItem.id == item_id, CartItem.user_id == user_id)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="Cart item not found")

    await db.delete(item)
    await db.commit()


async def clear_cart(db: AsyncSession, user_id: uuid.UUID, commit: bool = True) -> None:
    await db.execute(delete(CartItem).where(CartItem.user_id == user_id))
    if commit:
        await db.commit()
