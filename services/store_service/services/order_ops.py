"""Order operations: checkout, direct orders, cancellation and status changes.

Stock is reserved by locking the product rows (SELECT ... FOR UPDATE) in the
same transaction that creates the order, and is given back when an order is
cancelled.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import end_of_day, start_of_day, utc_now
from libs.common.logging import get_logger
from services.store_service.models import (
    CANCELLABLE_STATUSES,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Product,
    discounted_price,
)
from services.store_service.schemas import (
    CheckoutRequest,
    CheckoutValidation,
    OrderLineRequest,
    OrderStatistics,
)
from services.store_service.services import cart_ops
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

CENTS = Decimal("0.01")

ORDER_SORTS = {
    "newest": Order.created_at.desc(),
    "oldest": Order.created_at.asc(),
    "total_asc": Order.total_amount.asc(),
    "total_desc": Order.total_amount.desc(),
}


# ---------------------------------------------------------------------------
# Loading and access
# ---------------------------------------------------------------------------


async def get_order(db: AsyncSession, order_id: uuid.UUID, lock: bool = False) -> Order:
    """Load an order with its items; `lock` holds the row until commit."""
    query = (
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.customer))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    if lock:
        query = query.with_for_update(of=Order)
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def ensure_order_access(
    order: Order, current_user: AuthUser, customer: Optional[Customer]
) -> None:
    """Customers may only touch their own orders; staff may touch any."""
    if current_user.is_staff:
        return
    if customer is None or order.customer_id != customer.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this order",
        )


# ---------------------------------------------------------------------------
# Placing orders
# ---------------------------------------------------------------------------


def merge_lines(lines: list[OrderLineRequest]) -> dict[uuid.UUID, int]:
    merged: dict[uuid.UUID, int] = {}
    for line in lines:
        merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
    return merged


def shipping_cost_for(subtotal: Decimal) -> Decimal:
    settings = get_settings()
    if subtotal >= settings.FREE_SHIPPING_THRESHOLD:
        return Decimal("0.00")
    return Decimal(settings.SHIPPING_FEE).quantize(CENTS)


async def _create_order(
    db: AsyncSession,
    customer: Customer,
    quantities: dict[uuid.UUID, int],
    data: CheckoutRequest,
) -> Order:
    """Lock products, reserve stock and add the order to the session.

    Does not commit; the caller owns the transaction.
    """
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(list(quantities)))
        .order_by(Product.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    products = {product.id: product for product in result.scalars().all()}

    errors = []
    for product_id, quantity in quantities.items():
        product = products.get(product_id)
        if not product or not product.is_active:
            errors.append(f"Product {product_id} not found")
        elif product.stock_quantity < quantity:
            errors.append(
                f"Insufficient stock for {product.name}. "
                f"Only {product.stock_quantity} available"
            )
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))

    items = []
    subtotal = Decimal("0")
    for product_id, quantity in quantities.items():
        product = products[product_id]
        line_total = discounted_price(product.price, product.discount_percentage) * quantity
        subtotal += line_total
        items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                product_price=product.price,
                discount_percentage=product.discount_percentage or Decimal("0"),
                quantity=quantity,
                subtotal=line_total,
            )
        )
        product.stock_quantity -= quantity

    discount_amount = (
        subtotal * Decimal(customer.discount_percentage or 0) / 100
    ).quantize(CENTS, rounding=ROUND_HALF_UP)
    shipping_cost = shipping_cost_for(subtotal)

    order = Order(
        order_number=Order.generate_order_number(),
        customer_id=customer.id,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        subtotal=subtotal,
        discount_amount=discount_amount,
        shipping_cost=shipping_cost,
        total_amount=subtotal - discount_amount + shipping_cost,
        payment_method=data.payment_method or "COD",
        shipping_address=data.shipping_address.strip(),
        shipping_phone=data.shipping_phone or customer.phone,
        notes=data.notes,
        items=items,
    )
    db.add(order)
    await db.flush()
    return order


def _require_shipping_address(data: CheckoutRequest) -> None:
    if not data.shipping_address or not data.shipping_address.strip():
        raise HTTPException(status_code=400, detail="Shipping address is required")


async def checkout(
    db: AsyncSession, user_id: uuid.UUID, customer: Customer, data: CheckoutRequest
) -> Order:
    """Turn the user's cart into an order and empty the cart."""
    _require_shipping_address(data)

    cart_items = await cart_ops.get_cart_items(db, user_id)
    if not cart_items:
        raise HTTPException(status_code=400, detail="Cart is empty")

    quantities = {item.product_id: item.quantity for item in cart_items}
    order = await _create_order(db, customer, quantities, data)
    await cart_ops.clear_cart(db, user_id, commit=False)
    await db.commit()

    logger.info(
        "Order %s placed from cart by customer %s (total=%s)",
        order.order_number,
        customer.id,
        order.total_amount,
    )
    return await get_order(db, order.id)


async def place_order(
    db: AsyncSession,
    customer: Customer,
    lines: list[OrderLineRequest],
    data: CheckoutRequest,
) -> Order:
    """Create an order from explicit lines, bypassing the cart."""
    _require_shipping_address(data)

    order = await _create_order(db, customer, merge_lines(lines), data)
    await db.commit()

    logger.info(
        "Order %s placed directly by customer %s (total=%s)",
        order.order_number,
        customer.id,
        order.total_amount,
    )
    return await get_order(db, order.id)


async def validate_checkout(db: AsyncSession, user_id: uuid.UUID) -> CheckoutValidation:
    """Report every cart problem at once instead of failing on the first."""
    cart_items = await cart_ops.get_cart_items(db, user_id)
    if not cart_items:
        raise HTTPException(status_code=400, detail="Cart is empty")

    errors = []
    for item in cart_items:
        product = item.product
        if not product.is_active:
            errors.append(f"{product.name} is no longer available")
        elif product.stock_quantity < item.quantity:
            errors.append(
                f"{product.name}: Only {product.stock_quantity} available, "
                f"you have {item.quantity} in cart"
            )

    cart = cart_ops.build_cart_response(cart_items)
    return CheckoutValidation(
        valid=not errors, errors=errors, items=cart.items, subtotal=cart.subtotal
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def _restore_stock(db: AsyncSession, order: Order) -> None:
    for item in order.items:
        if item.product_id is None:
            continue
        await db.execute(
            update(Product)
            .where(Product.id == item.product_id)
            .values(stock_quantity=Product.stock_quantity + item.quantity)
        )


async def cancel_order(
    db: AsyncSession, order: Order, reason: Optional[str] = None
) -> Order:
    """Customer-initiated cancellation, allowed only before shipping."""
    if order.status not in CANCELLABLE_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot cancel order with status '{order.status.value}'",
        )

    await _restore_stock(db, order)
    order.status = OrderStatus.CANCELLED
    order.cancelled_at = utc_now()
    order.cancel_reason = reason
    await db.commit()

    logger.info("Order %s cancelled by customer: %s", order.order_number, reason)
    return await get_order(db, order.id)


def parse_order_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise HTTPException(
            status_code=400, detail=f"Invalid status. Must be one of: {valid}"
        )


async def update_order_status(db: AsyncSession, order: Order, value: str) -> Order:
    new_status = parse_order_status(value)

    if order.status == OrderStatus.CANCELLED:
        raise HTTPException(
            status_code=400, detail="Cannot update status of cancelled order"
        )
    if order.status == OrderStatus.DELIVERED and new_status != OrderStatus.DELIVERED:
        raise HTTPException(
            status_code=400, detail="Cannot update status of delivered order"
        )

    now = utc_now()
    if new_status == OrderStatus.SHIPPED:
        if order.shipped_at is None:
            order.shipped_at = now
    elif new_status == OrderStatus.DELIVERED:
        if order.delivered_at is None:
            order.delivered_at = now
        if order.shipped_at is None:
            order.shipped_at = now
    elif new_status == OrderStatus.CANCELLED:
        await _restore_stock(db, order)
        order.cancelled_at = now

    old_status = order.status
    order.status = new_status
    await db.commit()

    logger.info(
        "Order %s status %s -> %s",
        order.order_number,
        old_status.value,
        new_status.value,
    )
    return await get_order(db, order.id)


async def update_payment_status(db: AsyncSession, order: Order, value: str) -> Order:
    try:
        payment_status = PaymentStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in PaymentStatus)
        raise HTTPException(
            status_code=400,
            detail=f"Invalid payment status. Must be one of: {valid}",
        )

    order.payment_status = payment_status
    await db.commit()
    logger.info("Order %s payment status -> %s", order.order_number, value)
    return await get_order(db, order.id)


def mark_order_paid(order: Order) -> None:
    """Record a confirmed payment; a pending order moves to processing."""
    order.payment_status = PaymentStatus.PAID
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.PROCESSING


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@dataclass
class OrderFilters:
    search: Optional[str] = None
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    customer_id: Optional[uuid.UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort: str = "newest"


def _filter_conditions(filters: OrderFilters) -> list:
    conditions = []
    if filters.search:
        pattern = f"%{filters.search}%"
        conditions.append(
            or_(
                Order.order_number.ilike(pattern),
                Order.shipping_address.ilike(pattern),
            )
        )
    if filters.status:
        conditions.append(Order.status == filters.status)
    if filters.payment_status:
        conditions.append(Order.payment_status == filters.payment_status)
    if filters.customer_id:
        conditions.append(Order.customer_id == filters.customer_id)
    if filters.date_from:
        conditions.append(Order.created_at >= start_of_day(filters.date_from))
    if filters.date_to:
        # Inclusive of the whole end day
        conditions.append(Order.created_at < end_of_day(filters.date_to))
    return conditions


async def list_orders(
    db: AsyncSession, filters: OrderFilters, offset: int, limit: int
) -> tuple[list[Order], int]:
    conditions = _filter_conditions(filters)

    count_query = select(func.count(Order.id)).where(*conditions)
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.customer))
        .where(*conditions)
        .order_by(ORDER_SORTS.get(filters.sort, ORDER_SORTS["newest"]))
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def order_statistics(db: AsyncSession) -> OrderStatistics:
    rows = await db.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )
    by_status = {s.value: 0 for s in OrderStatus}
    for order_status, count in rows.all():
        by_status[order_status.value] = count

    revenue = await db.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            Order.status != OrderStatus.CANCELLED
        )
    )
    paid = await db.execute(
        select(func.count(Order.id)).where(Order.payment_status == PaymentStatus.PAID)
    )

    return OrderStatistics(
        total_orders=sum(by_status.values()),
        by_status=by_status,
        paid_orders=paid.scalar() or 0,
        total_revenue=Decimal(revenue.scalar() or 0),
    )
