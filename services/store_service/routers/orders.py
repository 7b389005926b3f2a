"""Order router: customer orders and staff order management."""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import get_current_user, require_staff
from libs.auth.models import AuthUser
from libs.common.responses import ApiResponse, Page, ok, paginate
from libs.db.session import get_async_db
from services.store_service.models import Customer, OrderStatus, PaymentStatus, User
from services.store_service.routers._helpers import (
    PageParams,
    get_active_user,
    get_customer_for_user,
    page_params,
    require_customer,
)
from services.store_service.schemas import (
    OrderCancelRequest,
    OrderPaymentUpdate,
    OrderResponse,
    OrderStatistics,
    OrderStatusUpdate,
    PlaceOrderRequest,
)
from services.store_service.services import order_ops
from services.store_service.services.order_ops import OrderFilters
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


def _paged_orders(orders, total: int, paging: PageParams) -> dict:
    return paginate(orders, total, paging.page, paging.limit)


# ============================================================================
# CUSTOMER ENDPOINTS
# ============================================================================


@router.get("/my-orders", response_model=ApiResponse[Page[OrderResponse]])
async def list_my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    paging: PageParams = Depends(page_params),
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    customer = await get_customer_for_user(db, user.id)
    if customer is None:
        return ok(_paged_orders([], 0, paging))

    orders, total = await order_ops.list_orders(
        db,
        OrderFilters(customer_id=customer.id, status=status_filter),
        paging.offset,
        paging.limit,
    )
    return ok(_paged_orders(orders, total, paging))


@router.post(
    "", response_model=ApiResponse[OrderResponse], status_code=status.HTTP_201_CREATED
)
async def place_order(
    data: PlaceOrderRequest,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order for explicit lines without going through the cart."""
    customer = await require_customer(db, user.id)
    order = await order_ops.place_order(db, customer, data.items, data)
    return ok(order, "Order created successfully")


# ============================================================================
# STAFF ENDPOINTS
# ============================================================================


@router.get("", response_model=ApiResponse[Page[OrderResponse]])
async def list_orders(
    search: Optional[str] = Query(None),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(None),
    customer_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    sort: str = Query("newest"),
    paging: PageParams = Depends(page_params),
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    filters = OrderFilters(
        search=search,
        status=status_filter,
        payment_status=payment_status,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        sort=sort,
    )
    orders, total = await order_ops.list_orders(db, filters, paging.offset, paging.limit)
    return ok(_paged_orders(orders, total, paging))


@router.get("/statistics", response_model=ApiResponse[OrderStatistics])
async def get_order_statistics(
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await order_ops.order_statistics(db))


@router.get(
    "/customer/{customer_id}", response_model=ApiResponse[Page[OrderResponse]]
)
async def list_customer_orders(
    customer_id: uuid.UUID,
    paging: PageParams = Depends(page_params),
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    if not await db.get(Customer, customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    orders, total = await order_ops.list_orders(
        db, OrderFilters(customer_id=customer_id), paging.offset, paging.limit
    )
    return ok(_paged_orders(orders, total, paging))


# ============================================================================
# SINGLE ORDER
# ============================================================================


@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id)
    customer = await get_customer_for_user(db, current_user.user_id)
    order_ops.ensure_order_access(order, current_user, customer)
    return ok(order)


@router.put("/{order_id}/cancel", response_model=ApiResponse[OrderResponse])
async def cancel_order(
    order_id: uuid.UUID,
    data: Optional[OrderCancelRequest] = None,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id, lock=True)
    customer = await get_customer_for_user(db, user.id)
    if customer is None or order.customer_id != customer.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this order",
        )
    order = await order_ops.cancel_order(db, order, data.reason if data else None)
    return ok(order, "Order cancelled successfully")


@router.put("/{order_id}/status", response_model=ApiResponse[OrderResponse])
async def update_order_status(
    order_id: uuid.UUID,
    data: OrderStatusUpdate,
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id, lock=True)
    order = await order_ops.update_order_status(db, order, data.status)
    return ok(order, "Order status updated")


@router.put("/{order_id}/payment", response_model=ApiResponse[OrderResponse])
async def update_payment_status(
    order_id: uuid.UUID,
    data: OrderPaymentUpdate,
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id, lock=True)
    order = await order_ops.update_payment_status(db, order, data.payment_status)
    return ok(order, "Payment status updated")
