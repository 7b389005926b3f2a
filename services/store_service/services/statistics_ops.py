"""Aggregate queries behind the admin statistics dashboard."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from libs.common.datetime_utils import (
    end_of_day,
    start_of_day,
    start_of_month,
    start_of_next_month,
    utc_now,
)
from services.store_service.models import (
    Category,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    User,
)
from services.store_service.schemas import (
    CategoryStat,
    DashboardStats,
    LowStockProduct,
    OrderStatusStat,
    RevenuePoint,
    RevenueStats,
    TopCustomer,
    TopProduct,
)
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

CENTS = Decimal("0.01")

# period -> (date_trunc unit, bucket label format)
REVENUE_PERIODS = {
    "year": ("month", "YYYY-MM"),
    "month": ("day", "YYYY-MM-DD"),
    "day": ("hour", "YYYY-MM-DD HH24:00:00"),
}

LOW_STOCK_LIMIT = 20

NOT_CANCELLED = Order.status != OrderStatus.CANCELLED


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENTS)


async def _count(db: AsyncSession, column, *conditions) -> int:
    result = await db.execute(select(func.count(column)).where(*conditions))
    return result.scalar() or 0


async def dashboard(db: AsyncSession) -> DashboardStats:
    total_orders = await _count(db, Order.id)
    revenue = await db.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(NOT_CANCELLED)
    )
    total_revenue = _money(revenue.scalar())
    counted_orders = await _count(db, Order.id, NOT_CANCELLED)

    return DashboardStats(
        total_customers=await _count(db, Customer.id),
        total_products=await _count(db, Product.id),
        total_categories=await _count(db, Category.id),
        total_orders=total_orders,
        total_revenue=total_revenue,
        pending_orders=await _count(
            db,
            Order.id,
            Order.status.in_([OrderStatus.PENDING, OrderStatus.PROCESSING]),
        ),
        completed_orders=await _count(
            db, Order.id, Order.status == OrderStatus.DELIVERED
        ),
        average_order_value=(
            (total_revenue / counted_orders).quantize(CENTS)
            if counted_orders
            else Decimal("0.00")
        ),
    )


def revenue_window(
    period: str, year: int, month: int, today: Optional[datetime] = None
) -> tuple[datetime, datetime]:
    """[start, end) covered by a revenue report."""
    if period == "year":
        return start_of_month(year, 1), start_of_month(year + 1, 1)
    if period == "month":
        return start_of_month(year, month), start_of_next_month(year, month)

    today = today or utc_now()
    return start_of_day(today), end_of_day(today)


async def revenue(
    db: AsyncSession, period: str, year: Optional[int], month: Optional[int]
) -> RevenueStats:
    if period not in REVENUE_PERIODS:
        raise HTTPException(
            status_code=400,
            detail="Invalid period. Must be one of: " + ", ".join(REVENUE_PERIODS),
        )
    now = utc_now()
    year = year or now.year
    month = month or now.month
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="Month must be between 1 and 12")

    unit, label_format = REVENUE_PERIODS[period]
    start, end = revenue_window(period, year, month, now)

    bucket = func.date_trunc(unit, Order.created_at)
    result = await db.execute(
        select(
            func.to_char(bucket, label_format).label("bucket"),
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
        )
        .where(Order.created_at >= start, Order.created_at < end, NOT_CANCELLED)
        .group_by("bucket")
        .order_by("bucket")
    )

    return RevenueStats(
        period=period,
        year=year,
        month=month,
        data=[
            RevenuePoint(bucket=label, order_count=count, revenue=_money(total))
            for label, count, total in result.all()
        ],
    )


async def top_products(db: AsyncSession, limit: int = 10) -> list[TopProduct]:
    total_sold = func.sum(OrderItem.quantity)
    result = await db.execute(
        select(
            Product,
            Category.name,
            total_sold.label("total_sold"),
            func.sum(OrderItem.subtotal).label("total_revenue"),
        )
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, and_(Order.id == OrderItem.order_id, NOT_CANCELLED))
        .outerjoin(Category, Category.id == Product.category_id)
        .group_by(Product.id, Category.name)
        .order_by(total_sold.desc())
        .limit(limit)
    )
    return [
        TopProduct(
            product_id=product.id,
            name=product.name,
            category=category_name,
            price=product.price,
            image_url=product.image_url,
            stock_quantity=product.stock_quantity,
            total_sold=sold or 0,
            total_revenue=_money(product_revenue),
        )
        for product, category_name, sold, product_revenue in result.all()
    ]


async def low_stock(db: AsyncSession, threshold: int = 10) -> list[LowStockProduct]:
    result = await db.execute(
        select(Product, Category.name)
        .outerjoin(Category, Category.id == Product.category_id)
        .where(Product.stock_quantity <= threshold, Product.is_active.is_(True))
        .order_by(Product.stock_quantity.asc(), Product.name)
        .limit(LOW_STOCK_LIMIT)
    )
    return [
        LowStockProduct(
            id=product.id,
            name=product.name,
            stock_quantity=product.stock_quantity,
            price=product.price,
            category=category_name,
        )
        for product, category_name in result.all()
    ]


async def category_stats(db: AsyncSession) -> list[CategoryStat]:
    sales = (
        select(
            Product.category_id.label("category_id"),
            func.sum(OrderItem.subtotal).label("revenue"),
        )
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, and_(Order.id == OrderItem.order_id, NOT_CANCELLED))
        .group_by(Product.category_id)
        .subquery()
    )
    product_counts = (
        select(
            Product.category_id.label("category_id"),
            func.count(Product.id).label("product_count"),
        )
        .group_by(Product.category_id)
        .subquery()
    )

    revenue_col = func.coalesce(sales.c.revenue, 0)
    result = await db.execute(
        select(
            Category.id,
            Category.name,
            func.coalesce(product_counts.c.product_count, 0),
            revenue_col,
        )
        .outerjoin(product_counts, product_counts.c.category_id == Category.id)
        .outerjoin(sales, sales.c.category_id == Category.id)
        .order_by(revenue_col.desc(), Category.name)
    )
    return [
        CategoryStat(id=cid, name=name, product_count=count, revenue=_money(total))
        for cid, name, count, total in result.all()
    ]


async def order_status_stats(db: AsyncSession) -> list[OrderStatusStat]:
    result = await db.execute(
        select(
            Order.status,
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
        ).group_by(Order.status)
    )
    return [
        OrderStatusStat(status=order_status, count=count, total_amount=_money(total))
        for order_status, count, total in result.all()
    ]


async def top_customers(db: AsyncSession, limit: int = 10) -> list[TopCustomer]:
    total_spent = func.sum(Order.total_amount)
    result = await db.execute(
        select(
            Customer.id,
            Customer.first_name,
            Customer.last_name,
            User.email,
            func.count(Order.id),
            total_spent,
        )
        .join(Order, and_(Order.customer_id == Customer.id, NOT_CANCELLED))
        .join(User, User.id == Customer.user_id)
        .group_by(Customer.id, User.email)
        .order_by(total_spent.desc())
        .limit(limit)
    )
    return [
        TopCustomer(
            customer_id=customer_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            order_count=order_count,
            total_spent=_money(spent),
        )
        for customer_id, first_name, last_name, email, order_count, spent in result.all()
    ]
