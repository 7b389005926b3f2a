"""Admin statistics router."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.common.responses import ApiResponse, ok
from libs.db.session import get_async_db
from services.store_service.schemas import (
    CategoryStat,
    DashboardStats,
    LowStockProduct,
    OrderStatusStat,
    RevenueStats,
    TopCustomer,
    TopProduct,
)
from services.store_service.services import statistics_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(
    prefix="/statistics", tags=["statistics"], dependencies=[Depends(require_admin)]
)


@router.get("/dashboard", response_model=ApiResponse[DashboardStats])
async def get_dashboard(db: AsyncSession = Depends(get_async_db)):
    return ok(await statistics_ops.dashboard(db))


@router.get("/revenue", response_model=ApiResponse[RevenueStats])
async def get_revenue(
    period: str = Query("month"),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(get_async_db),
):
    """Revenue per month (period=year), per day (month) or per hour (day)."""
    return ok(await statistics_ops.revenue(db, period, year, month))


@router.get("/top-products", response_model=ApiResponse[list[TopProduct]])
async def get_top_products(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await statistics_ops.top_products(db, limit))


@router.get("/low-stock", response_model=ApiResponse[list[LowStockProduct]])
async def get_low_stock(
    threshold: int = Query(10, ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await statistics_ops.low_stock(db, threshold))


@router.get("/categories", response_model=ApiResponse[list[CategoryStat]])
async def get_category_stats(db: AsyncSession = Depends(get_async_db)):
    return ok(await statistics_ops.category_stats(db))


@router.get("/orders/status", response_model=ApiResponse[list[OrderStatusStat]])
async def get_order_status_stats(db: AsyncSession = Depends(get_async_db)):
    return ok(await statistics_ops.order_status_stats(db))


@router.get("/top-customers", response_model=ApiResponse[list[TopCustomer]])
async def get_top_customers(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await statistics_ops.top_customers(db, limit))
