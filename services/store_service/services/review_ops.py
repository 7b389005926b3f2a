"""Review operations: creation rules and rating aggregation."""

import uuid
from typing import Optional

from fastapi import HTTPException
from libs.common.logging import get_logger
from services.store_service.models import (
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Review,
)
from services.store_service.schemas import ReviewCreate, ReviewStats
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


async def get_review(db: AsyncSession, review_id: uuid.UUID) -> Review:
    result = await db.execute(
        select(Review)
        .options(selectinload(Review.customer))
        .where(Review.id == review_id)
        .execution_options(populate_existing=True)
    )
    review = result.scalar_one_or_none()
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


async def has_purchased(
    db: AsyncSession, customer_id: uuid.UUID, product_id: uuid.UUID
) -> bool:
    """True when any non-cancelled order of the customer contains the product."""
    result = await db.execute(
        select(func.count(OrderItem.id))
        .join(Order, Order.id == OrderItem.order_id)
        .where(
            Order.customer_id == customer_id,
            Order.status != OrderStatus.CANCELLED,
            OrderItem.product_id == product_id,
        )
    )
    return (result.scalar() or 0) > 0


async def find_customer_review(
    db: AsyncSession, customer_id: uuid.UUID, product_id: uuid.UUID
) -> Optional[Review]:
    result = await db.execute(
        select(Review)
        .options(selectinload(Review.customer))
        .where(Review.customer_id == customer_id, Review.product_id == product_id)
    )
    return result.scalar_one_or_none()


async def create_review(
    db: AsyncSession, customer: Customer, review_in: ReviewCreate
) -> Review:
    product = await db.get(Product, review_in.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if await find_customer_review(db, customer.id, review_in.product_id):
        raise HTTPException(
            status_code=400, detail="You have already reviewed this product"
        )

    review = Review(
        product_id=review_in.product_id,
        customer_id=customer.id,
        rating=review_in.rating,
        comment=review_in.comment,
        is_verified_purchase=await has_purchased(db, customer.id, review_in.product_id),
    )
    db.add(review)
    await db.commit()

    logger.info(
        "Customer %s reviewed product %s (%d stars, verified=%s)",
        customer.id,
        product.id,
        review.rating,
        review.is_verified_purchase,
    )
    return await get_review(db, review.id)


async def review_stats(db: AsyncSession, product_id: uuid.UUID) -> ReviewStats:
    """Average rating and per-star counts over visible reviews."""
    result = await db.execute(
        select(Review.rating, func.count(Review.id))
        .where(Review.product_id == product_id, Review.is_visible.is_(True))
        .group_by(Review.rating)
    )
    rating_counts = {star: 0 for star in range(1, 6)}
    for rating, count in result.all():
        rating_counts[int(rating)] = count

    total = sum(rating_counts.values())
    average = (
        round(sum(star * count for star, count in rating_counts.items()) / total, 1)
        if total
        else 0.0
    )
    return ReviewStats(
        average_rating=average, total_reviews=total, rating_counts=rating_counts
    )


async def product_reviews(
    db: AsyncSession, product_id: uuid.UUID, offset: int, limit: int
) -> tuple[list[Review], int, ReviewStats]:
    """Visible reviews of a product, newest first, with rating stats."""
    if not await db.get(Product, product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    conditions = (Review.product_id == product_id, Review.is_visible.is_(True))
    total = (
        await db.execute(select(func.count(Review.id)).where(*conditions))
    ).scalar() or 0
    result = await db.execute(
        select(Review)
        .options(selectinload(Review.customer))
        .where(*conditions)
        .order_by(Review.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total, await review_stats(db, product_id)
