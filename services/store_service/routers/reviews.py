"""Review router: product reviews by customers, moderation by staff."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import get_current_user, require_staff
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.responses import ApiResponse, Page, ok, paginate
from libs.db.session import get_async_db
from services.store_service.models import Customer, Review
from services.store_service.routers._helpers import (
    PageParams,
    get_customer_for_user,
    page_params,
    require_customer,
)
from services.store_service.schemas import (
    ProductReviewsResponse,
    ReviewCheckResponse,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
)
from services.store_service.services import review_ops
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


async def _paged_reviews(
    db: AsyncSession, conditions: list, paging: PageParams
) -> dict:
    total = (
        await db.execute(select(func.count(Review.id)).where(*conditions))
    ).scalar() or 0
    result = await db.execute(
        select(Review)
        .options(selectinload(Review.customer))
        .where(*conditions)
        .order_by(Review.created_at.desc())
        .offset(paging.offset)
        .limit(paging.limit)
    )
    return paginate(list(result.scalars().all()), total, paging.page, paging.limit)


async def _own_review(
    db: AsyncSession, review_id: uuid.UUID, current_user: AuthUser
) -> Review:
    review = await review_ops.get_review(db, review_id)
    customer = await get_customer_for_user(db, current_user.user_id)
    if customer is None or review.customer_id != customer.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only modify your own reviews",
        )
    return review


@router.get("/product/{product_id}", response_model=ApiResponse[ProductReviewsResponse])
async def get_product_reviews(
    product_id: uuid.UUID,
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_async_db),
):
    reviews, total, stats = await review_ops.product_reviews(
        db, product_id, paging.offset, paging.limit
    )
    page = paginate(reviews, total, paging.page, paging.limit)
    return ok({"reviews": reviews, "stats": stats, "pagination": page["pagination"]})


@router.get("/check/{product_id}", response_model=ApiResponse[ReviewCheckResponse])
async def check_review(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Whether the caller has already reviewed the product."""
    customer = await get_customer_for_user(db, current_user.user_id)
    review = (
        await review_ops.find_customer_review(db, customer.id, product_id)
        if customer
        else None
    )
    return ok({"has_reviewed": review is not None, "review": review})


@router.post(
    "", response_model=ApiResponse[ReviewResponse], status_code=status.HTTP_201_CREATED
)
async def create_review(
    review_in: ReviewCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    customer = await require_customer(db, current_user.user_id)
    review = await review_ops.create_review(db, customer, review_in)
    return ok(review, "Review created successfully")


@router.get("/customer/{customer_id}", response_model=ApiResponse[Page[ReviewResponse]])
async def list_customer_reviews(
    customer_id: uuid.UUID,
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_async_db),
):
    if not await db.get(Customer, customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    conditions = [Review.customer_id == customer_id, Review.is_visible.is_(True)]
    return ok(await _paged_reviews(db, conditions, paging))


@router.get("", response_model=ApiResponse[Page[ReviewResponse]])
async def list_reviews(
    product_id: Optional[uuid.UUID] = Query(None),
    customer_id: Optional[uuid.UUID] = Query(None),
    rating: Optional[int] = Query(None, ge=1, le=5),
    is_visible: Optional[bool] = Query(None),
    paging: PageParams = Depends(page_params),
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    conditions = []
    if product_id:
        conditions.append(Review.product_id == product_id)
    if customer_id:
        conditions.append(Review.customer_id == customer_id)
    if rating is not None:
        conditions.append(Review.rating == rating)
    if is_visible is not None:
        conditions.append(Review.is_visible.is_(is_visible))
    return ok(await _paged_reviews(db, conditions, paging))


@router.put("/{review_id}", response_model=ApiResponse[ReviewResponse])
async def update_review(
    review_id: uuid.UUID,
    review_in: ReviewUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    review = await _own_review(db, review_id, current_user)
    for field, value in review_in.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(review, field, value)
    await db.commit()
    return ok(await review_ops.get_review(db, review.id), "Review updated successfully")


@router.delete("/{review_id}", response_model=ApiResponse[None])
async def delete_review(
    review_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Authors may delete their own reviews; staff may delete any."""
    if current_user.is_staff:
        review = await review_ops.get_review(db, review_id)
    else:
        review = await _own_review(db, review_id, current_user)

    await db.delete(review)
    await db.commit()
    logger.info(f"Review {review_id} deleted by {current_user.user_id}")
    return ok(message="Review deleted successfully")


@router.patch("/{review_id}/toggle-visibility", response_model=ApiResponse[ReviewResponse])
async def toggle_review_visibility(
    review_id: uuid.UUID,
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    review = await review_ops.get_review(db, review_id)
    review.is_visible = not review.is_visible
    await db.commit()

    logger.info(f"Review {review_id} visibility -> {review.is_visible}")
    return ok(
        await review_ops.get_review(db, review.id),
        "Review is now visible" if review.is_visible else "Review is now hidden",
    )
