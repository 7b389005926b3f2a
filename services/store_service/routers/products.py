"""Product router: catalog browsing and staff product management."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from libs.auth.dependencies import get_optional_user, require_staff
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.responses import ApiResponse, Page, ok, paginate
from libs.db.session import get_async_db
from services.store_service.models import Category, OrderItem, Product
from services.store_service.routers._helpers import PageParams, page_params, slugify
from services.store_service.schemas import (
    ProductCreate,
    ProductResponse,
    ProductReviewsResponse,
    ProductUpdate,
)
from services.store_service.services import review_ops
from services.store_service.uploads import delete_upload, save_image, unique_stem
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

PRODUCT_SORTS = {
    "newest": Product.created_at.desc(),
    "price_asc": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "name": Product.name.asc(),
}


# ============================================================================
# HELPERS
# ============================================================================


async def _load_product(
    db: AsyncSession, *conditions, include_inactive: bool = False
) -> Product:
    query = (
        select(Product)
        .options(selectinload(Product.category))
        .where(*conditions)
        .execution_options(populate_existing=True)
    )
    if not include_inactive:
        query = query.where(Product.is_active.is_(True))
    product = (await db.execute(query)).scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _unique_slug(
    db: AsyncSession, base: str, exclude_id: Optional[uuid.UUID] = None
) -> str:
    """Append -1, -2, ... to the slug until it is free."""
    base = base or "product"
    slug = base
    suffix = 0
    while True:
        query = select(Product.id).where(Product.slug == slug)
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        if not (await db.execute(query)).first():
            return slug
        suffix += 1
        slug = f"{base}-{suffix}"


async def _check_category(db: AsyncSession, category_id: Optional[int]) -> None:
    if category_id is not None and not await db.get(Category, category_id):
        raise HTTPException(status_code=400, detail="Category not found")


async def _list_products(
    db: AsyncSession,
    conditions: list,
    sort: str,
    paging: PageParams,
) -> dict:
    total = (
        await db.execute(select(func.count(Product.id)).where(*conditions))
    ).scalar() or 0
    result = await db.execute(
        select(Product)
        .options(selectinload(Product.category))
        .where(*conditions)
        .order_by(PRODUCT_SORTS.get(sort, PRODUCT_SORTS["newest"]), Product.id)
        .offset(paging.offset)
        .limit(paging.limit)
    )
    return paginate(list(result.scalars().all()), total, paging.page, paging.limit)


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================


@router.get("", response_model=ApiResponse[Page[ProductResponse]])
async def list_products(
    search: Optional[str] = Query(None),
    category_id: Optional[int] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    sort: str = Query("newest"),
    include_inactive: bool = Query(False),
    paging: PageParams = Depends(page_params),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List products with filters; inactive ones only for staff who ask."""
    conditions = []
    if not (include_inactive and current_user and current_user.is_staff):
        conditions.append(Product.is_active.is_(True))
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.brand.ilike(pattern),
            )
        )
    if category_id is not None:
        conditions.append(Product.category_id == category_id)
    if min_price is not None:
        conditions.append(Product.price >= min_price)
    if max_price is not None:
        conditions.append(Product.price <= max_price)

    return ok(await _list_products(db, conditions, sort, paging))


@router.get("/slug/{slug}", response_model=ApiResponse[ProductResponse])
async def get_product_by_slug(slug: str, db: AsyncSession = Depends(get_async_db)):
    return ok(await _load_product(db, Product.slug == slug))


@router.get(
    "/category/{category_id}", response_model=ApiResponse[Page[ProductResponse]]
)
async def list_category_products(
    category_id: int,
    sort: str = Query("newest"),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_async_db),
):
    if not await db.get(Category, category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    conditions = [Product.category_id == category_id, Product.is_active.is_(True)]
    return ok(await _list_products(db, conditions, sort, paging))


@router.get("/{product_id}", response_model=ApiResponse[ProductResponse])
async def get_product(
    product_id: uuid.UUID,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    include_inactive = bool(current_user and current_user.is_staff)
    return ok(
        await _load_product(
            db, Product.id == product_id, include_inactive=include_inactive
        )
    )


@router.get("/{product_id}/reviews", response_model=ApiResponse[ProductReviewsResponse])
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


# ============================================================================
# STAFF ENDPOINTS
# ============================================================================


@router.post(
    "",
    response_model=ApiResponse[ProductResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    product_in: ProductCreate,
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    await _check_category(db, product_in.category_id)

    data = product_in.model_dump(exclude={"slug"})
    data["slug"] = await _unique_slug(db, slugify(product_in.slug or product_in.name))
    product = Product(**data)
    db.add(product)
    await db.commit()

    logger.info(f"Created product {product.slug} ({product.id})")
    return ok(
        await _load_product(db, Product.id == product.id, include_inactive=True),
        "Product created successfully",
    )


@router.put("/{product_id}", response_model=ApiResponse[ProductResponse])
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    product = await _load_product(db, Product.id == product_id, include_inactive=True)
    updates = product_in.model_dump(exclude_unset=True)

    if "category_id" in updates:
        await _check_category(db, updates["category_id"])
    if updates.get("slug"):
        updates["slug"] = await _unique_slug(
            db, slugify(updates["slug"]), exclude_id=product.id
        )
    elif "name" in updates:
        updates["slug"] = await _unique_slug(
            db, slugify(updates["name"]), exclude_id=product.id
        )
    else:
        updates.pop("slug", None)

    for field, value in updates.items():
        if value is None and field in ("name", "price", "stock_quantity", "is_active"):
            continue
        setattr(product, field, value)
    await db.commit()

    return ok(
        await _load_product(db, Product.id == product.id, include_inactive=True),
        "Product updated successfully",
    )


@router.delete("/{product_id}", response_model=ApiResponse[None])
async def delete_product(
    product_id: uuid.UUID,
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a product, or deactivate it when orders still reference it."""
    product = await _load_product(db, Product.id == product_id, include_inactive=True)

    ordered = (
        await db.execute(
            select(func.count(OrderItem.id)).where(OrderItem.product_id == product.id)
        )
    ).scalar() or 0
    if ordered:
        product.is_active = False
        await db.commit()
        logger.info(f"Deactivated product {product.id} referenced by {ordered} order items")
        return ok(message="Product has orders and was deactivated instead of deleted")

    images = [product.image_url, *(product.additional_images or [])]
    await db.delete(product)
    await db.commit()
    for url in images:
        delete_upload(url)

    logger.info(f"Deleted product {product_id}")
    return ok(message="Product deleted successfully")


@router.post("/{product_id}/images", response_model=ApiResponse[ProductResponse])
async def upload_product_image(
    product_id: uuid.UUID,
    image: UploadFile = File(...),
    _staff: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """The first image becomes the main image; later ones are appended."""
    product = await _load_product(db, Product.id == product_id, include_inactive=True)
    url = await save_image(image, "products", unique_stem("product", product.id))

    if not product.image_url:
        product.image_url = url
    else:
        product.additional_images = [*(product.additional_images or []), url]
    await db.commit()

    return ok(
        await _load_product(db, Product.id == product.id, include_inactive=True),
        "Image uploaded successfully",
    )
