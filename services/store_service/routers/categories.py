"""Category router: public listing and admin management with images."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.responses import ApiResponse, Page, ok, paginate
from libs.db.session import get_async_db
from services.store_service.models import Category, Product
from services.store_service.routers._helpers import PageParams, page_params, slugify
from services.store_service.schemas import CategoryResponse
from services.store_service.uploads import delete_upload, save_image, unique_stem
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


async def _product_counts(db: AsyncSession, category_ids: list[int]) -> dict[int, int]:
    if not category_ids:
        return {}
    result = await db.execute(
        select(Product.category_id, func.count(Product.id))
        .where(Product.category_id.in_(category_ids))
        .group_by(Product.category_id)
    )
    return dict(result.all())


def _to_response(category: Category, product_count: int) -> CategoryResponse:
    return CategoryResponse.model_validate(category).model_copy(
        update={"product_count": product_count}
    )


async def _get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


async def _ensure_unique_name(
    db: AsyncSession, name: str, exclude_id: Optional[int] = None
) -> None:
    query = select(Category.id).where(
        or_(func.lower(Category.name) == name.lower(), Category.slug == slugify(name))
    )
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Category name already exists",
        )


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise HTTPException(status_code=400, detail="Category name is required")
    return name.strip()


@router.get("", response_model=ApiResponse[Page[CategoryResponse]])
async def list_categories(
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_async_db),
):
    conditions = []
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(Category.name.ilike(pattern), Category.description.ilike(pattern))
        )
    if is_active is not None:
        conditions.append(Category.is_active.is_(is_active))

    total = (
        await db.execute(select(func.count(Category.id)).where(*conditions))
    ).scalar() or 0
    result = await db.execute(
        select(Category)
        .where(*conditions)
        .order_by(Category.name)
        .offset(paging.offset)
        .limit(paging.limit)
    )
    categories = result.scalars().all()
    counts = await _product_counts(db, [c.id for c in categories])

    items = [_to_response(c, counts.get(c.id, 0)) for c in categories]
    return ok(paginate(items, total, paging.page, paging.limit))


@router.get("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def get_category(category_id: int, db: AsyncSession = Depends(get_async_db)):
    category = await _get_category(db, category_id)
    counts = await _product_counts(db, [category.id])
    return ok(_to_response(category, counts.get(category.id, 0)))


@router.post(
    "",
    response_model=ApiResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    is_active: bool = Form(True),
    image: Optional[UploadFile] = File(None),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    name = _clean_name(name)
    await _ensure_unique_name(db, name)

    category = Category(
        name=name,
        slug=slugify(name),
        description=description,
        is_active=is_active,
    )
    if image is not None and image.filename:
        category.image_url = await save_image(
            image, "categories", unique_stem("category")
        )
    db.add(category)
    await db.commit()

    logger.info(f"Created category {category.name} ({category.id})")
    return ok(_to_response(category, 0), "Category created successfully")


@router.put("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def update_category(
    category_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    is_active: Optional[bool] = Form(None),
    image: Optional[UploadFile] = File(None),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    category = await _get_category(db, category_id)

    if name is not None:
        name = _clean_name(name)
        await _ensure_unique_name(db, name, exclude_id=category.id)
        category.name = name
        category.slug = slugify(name)
    if description is not None:
        category.description = description
    if is_active is not None:
        category.is_active = is_active
    if image is not None and image.filename:
        old_image = category.image_url
        category.image_url = await save_image(
            image, "categories", unique_stem("category", category.id)
        )
        delete_upload(old_image)

    await db.commit()
    counts = await _product_counts(db, [category.id])
    return ok(
        _to_response(category, counts.get(category.id, 0)),
        "Category updated successfully",
    )


@router.delete("/{category_id}", response_model=ApiResponse[None])
async def delete_category(
    category_id: int,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    category = await _get_category(db, category_id)
    counts = await _product_counts(db, [category.id])
    if counts.get(category.id, 0):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot delete category with {counts[category.id]} products",
        )

    image_url = category.image_url
    await db.delete(category)
    await db.commit()
    delete_upload(image_url)

    logger.info(f"Deleted category {category_id}")
    return ok(message="Category deleted successfully")
