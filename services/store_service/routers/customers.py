"""Customer router: own profile management and admin customer views."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import start_of_month, utc_now
from libs.common.logging import get_logger
from libs.common.responses import ApiResponse, Page, ok, paginate
from libs.db.session import get_async_db
from services.store_service.models import Customer, User
from services.store_service.routers._helpers import (
    PageParams,
    get_active_user,
    page_params,
)
from services.store_service.schemas import (
    AvatarResponse,
    ChangePasswordRequest,
    CustomerAdminUpdate,
    CustomerProfileResponse,
    CustomerProfileUpdate,
    CustomerStatistics,
    UserResponse,
    UsernameUpdate,
)
from services.store_service.services import account_ops
from services.store_service.services.account_ops import split_name
from services.store_service.uploads import delete_upload, save_image, unique_stem
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

router = APIRouter(prefix="/customers", tags=["customers"])

# Phone is kept on both the user and the profile
SHARED_FIELDS = ("phone",)


def _with_user():
    return selectinload(Customer.user).selectinload(User.role)


async def _load_customer(db: AsyncSession, *conditions) -> Customer:
    result = await db.execute(
        select(Customer)
        .options(_with_user())
        .where(*conditions)
        .execution_options(populate_existing=True)
    )
    customer = result.scalar_one_or_none()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


async def _profile_for(db: AsyncSession, user: User) -> Customer:
    """The user's profile, created on first access."""
    result = await db.execute(select(Customer.id).where(Customer.user_id == user.id))
    if result.first() is None:
        first_name, last_name = split_name(user.username)
        db.add(
            Customer(
                user_id=user.id,
                first_name=first_name,
                last_name=last_name,
                phone=user.phone,
            )
        )
        await db.commit()
        logger.info(f"Created missing customer profile for {user.email}")
    return await _load_customer(db, Customer.user_id == user.id)


async def _ensure_phone_free(
    db: AsyncSession, phone: Optional[str], customer_id: uuid.UUID
) -> None:
    if not phone:
        return
    result = await db.execute(
        select(Customer.id).where(Customer.phone == phone, Customer.id != customer_id)
    )
    if result.first():
        raise HTTPException(status_code=400, detail="Phone number already in use")


# ============================================================================
# OWN PROFILE
# ============================================================================


@router.get("/profile/me", response_model=ApiResponse[CustomerProfileResponse])
async def get_my_profile(
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await _profile_for(db, user))


@router.put("/profile/me", response_model=ApiResponse[CustomerProfileResponse])
async def update_my_profile(
    data: CustomerProfileUpdate,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    customer = await _profile_for(db, user)
    updates = data.model_dump(exclude_unset=True)
    if "phone" in updates:
        await _ensure_phone_free(db, updates["phone"], customer.id)

    for field, value in updates.items():
        setattr(customer, field, value)
        if field in SHARED_FIELDS:
            setattr(customer.user, field, value)
    await db.commit()

    return ok(
        await _load_customer(db, Customer.id == customer.id),
        "Profile updated successfully",
    )


@router.put("/profile/change-password", response_model=ApiResponse[None])
async def change_my_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    await account_ops.change_password(
        db, user, data.current_password, data.new_password
    )
    return ok(message="Password changed successfully")


@router.put("/profile/username", response_model=ApiResponse[UserResponse])
async def update_my_username(
    data: UsernameUpdate,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    user.username = data.username.strip()
    await db.commit()
    return ok(await account_ops.get_user(db, user.id), "Username updated successfully")


@router.post("/profile/avatar", response_model=ApiResponse[AvatarResponse])
async def upload_my_avatar(
    avatar: UploadFile = File(...),
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Store a new avatar image and remove the previous one."""
    url = await save_image(avatar, "avatars", unique_stem("avatar", user.id))
    old_avatar = user.avatar
    user.avatar = url
    await db.commit()
    delete_upload(old_avatar)

    logger.info(f"Avatar updated for {user.email}")
    return ok(AvatarResponse(avatar=url), "Avatar uploaded successfully")


# ============================================================================
# ADMIN
# ============================================================================


@router.get("", response_model=ApiResponse[Page[CustomerProfileResponse]])
async def list_customers(
    search: Optional[str] = Query(None),
    paging: PageParams = Depends(page_params),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Customer).join(User, User.id == Customer.user_id)
    count_query = select(func.count(Customer.id)).join(User, User.id == Customer.user_id)
    if search:
        pattern = f"%{search}%"
        condition = or_(
            Customer.first_name.ilike(pattern),
            Customer.last_name.ilike(pattern),
            Customer.phone.ilike(pattern),
            User.email.ilike(pattern),
            User.username.ilike(pattern),
        )
        query = query.where(condition)
        count_query = count_query.where(condition)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.options(_with_user())
        .order_by(Customer.created_at.desc())
        .offset(paging.offset)
        .limit(paging.limit)
    )
    return ok(paginate(list(result.scalars().all()), total, paging.page, paging.limit))


@router.get("/statistics", response_model=ApiResponse[CustomerStatistics])
async def get_customer_statistics(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    now = utc_now()
    month_start = start_of_month(now.year, now.month)

    total = (await db.execute(select(func.count(Customer.id)))).scalar() or 0
    active = (
        await db.execute(
            select(func.count(Customer.id))
            .join(User, User.id == Customer.user_id)
            .where(User.is_active.is_(True))
        )
    ).scalar() or 0
    new_this_month = (
        await db.execute(
            select(func.count(Customer.id)).where(Customer.created_at >= month_start)
        )
    ).scalar() or 0

    return ok(
        CustomerStatistics(
            total_customers=total,
            active_customers=active,
            new_this_month=new_this_month,
        )
    )


@router.get("/user/{user_id}", response_model=ApiResponse[CustomerProfileResponse])
async def get_customer_by_user(
    user_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await _load_customer(db, Customer.user_id == user_id))


@router.get("/{customer_id}", response_model=ApiResponse[CustomerProfileResponse])
async def get_customer(
    customer_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await _load_customer(db, Customer.id == customer_id))


@router.put("/{customer_id}", response_model=ApiResponse[CustomerProfileResponse])
async def update_customer(
    customer_id: uuid.UUID,
    data: CustomerAdminUpdate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    customer = await _load_customer(db, Customer.id == customer_id)
    updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    if "phone" in updates:
        await _ensure_phone_free(db, updates["phone"], customer.id)

    # Account status lives on the user
    is_active = updates.pop("is_active", None)
    if is_active is not None:
        customer.user.is_active = is_active

    for field, value in updates.items():
        setattr(customer, field, value)
        if field in SHARED_FIELDS:
            setattr(customer.user, field, value)
    await db.commit()

    logger.info(f"Customer {customer.id} updated by admin: {sorted(updates)}")
    return ok(
        await _load_customer(db, Customer.id == customer.id),
        "Customer updated successfully",
    )
