"""Shared helper functions for store routers."""

import re
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Customer, User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w-]+", re.ASCII)
_DASHES = re.compile(r"-{2,}")


def slugify(text: str) -> str:
    """Turn a display name into a URL slug ("Gaming Laptops!" -> "gaming-laptops")."""
    slug = _WHITESPACE.sub("-", text.strip().lower())
    slug = _NON_WORD.sub("", slug)
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")


@dataclass
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> PageParams:
    return PageParams(page=page, limit=limit)


async def get_active_user(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> User:
    """Load the caller's account, rejecting deactivated or deleted users."""
    result = await db.execute(
        select(User).options(selectinload(User.role)).where(User.id == current_user.user_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="User no longer exists"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated"
        )
    return user


async def get_customer_for_user(
    db: AsyncSession, user_id: uuid.UUID
) -> Optional[Customer]:
    result = await db.execute(select(Customer).where(Customer.user_id == user_id))
    return result.scalar_one_or_none()


async def require_customer(db: AsyncSession, user_id: uuid.UUID) -> Customer:
    customer = await get_customer_for_user(db, user_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer profile not found")
    return customer
