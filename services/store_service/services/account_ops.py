"""Account operations: registration, login and token refresh."""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import ROLE_CUSTOMER, ROLE_IDS
from libs.auth.security import (
    REFRESH_TOKEN_TYPE,
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.models import Customer, User
from services.store_service.schemas import RegisterRequest, TokenPair
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def split_name(username: str) -> tuple[str, Optional[str]]:
    """Split "Nguyen Van A" into ("Nguyen", "Van A")."""
    first, _, rest = username.strip().partition(" ")
    return first, rest.strip() or None


def issue_tokens(user: User) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(
            user.id, user.email, user.role_id, user.role.name
        ),
        refresh_token=create_refresh_token(user.id),
    )


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    result = await db.execute(
        select(User)
        .options(selectinload(User.role))
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User)
        .options(selectinload(User.role))
        .where(func.lower(User.email) == email.lower())
    )
    return result.scalar_one_or_none()


async def register(db: AsyncSession, data: RegisterRequest) -> User:
    """Create a customer account together with its customer profile."""
    if await get_user_by_email(db, data.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        username=data.username,
        email=data.email.lower(),
        phone=data.phone,
        password_hash=hash_password(data.password),
        role_id=ROLE_IDS[ROLE_CUSTOMER],
    )
    first_name, last_name = split_name(data.username)
    user.customer = Customer(first_name=first_name, last_name=last_name, phone=data.phone)
    db.add(user)
    await db.commit()

    logger.info(f"Registered user {user.email}", extra={"extra_fields": {"user_id": str(user.id)}})
    return await get_user(db, user.id)


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login for {email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated"
        )

    user.last_login = utc_now()
    await db.commit()
    logger.info(f"User {user.email} logged in")
    return await get_user(db, user.id)


async def refresh(db: AsyncSession, refresh_token: str) -> TokenPair:
    invalid = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired refresh token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(refresh_token, REFRESH_TOKEN_TYPE)
        user_id = uuid.UUID(payload["sub"])
    except (TokenError, KeyError, ValueError):
        raise invalid

    user = await get_user(db, user_id)
    if not user or not user.is_active:
        raise invalid
    return issue_tokens(user)


async def change_password(
    db: AsyncSession, user: User, current_password: str, new_password: str
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info(f"Password changed for {user.email}")
