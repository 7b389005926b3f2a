"""Authentication router: registration, login, tokens and own account."""

from fastapi import APIRouter, Depends, Request, status
from libs.common.logging import get_logger
from libs.common.rate_limit import auth_limit
from libs.common.responses import ApiResponse, ok
from libs.db.session import get_async_db
from services.store_service.models import User
from services.store_service.routers._helpers import get_active_user
from services.store_service.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UserResponse,
)
from services.store_service.services import account_ops
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_payload(user: User) -> AuthResponse:
    tokens = account_ops.issue_tokens(user)
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


@router.post(
    "/register",
    response_model=ApiResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
)
@auth_limit
async def register(
    request: Request,
    data: RegisterRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Create a customer account and log it in."""
    user = await account_ops.register(db, data)
    return ok(_auth_payload(user), "Registration successful")


@router.post("/login", response_model=ApiResponse[AuthResponse])
@auth_limit
async def login(
    request: Request,
    data: LoginRequest,
    db: AsyncSession = Depends(get_async_db),
):
    user = await account_ops.authenticate(db, data.email, data.password)
    return ok(_auth_payload(user), "Login successful")


@router.post("/refresh", response_model=ApiResponse[TokenPair])
@auth_limit
async def refresh_tokens(
    request: Request,
    data: RefreshRequest,
    db: AsyncSession = Depends(get_async_db),
):
    tokens = await account_ops.refresh(db, data.refresh_token)
    return ok(tokens, "Token refreshed")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(user: User = Depends(get_active_user)):
    """Tokens are stateless; the client discards them."""
    logger.info(f"User {user.email} logged out")
    return ok(message="Logout successful")


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(user: User = Depends(get_active_user)):
    return ok(user)


@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(
    data: ProfileUpdate,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    updates = data.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(user, field, value)
    await db.commit()
    return ok(await account_ops.get_user(db, user.id), "Profile updated")


@router.put("/change-password", response_model=ApiResponse[None])
async def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_active_user),
    db: AsyncSession = Depends(get_async_db),
):
    await account_ops.change_password(
        db, user, data.current_password, data.new_password
    )
    return ok(message="Password changed successfully")
