from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from libs.auth.models import ROLE_ADMIN, STAFF_ROLES, AuthUser
from libs.auth.security import TokenError, decode_token

security = HTTPBearer(auto_error=False)


def _credentials_exception(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthUser:
    """
    Validate the bearer access token and return the authenticated user.
    """
    if token is None:
        raise _credentials_exception("Authentication required")

    try:
        payload = decode_token(token.credentials)
        return AuthUser(**payload)
    except (TokenError, ValidationError):
        raise _credentials_exception("Invalid or expired token")


async def get_optional_user(
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[AuthUser]:
    """Return the user when a valid token is sent, None otherwise."""
    if token is None:
        return None
    try:
        return AuthUser(**decode_token(token.credentials))
    except (TokenError, ValidationError):
        return None


def require_roles(*roles: str) -> Callable:
    """Build a dependency that only lets the given role names through."""

    async def _check_role(
        current_user: Annotated[AuthUser, Depends(get_current_user)],
    ) -> AuthUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _check_role


require_admin = require_roles(ROLE_ADMIN)
require_staff = require_roles(*STAFF_ROLES)
