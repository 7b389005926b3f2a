"""Password hashing and JWT issuance for the storefront API.

Access tokens are short-lived and carry the role; refresh tokens are signed
with a separate secret and only identify the user.
"""

import uuid
from datetime import timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """Raised when a token is malformed, expired or of the wrong type."""


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(
    user_id: uuid.UUID, email: str, role_id: int, role: str
) -> str:
    settings = get_settings()
    now = utc_now()
    payload = {
        "sub": str(user_id),
        "email": email,
        "role_id": role_id,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: uuid.UUID) -> str:
    settings = get_settings()
    now = utc_now()
    payload = {
        "sub": str(user_id),
        "type": REFRESH_TOKEN_TYPE,
        # Distinguishes tokens minted within the same second
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    }
    return jwt.encode(
        payload, settings.JWT_REFRESH_SECRET, algorithm=settings.JWT_ALGORITHM
    )


def decode_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> dict[str, Any]:
    """Verify a token's signature, expiry and type and return its claims."""
    settings = get_settings()
    secret = (
        settings.JWT_REFRESH_SECRET
        if token_type == REFRESH_TOKEN_TYPE
        else settings.JWT_SECRET
    )
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise TokenError(str(e)) from e

    if payload.get("type") != token_type:
        raise TokenError(f"Expected a {token_type} token")
    return payload
