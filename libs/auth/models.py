import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

ROLE_ADMIN = "Admin"
ROLE_STAFF = "Staff"
ROLE_CUSTOMER = "Customer"

# Role rows are seeded with fixed ids
ROLE_IDS = {ROLE_ADMIN: 1, ROLE_STAFF: 2, ROLE_CUSTOMER: 3}
STAFF_ROLES = (ROLE_ADMIN, ROLE_STAFF)


class AuthUser(BaseModel):
    """
    Claims of a verified access token.
    """

    user_id: uuid.UUID = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role_id: int = ROLE_IDS[ROLE_CUSTOMER]
    role: str = ROLE_CUSTOMER

    model_config = {"populate_by_name": True}

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
