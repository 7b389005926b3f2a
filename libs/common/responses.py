"""Response envelope shared by every endpoint: {success, data, message}."""

import math
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class Page(BaseModel, Generic[T]):
    items: list[T]
    pagination: Pagination


def ok(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    """Build a success envelope."""
    return {"success": True, "data": data, "message": message}


def paginate(items: list, total: int, page: int, limit: int) -> dict[str, Any]:
    """Build the `data` payload for a paginated listing."""
    return {
        "items": items,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
    }
