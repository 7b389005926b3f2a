"""Store Service models package."""

from services.store_service.models.accounts import Customer, Role, User
from services.store_service.models.catalog import (
    Category,
    Product,
    Review,
    discounted_price,
)
from services.store_service.models.commerce import (
    CartItem,
    Order,
    OrderItem,
    Payment,
    cart_expiry,
)
from services.store_service.models.enums import (
    CANCELLABLE_STATUSES,
    FINAL_STATUSES,
    OrderStatus,
    PaymentProvider,
    PaymentStatus,
    TransactionStatus,
)

__all__ = [
    "CANCELLABLE_STATUSES",
    "CartItem",
    "Category",
    "Customer",
    "FINAL_STATUSES",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentProvider",
    "PaymentStatus",
    "Product",
    "Review",
    "Role",
    "TransactionStatus",
    "User",
    "cart_expiry",
    "discounted_price",
]
