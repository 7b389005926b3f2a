"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    """Payment state of an order."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentProvider(str, enum.Enum):
    VNPAY = "vnpay"
    PAYPAL = "paypal"
    VIETQR = "vietqr"


class TransactionStatus(str, enum.Enum):
    """State of a single provider payment attempt."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Orders in these states can still be cancelled by the customer
CANCELLABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING)

# Terminal states; an order here no longer changes status
FINAL_STATUSES = (OrderStatus.CANCELLED, OrderStatus.DELIVERED)
