"""Pydantic schemas for store service."""

import re
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from libs.common.responses import Pagination
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from services.store_service.models import (
    OrderStatus,
    PaymentProvider,
    PaymentStatus,
    TransactionStatus,
)

PHONE_PATTERN = re.compile(r"^[+]?[\d\s\-()]+$")

PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"\d"), "one number"),
)
MIN_PASSWORD_LENGTH = 6


def validate_password_strength(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    missing = [label for pattern, label in PASSWORD_RULES if not pattern.search(value)]
    if missing:
        raise ValueError("Password must contain at least " + ", ".join(missing))
    return value


def validate_phone(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    value = value.strip()
    if not PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone number format")
    return value


def validate_image_ref(value: Optional[str]) -> Optional[str]:
    """Accept absolute http(s) URLs or paths under /uploads/."""
    if value is None:
        return None
    value = value.strip()
    if value.startswith(("http://", "https://")):
        return value
    if value.startswith("/uploads/") and ".." not in value.split("/"):
        return value
    raise ValueError("Image must be an http(s) URL or an /uploads/ path")


    return value


# ============================================================================
# AUTH SCHEMAS
# ============================================================================


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str
    phone: Optional[str] = None

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone(v)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone(v)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: EmailStr
    phone: Optional[str] = None
    role_id: int
    role: Optional[RoleResponse] = None
    is_active: bool
    avatar: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: datetime


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenPair):
    user: UserResponse


# ============================================================================
# CUSTOMER SCHEMAS
# ============================================================================


class CustomerProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    billing_address: Optional[str] = None
    billing_city: Optional[str] = Field(None, max_length=100)
    billing_country: Optional[str] = Field(None, max_length=100)
    billing_postal_code: Optional[str] = Field(None, max_length=20)
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = Field(None, max_length=100)
    shipping_country: Optional[str] = Field(None, max_length=100)
    shipping_postal_code: Optional[str] = Field(None, max_length=20)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone(v)


class CustomerAdminUpdate(CustomerProfileUpdate):
    discount_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None


class UsernameUpdate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    billing_address: Optional[str] = None
    billing_city: Optional[str] = None
    billing_country: Optional[str] = None
    billing_postal_code: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_country: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    discount_percentage: Decimal
    created_at: datetime
    updated_at: datetime


class CustomerProfileResponse(CustomerResponse):
    user: UserResponse


class AvatarResponse(BaseModel):
    avatar: str


class CustomerStatistics(BaseModel):
    total_customers: int
    active_customers: int
    new_this_month: int


# ============================================================================
# CATEGORY SCHEMAS
# ============================================================================


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool
    product_count: int = 0
    created_at: datetime
    updated_at: datetime


class CategorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    stock_quantity: int = Field(0, ge=0)
    discount_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    category_id: Optional[int] = None
    brand: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = None
    additional_images: list[str] = []
    is_active: bool = True


class ProductCreate(ProductBase):
    slug: Optional[str] = Field(None, max_length=255)

    @field_validator("image_url")
    @classmethod
    def check_image_url(cls, v: Optional[str]) -> Optional[str]:
        return validate_image_ref(v)

    @field_validator("additional_images")
    @classmethod
    def check_additional_images(cls, v: list[str]) -> list[str]:
        return [validate_image_ref(url) for url in v]


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    discount_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    category_id: Optional[int] = None
    brand: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = None
    additional_images: Optional[list[str]] = None
    is_active: Optional[bool] = None

    @field_validator("image_url")
    @classmethod
    def check_image_url(cls, v: Optional[str]) -> Optional[str]:
        return validate_image_ref(v)

    @field_validator("additional_images")
    @classmethod
    def check_additional_images(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return None
        return [validate_image_ref(url) for url in v]


class ProductSummary(BaseModel):
    """Product fields embedded in cart lines."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    price: Decimal
    final_price: Decimal
    discount_percentage: Decimal
    stock_quantity: int
    image_url: Optional[str] = None
    is_active: bool


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str
    final_price: Decimal
    category: Optional[CategorySummary] = None
    created_at: datetime
    updated_at: datetime


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemAdd(BaseModel):
    product_id: uuid.UUID
    quantity: int = 1


class CartItemUpdate(BaseModel):
    quantity: int


class CartItemResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    expires_at: datetime
    product: ProductSummary


class CartResponse(BaseModel):
    items: list[CartItemResponse] = []
    subtotal: Decimal = Decimal("0")
    total_items: int = 0


# ============================================================================
# CHECKOUT / ORDER SCHEMAS
# ============================================================================


class CheckoutRequest(BaseModel):
    shipping_address: Optional[str] = None
    shipping_phone: Optional[str] = None
    payment_method: str = Field("COD", max_length=50)
    notes: Optional[str] = None

    @field_validator("shipping_phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone(v)


class CheckoutValidation(BaseModel):
    valid: bool
    errors: list[str] = []
    items: list[CartItemResponse] = []
    subtotal: Decimal = Decimal("0")


class OrderLineRequest(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class PlaceOrderRequest(CheckoutRequest):
    items: list[OrderLineRequest] = Field(..., min_length=1)


class OrderCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: str


class OrderPaymentUpdate(BaseModel):
    payment_status: str


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    product_price: Decimal
    discount_percentage: Decimal
    quantity: int
    subtotal: Decimal


class OrderCustomerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    status: OrderStatus
    payment_status: PaymentStatus
    subtotal: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    payment_method: str
    shipping_address: str
    shipping_phone: Optional[str] = None
    notes: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemResponse] = []
    customer: Optional[OrderCustomerSummary] = None


class OrderStatistics(BaseModel):
    total_orders: int
    by_status: dict[str, int]
    paid_orders: int
    total_revenue: Decimal


# ============================================================================
# REVIEW SCHEMAS
# ============================================================================


class ReviewCreate(BaseModel):
    product_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    comment: str

    @field_validator("comment")
    @classmethod
    def check_comment_length(cls, v: str) -> str:
        return _validate_comment(v)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = None

    @field_validator("comment")
    @classmethod
    def check_comment_length(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _validate_comment(v)


def _validate_comment(value: str) -> str:
    value = value.strip()
    if not 10 <= len(value) <= 1000:
        raise ValueError("Comment must be between 10 and 1000 characters")
    return value


class ReviewAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    customer_id: uuid.UUID
    rating: int
    comment: str
    is_verified_purchase: bool
    is_visible: bool
    helpful_count: int
    created_at: datetime
    updated_at: datetime
    customer: Optional[ReviewAuthor] = None


class ReviewStats(BaseModel):
    average_rating: float
    total_reviews: int
    rating_counts: dict[int, int]


class ProductReviewsResponse(BaseModel):
    reviews: list[ReviewResponse]
    stats: ReviewStats
    pagination: Pagination


class ReviewCheckResponse(BaseModel):
    has_reviewed: bool
    review: Optional[ReviewResponse] = None


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================


class VNPayCreateRequest(BaseModel):
    order_id: uuid.UUID
    amount: Optional[Decimal] = Field(None, gt=0)
    order_info: Optional[str] = Field(None, max_length=255)


class PaymentUrlResponse(BaseModel):
    payment_url: str


class PayPalCreateRequest(BaseModel):
    order_id: uuid.UUID
    amount: Optional[Decimal] = Field(None, gt=0)
    currency: str = Field("USD", min_length=3, max_length=3)


class ApprovalUrlResponse(BaseModel):
    approval_url: str


class PayPalExecuteRequest(BaseModel):
    payment_id: str = Field(..., min_length=1)
    payer_id: str = Field(..., min_length=1)


class PaymentResult(BaseModel):
    success: bool
    order_id: Optional[uuid.UUID] = None
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None
    message: str


class VietQRRequest(BaseModel):
    order_id: uuid.UUID


class BankInfo(BaseModel):
    bank_name: str
    account_no: str
    account_name: str


class VietQRPaymentResponse(BaseModel):
    payment_id: uuid.UUID
    qr_code: Optional[str] = None
    qr_data_url: Optional[str] = None
    qr_image_url: str
    bank_info: BankInfo
    amount: Decimal
    content: str


class VietQRCheckResponse(BaseModel):
    success: bool
    message: str
    transaction: Optional[dict[str, Any]] = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    provider: PaymentProvider
    amount: Decimal
    currency: str
    status: TransactionStatus
    transaction_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ============================================================================
# STATISTICS SCHEMAS
# ============================================================================


class DashboardStats(BaseModel):
    total_customers: int
    total_products: int
    total_categories: int
    total_orders: int
    total_revenue: Decimal
    pending_orders: int
    completed_orders: int
    average_order_value: Decimal


class RevenuePoint(BaseModel):
    bucket: str
    order_count: int
    revenue: Decimal


class RevenueStats(BaseModel):
    period: str
    year: int
    month: int
    data: list[RevenuePoint]


class TopProduct(BaseModel):
    product_id: uuid.UUID
    name: str
    category: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    stock_quantity: int
    total_sold: int
    total_revenue: Decimal


class LowStockProduct(BaseModel):
    id: uuid.UUID
    name: str
    stock_quantity: int
    price: Decimal
    category: Optional[str] = None


class CategoryStat(BaseModel):
    id: int
    name: str
    product_count: int
    revenue: Decimal


class OrderStatusStat(BaseModel):
    status: OrderStatus
    count: int
    total_amount: Decimal


class TopCustomer(BaseModel):
    customer_id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    order_count: int
    total_spent: Decimal
