"""Unit tests for pure storefront helpers: slugs, prices, validators, names, uploads."""

import re
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import ValidationError
from services.store_service import uploads
from services.store_service.models import Order, discounted_price
from services.store_service.routers._helpers import slugify
from services.store_service.schemas import (
    ProductCreate,
    ProductUpdate,
    RegisterRequest,
    ReviewCreate,
    validate_phone,
)
from services.store_service.services import order_ops
from services.store_service.services.account_ops import split_name


# ---------------------------------------------------------------------------
# slugify
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "name, expected",
    [
        ("Gaming Laptops", "gaming-laptops"),
        ("  USB-C   Chargers!  ", "usb-c-chargers"),
        ("Mice & Keyboards", "mice-keyboards"),
        ("--Audio--", "audio"),
        ("Điện thoại", "in-thoi"),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_discounted_price_without_discount():
    assert discounted_price(Decimal("199.99"), Decimal("0")) == Decimal("199.99")
    assert discounted_price(Decimal("199.99"), None) == Decimal("199.99")


@pytest.mark.unit
def test_discounted_price_rounds_half_up_to_cents():
    # 10.05 * 0.85 = 8.5425
    assert discounted_price(Decimal("10.05"), Decimal("15")) == Decimal("8.54")
    # 0.25 * 0.5 = 0.125
    assert discounted_price(Decimal("0.25"), Decimal("50")) == Decimal("0.13")


@pytest.mark.unit
def test_full_discount_is_free():
    assert discounted_price(Decimal("500000"), Decimal("100")) == Decimal("0.00")


@pytest.mark.unit
def test_shipping_is_free_above_threshold(monkeypatch):
    fake_settings = SimpleNamespace(
        SHIPPING_FEE=Decimal("30000"), FREE_SHIPPING_THRESHOLD=Decimal("500000")
    )
    monkeypatch.setattr(order_ops, "get_settings", lambda: fake_settings)

    assert order_ops.shipping_cost_for(Decimal("499999.99")) == Decimal("30000.00")
    assert order_ops.shipping_cost_for(Decimal("500000")) == Decimal("0.00")


@pytest.mark.unit
def test_order_numbers_have_expected_shape():
    number = Order.generate_order_number()
    assert re.fullmatch(r"ORD-\d{13}-\d{3}", number)


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "password",
    ["Ab1", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"],
)
def test_register_rejects_weak_passwords(password):
    with pytest.raises(ValidationError):
        RegisterRequest(username="Tester", email="t@example.com", password=password)


@pytest.mark.unit
def test_register_accepts_strong_password_and_strips_username():
    data = RegisterRequest(
        username="  Nguyen Van A ", email="a@example.com", password="Secret1"
    )
    assert data.username == "Nguyen Van A"


@pytest.mark.unit
def test_phone_validation():
    assert validate_phone("") is None
    assert validate_phone(" +84 (28) 123-456 ") == "+84 (28) 123-456"
    with pytest.raises(ValueError):
        validate_phone("call me maybe")


@pytest.mark.unit
def test_review_comment_length_is_enforced():
    product_id = "5f0c6f8e-7d1a-4a53-9e59-0d6f0e1f2a3b"
    with pytest.raises(ValidationError):
        ReviewCreate(product_id=product_id, rating=5, comment="too short")
    with pytest.raises(ValidationError):
        ReviewCreate(product_id=product_id, rating=6, comment="Long enough comment")

    review = ReviewCreate(product_id=product_id, rating=4, comment="  Solid value for money  ")
    assert review.comment == "Solid value for money"


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_split_name():
    assert split_name("Nguyen Van A") == ("Nguyen", "Van A")
    assert split_name("Madonna") == ("Madonna", None)


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_delete_upload_removes_stored_file(tmp_path, monkeypatch):
    root = tmp_path / "uploads"
    (root / "products").mkdir(parents=True)
    stored = root / "products" / "phone.jpg"
    stored.write_bytes(b"img")
    monkeypatch.setattr(uploads, "upload_root", lambda: root)

    uploads.delete_upload("/uploads/products/phone.jpg")

    assert not stored.exists()


@pytest.mark.unit
@pytest.mark.parametrize(
    "url",
    ["/uploads/../victim.txt", "/uploads/products/../../victim.txt"],
)
def test_delete_upload_stays_inside_upload_dir(tmp_path, monkeypatch, url):
    root = tmp_path / "uploads"
    (root / "products").mkdir(parents=True)
    victim = tmp_path / "victim.txt"
    victim.write_text("keep me")
    monkeypatch.setattr(uploads, "upload_root", lambda: root)

    uploads.delete_upload(url)

    assert victim.exists()


@pytest.mark.unit
def test_product_images_must_be_urls_or_uploads():
    product = ProductCreate(
        name="Phone X",
        price=Decimal("1000000"),
        image_url="https://cdn.example.com/phone.jpg",
        additional_images=["/uploads/products/phone-2.jpg"],
    )
    assert product.image_url == "https://cdn.example.com/phone.jpg"

    with pytest.raises(ValidationError):
        ProductCreate(name="Phone X", price=Decimal("1"), image_url="/uploads/../../alembic.ini")
    with pytest.raises(ValidationError):
        ProductUpdate(additional_images=["/etc/passwd"])
    assert ProductUpdate(image_url=None).image_url is None
