"""Integration tests for category and product endpoints."""

from decimal import Decimal

import pytest
from services.store_service.models import Category, OrderStatus, Product
from tests.conftest import make_account
from tests.factories import OrderFactory, ProductFactory

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_category_with_image(client, db_session, admin_headers):
    """POST /api/categories: multipart form with an optional image."""
    response = await client.post(
        "/api/categories",
        data={"name": "Gaming Laptops", "description": "Fast ones"},
        files={"image": ("laptops.png", PNG_BYTES, "image/png")},
        headers=admin_headers,
    )

    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["slug"] == "gaming-laptops"
    assert data["product_count"] == 0
    assert data["image_url"].startswith("/uploads/categories/")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_category_rejects_non_image(client, db_session, admin_headers):
    response = await client.post(
        "/api/categories",
        data={"name": "Docs"},
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=admin_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_category_requires_admin(client, db_session, staff_headers):
    response = await client.post(
        "/api/categories", data={"name": "Phones"}, headers=staff_headers
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_category_requires_name(client, db_session, admin_headers):
    response = await client.post(
        "/api/categories", data={"name": "   "}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Category name is required"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_duplicate_category_name_conflicts(client, db_session, admin_headers, category):
    response = await client.post(
        "/api/categories", data={"name": category.name.upper()}, headers=admin_headers
    )

    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_categories_with_product_counts(client, db_session, category):
    db_session.add_all(
        [
            ProductFactory.create(category_id=category.id),
            ProductFactory.create(category_id=category.id),
        ]
    )
    await db_session.commit()

    response = await client.get("/api/categories", params={"search": category.name})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["items"][0]["product_count"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_category_renames_slug(client, db_session, admin_headers, category):
    response = await client.put(
        f"/api/categories/{category.id}",
        data={"name": "Audio Gear", "is_active": "false"},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["slug"] == "audio-gear"
    assert data["is_active"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_category_with_products_conflicts(
    client, db_session, admin_headers, product
):
    response = await client.delete(
        f"/api/categories/{product.category_id}", headers=admin_headers
    )

    assert response.status_code == 409
    assert "Cannot delete category with 1 products" == response.json()["message"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_empty_category(client, db_session, admin_headers, category):
    response = await client.delete(f"/api/categories/{category.id}", headers=admin_headers)

    assert response.status_code == 200
    assert await db_session.get(Category, category.id) is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_missing_category(client, db_session):
    response = await client.get("/api/categories/999999")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "data": None,
        "message": "Category not found",
    }


# ---------------------------------------------------------------------------
# Products: public reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_products_filters_and_sorts(client, db_session, category):
    db_session.add_all(
        [
            ProductFactory.create(category_id=category.id, name="Cheap Mouse", price=Decimal("100")),
            ProductFactory.create(category_id=category.id, name="Mid Mouse", price=Decimal("500")),
            ProductFactory.create(category_id=category.id, name="Pricey Mouse", price=Decimal("900")),
            ProductFactory.create(category_id=category.id, name="Hidden Mouse", is_active=False),
        ]
    )
    await db_session.commit()

    response = await client.get(
        "/api/products",
        params={"search": "mouse", "min_price": "200", "sort": "price_desc"},
    )

    assert response.status_code == 200
    items = response.json()["data"]["items"]
    assert [item["name"] for item in items] == ["Pricey Mouse", "Mid Mouse"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inactive_products_only_for_staff(client, db_session, staff_headers, category):
    hidden = ProductFactory.create(category_id=category.id, is_active=False)
    db_session.add(hidden)
    await db_session.commit()

    public = await client.get(f"/api/products/{hidden.id}")
    staff = await client.get(f"/api/products/{hidden.id}", headers=staff_headers)
    listing = await client.get(
        "/api/products",
        params={"category_id": category.id, "include_inactive": "true"},
        headers=staff_headers,
    )

    assert public.status_code == 404
    assert staff.status_code == 200
    assert listing.json()["data"]["pagination"]["total"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_product_by_slug_has_final_price(client, db_session, category):
    product = ProductFactory.create(
        category_id=category.id, price=Decimal("200000"), discount_percentage=Decimal("15")
    )
    db_session.add(product)
    await db_session.commit()

    response = await client.get(f"/api/products/slug/{product.slug}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert Decimal(data["final_price"]) == Decimal("170000")
    assert data["category"]["id"] == category.id


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_products_in_missing_category(client, db_session):
    response = await client.get("/api/products/category/999999")

    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Products: staff writes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_generates_unique_slug(client, db_session, staff_headers, category):
    payload = {
        "name": "Wireless Mouse",
        "price": "250000",
        "stock_quantity": 5,
        "category_id": category.id,
    }

    first = await client.post("/api/products", json=payload, headers=staff_headers)
    second = await client.post("/api/products", json=payload, headers=staff_headers)

    assert first.status_code == 201, first.text
    assert first.json()["data"]["slug"] == "wireless-mouse"
    assert second.json()["data"]["slug"] == "wireless-mouse-1"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_validates_input(client, db_session, staff_headers):
    negative = await client.post(
        "/api/products", json={"name": "Broken", "price": "-1"}, headers=staff_headers
    )
    unknown_category = await client.post(
        "/api/products",
        json={"name": "Orphan", "price": "10", "category_id": 999999},
        headers=staff_headers,
    )

    assert negative.status_code == 400
    assert unknown_category.status_code == 400
    assert unknown_category.json()["message"] == "Category not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customers_cannot_create_products(client, db_session, customer_headers):
    response = await client.post(
        "/api/products", json={"name": "Nope", "price": "10"}, headers=customer_headers
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_product(client, db_session, staff_headers, product):
    response = await client.put(
        f"/api/products/{product.id}",
        json={"name": "Renamed Product", "discount_percentage": "10"},
        headers=staff_headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["slug"] == "renamed-product"
    assert Decimal(data["final_price"]) == Decimal("90000")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_unordered_product(client, db_session, staff_headers, product):
    response = await client.delete(f"/api/products/{product.id}", headers=staff_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Product deleted successfully"
    assert await db_session.get(Product, product.id) is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_ordered_product_deactivates(client, db_session, staff_headers, product):
    _, customer = await make_account(db_session)
    db_session.add(
        OrderFactory.create(
            customer_id=customer.id, products=[(product, 1)], status=OrderStatus.DELIVERED
        )
    )
    await db_session.commit()

    response = await client.delete(f"/api/products/{product.id}", headers=staff_headers)

    assert response.status_code == 200
    await db_session.refresh(product)
    assert product.is_active is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_product_images(client, db_session, staff_headers, product):
    first = await client.post(
        f"/api/products/{product.id}/images",
        files={"image": ("front.png", PNG_BYTES, "image/png")},
        headers=staff_headers,
    )
    second = await client.post(
        f"/api/products/{product.id}/images",
        files={"image": ("back.png", PNG_BYTES, "image/png")},
        headers=staff_headers,
    )

    assert first.status_code == 200, first.text
    assert first.json()["data"]["image_url"].startswith("/uploads/products/")
    data = second.json()["data"]
    assert len(data["additional_images"]) == 1
