"""Integration tests for the cart endpoints."""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from services.store_service.models import CartItem
from sqlalchemy import func, select
from tests.conftest import auth_headers_for, make_account
from tests.factories import ProductFactory


async def _add(client, headers, product_id, quantity=1):
    return await client.post(
        "/api/cart",
        json={"product_id": str(product_id), "quantity": quantity},
        headers=headers,
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_starts_empty(client, db_session, customer_headers):
    response = await client.get("/api/cart", headers=customer_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["items"] == []
    assert data["total_items"] == 0
    assert Decimal(data["subtotal"]) == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_requires_login(client, db_session):
    response = await client.get("/api/cart")

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_to_cart_uses_discounted_price(client, db_session, customer_headers, category):
    product = ProductFactory.create(
        category_id=category.id, price=Decimal("200000"), discount_percentage=Decimal("10")
    )
    db_session.add(product)
    await db_session.commit()

    response = await _add(client, customer_headers, product.id, 2)

    assert response.status_code == 201, response.text
    cart = response.json()["data"]
    assert cart["total_items"] == 2
    assert Decimal(cart["subtotal"]) == Decimal("360000")
    line = cart["items"][0]
    assert Decimal(line["unit_price"]) == Decimal("180000")
    assert line["product"]["id"] == str(product.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adding_same_product_merges_lines(client, db_session, customer_headers, product):
    await _add(client, customer_headers, product.id, 2)
    response = await _add(client, customer_headers, product.id, 3)

    cart = response.json()["data"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_quantity_cannot_exceed_stock(client, db_session, customer_headers, product):
    await _add(client, customer_headers, product.id, 8)
    response = await _add(client, customer_headers, product.id, 3)

    assert response.status_code == 400
    assert response.json()["message"] == "Only 10 items available in stock"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_zero_quantity(client, db_session, customer_headers, product):
    response = await _add(client, customer_headers, product.id, 0)

    assert response.status_code == 400
    assert response.json()["message"] == "Quantity must be at least 1"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_inactive_product(client, db_session, customer_headers, category):
    product = ProductFactory.create(category_id=category.id, is_active=False)
    db_session.add(product)
    await db_session.commit()

    response = await _add(client, customer_headers, product.id)

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_and_remove_cart_item(client, db_session, customer_headers, product):
    added = await _add(client, customer_headers, product.id, 1)
    item_id = added.json()["data"]["items"][0]["id"]

    updated = await client.put(
        f"/api/cart/{item_id}", json={"quantity": 4}, headers=customer_headers
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["total_items"] == 4

    too_many = await client.put(
        f"/api/cart/{item_id}", json={"quantity": 11}, headers=customer_headers
    )
    assert too_many.status_code == 400

    removed = await client.delete(f"/api/cart/{item_id}", headers=customer_headers)
    assert removed.status_code == 200
    assert removed.json()["data"]["items"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cannot_touch_another_users_cart_item(client, db_session, customer_headers, product):
    added = await _add(client, customer_headers, product.id, 1)
    item_id = added.json()["data"]["items"][0]["id"]

    other, _ = await make_account(db_session)
    response = await client.put(
        f"/api/cart/{item_id}", json={"quantity": 2}, headers=auth_headers_for(other)
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Cart item not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_clear_cart(client, db_session, customer_account, customer_headers, category):
    for _ in range(2):
        product = ProductFactory.create(category_id=category.id)
        db_session.add(product)
        await db_session.commit()
        await _add(client, customer_headers, product.id)

    response = await client.delete("/api/cart", headers=customer_headers)

    assert response.status_code == 200
    user, _ = customer_account
    remaining = await db_session.execute(
        select(func.count(CartItem.id)).where(CartItem.user_id == user.id)
    )
    assert remaining.scalar() == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expired_items_are_purged(client, db_session, customer_account, customer_headers, product):
    user, _ = customer_account
    db_session.add(
        CartItem(
            user_id=user.id,
            product_id=product.id,
            quantity=1,
            expires_at=utc_now() - timedelta(minutes=1),
        )
    )
    await db_session.commit()

    response = await client.get("/api/cart", headers=customer_headers)

    assert response.json()["data"]["items"] == []
