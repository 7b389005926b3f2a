"""Integration tests for product reviews."""

import uuid

import pytest
from services.store_service.models import OrderStatus, Review
from tests.conftest import auth_headers_for, make_account
from tests.factories import OrderFactory, ReviewFactory

COMMENT = "Solid build quality and fast delivery."


async def _review(client, headers, product, rating=5, comment=COMMENT):
    return await client.post(
        "/api/reviews",
        json={"product_id": str(product.id), "rating": rating, "comment": comment},
        headers=headers,
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_review_unverified(client, db_session, customer_headers, product):
    response = await _review(client, customer_headers, product, rating=4)

    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["rating"] == 4
    assert data["is_verified_purchase"] is False
    assert data["customer"]["first_name"] == "Test"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_review_after_purchase_is_verified(
    client, db_session, customer_account, customer_headers, product
):
    _, customer = customer_account
    db_session.add(
        OrderFactory.create(
            customer_id=customer.id, products=[(product, 1)], status=OrderStatus.DELIVERED
        )
    )
    await db_session.commit()

    response = await _review(client, customer_headers, product)

    assert response.json()["data"]["is_verified_purchase"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancelled_purchase_does_not_verify(
    client, db_session, customer_account, customer_headers, product
):
    _, customer = customer_account
    db_session.add(
        OrderFactory.create(
            customer_id=customer.id, products=[(product, 1)], status=OrderStatus.CANCELLED
        )
    )
    await db_session.commit()

    response = await _review(client, customer_headers, product)

    assert response.json()["data"]["is_verified_purchase"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_one_review_per_product(client, db_session, customer_headers, product):
    await _review(client, customer_headers, product)
    response = await _review(client, customer_headers, product, rating=1)

    assert response.status_code == 400
    assert response.json()["message"] == "You have already reviewed this product"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_review_validation(client, db_session, customer_headers, product):
    short = await _review(client, customer_headers, product, comment="Nice")
    out_of_range = await _review(client, customer_headers, product, rating=6)

    assert short.status_code == 400
    assert short.json()["errors"][0]["field"] == "comment"
    assert out_of_range.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_staff_without_profile_cannot_review(client, db_session, staff_headers, product):
    response = await _review(client, staff_headers, product)

    assert response.status_code == 404
    assert response.json()["message"] == "Customer profile not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_reviews_with_stats(client, db_session, product):
    for rating, visible in ((5, True), (4, True), (4, True), (1, False)):
        _, customer = await make_account(db_session)
        db_session.add(
            ReviewFactory.create(
                product_id=product.id,
                customer_id=customer.id,
                rating=rating,
                is_visible=visible,
            )
        )
    await db_session.commit()

    response = await client.get(f"/api/reviews/product/{product.id}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["reviews"]) == 3
    assert data["pagination"]["total"] == 3
    stats = data["stats"]
    assert stats["total_reviews"] == 3
    assert stats["average_rating"] == 4.3
    assert stats["rating_counts"]["4"] == 2
    assert stats["rating_counts"]["1"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_check_review(client, db_session, customer_headers, product):
    before = await client.get(f"/api/reviews/check/{product.id}", headers=customer_headers)
    await _review(client, customer_headers, product)
    after = await client.get(f"/api/reviews/check/{product.id}", headers=customer_headers)

    assert before.json()["data"] == {"has_reviewed": False, "review": None}
    assert after.json()["data"]["has_reviewed"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_own_review_only(client, db_session, customer_headers, product):
    created = await _review(client, customer_headers, product)
    review_id = created.json()["data"]["id"]

    updated = await client.put(
        f"/api/reviews/{review_id}", json={"rating": 3}, headers=customer_headers
    )
    stranger, _ = await make_account(db_session)
    forbidden = await client.put(
        f"/api/reviews/{review_id}", json={"rating": 1}, headers=auth_headers_for(stranger)
    )

    assert updated.status_code == 200
    assert updated.json()["data"]["rating"] == 3
    assert updated.json()["data"]["comment"] == COMMENT
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "You can only modify your own reviews"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_staff_can_delete_any_review(client, db_session, customer_headers, staff_headers, product):
    created = await _review(client, customer_headers, product)
    review_id = created.json()["data"]["id"]

    response = await client.delete(f"/api/reviews/{review_id}", headers=staff_headers)

    assert response.status_code == 200
    assert await db_session.get(Review, uuid.UUID(review_id)) is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_toggle_visibility_hides_from_public(
    client, db_session, customer_headers, staff_headers, product
):
    created = await _review(client, customer_headers, product)
    review_id = created.json()["data"]["id"]

    toggled = await client.patch(
        f"/api/reviews/{review_id}/toggle-visibility", headers=staff_headers
    )
    public = await client.get(f"/api/reviews/product/{product.id}")
    moderation = await client.get(
        "/api/reviews", params={"is_visible": "false"}, headers=staff_headers
    )

    assert toggled.json()["message"] == "Review is now hidden"
    assert public.json()["data"]["reviews"] == []
    assert moderation.json()["data"]["pagination"]["total"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_reviews_listing(client, db_session, customer_account, customer_headers, product):
    _, customer = customer_account
    await _review(client, customer_headers, product)

    response = await client.get(f"/api/reviews/customer/{customer.id}")

    assert response.json()["data"]["pagination"]["total"] == 1
