"""Integration tests for customer profiles and admin customer management."""

from decimal import Decimal
from pathlib import Path

import pytest
from libs.common.config import get_settings
from services.store_service.models import Customer, User
from sqlalchemy import select
from tests.conftest import auth_headers_for, make_account
from tests.factories import TEST_PASSWORD

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_my_profile(client, db_session, customer_account, customer_headers):
    user, customer = customer_account

    response = await client.get("/api/customers/profile/me", headers=customer_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == str(customer.id)
    assert data["user"]["email"] == user.email


@pytest.mark.asyncio
@pytest.mark.integration
async def test_profile_is_created_on_first_access(client, db_session):
    user, _ = await make_account(db_session, with_customer=False, username="Tran Thi B")

    response = await client.get("/api/customers/profile/me", headers=auth_headers_for(user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["first_name"] == "Tran"
    assert data["last_name"] == "Thi B"
    created = await db_session.execute(select(Customer).where(Customer.user_id == user.id))
    assert created.scalar_one_or_none() is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_profile_syncs_phone_to_user(
    client, db_session, customer_account, customer_headers
):
    user, _ = customer_account

    response = await client.put(
        "/api/customers/profile/me",
        json={"phone": "0912345678", "shipping_city": "Da Nang"},
        headers=customer_headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["phone"] == "0912345678"
    assert data["shipping_city"] == "Da Nang"
    assert data["user"]["phone"] == "0912345678"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_profile_rejects_taken_phone(client, db_session, customer_headers):
    _, other = await make_account(db_session)
    other.phone = "0987654321"
    await db_session.commit()

    response = await client.put(
        "/api/customers/profile/me", json={"phone": "0987654321"}, headers=customer_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Phone number already in use"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_profile_rejects_bad_phone(client, db_session, customer_headers):
    response = await client.put(
        "/api/customers/profile/me", json={"phone": "12ab"}, headers=customer_headers
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "phone"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_change_password_from_profile(client, db_session, customer_account, customer_headers):
    user, _ = customer_account

    response = await client.put(
        "/api/customers/profile/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "Another123"},
        headers=customer_headers,
    )

    assert response.status_code == 200
    login = await client.post(
        "/api/auth/login", json={"email": user.email, "password": "Another123"}
    )
    assert login.status_code == 200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_username(client, db_session, customer_headers):
    response = await client.put(
        "/api/customers/profile/username",
        json={"username": "  New Name  "},
        headers=customer_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["username"] == "New Name"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_avatar(client, db_session, customer_account, customer_headers):
    user, _ = customer_account

    response = await client.post(
        "/api/customers/profile/avatar",
        files={"avatar": ("me.png", PNG_BYTES, "image/png")},
        headers=customer_headers,
    )

    assert response.status_code == 200, response.text
    avatar = response.json()["data"]["avatar"]
    assert avatar.startswith("/uploads/avatars/")
    await db_session.refresh(user)
    assert user.avatar == avatar


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_avatar_rejects_oversized_file(
    client, db_session, customer_account, customer_headers
):
    user, _ = customer_account
    settings = get_settings()
    oversized = PNG_BYTES + b"\x00" * (settings.max_upload_bytes + 1 - len(PNG_BYTES))

    response = await client.post(
        "/api/customers/profile/avatar",
        files={"avatar": ("big.png", oversized, "image/png")},
        headers=customer_headers,
    )

    assert response.status_code == 413
    assert response.json()["message"] == (
        f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB}MB"
    )
    avatars = Path(settings.UPLOAD_DIR) / "avatars"
    assert list(avatars.glob(f"avatar-{user.id}-*")) == []
    await db_session.refresh(user)
    assert user.avatar is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_avatar_rejects_non_image(client, db_session, customer_headers):
    response = await client.post(
        "/api/customers/profile/avatar",
        files={"avatar": ("me.pdf", b"%PDF-1.4", "application/pdf")},
        headers=customer_headers,
    )

    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_lists_and_searches_customers(client, db_session, admin_headers):
    target, _ = await make_account(db_session, username="Le Van Searchable")
    await make_account(db_session)

    everyone = await client.get("/api/customers", headers=admin_headers)
    found = await client.get(
        "/api/customers", params={"search": target.email}, headers=admin_headers
    )

    assert everyone.json()["data"]["pagination"]["total"] == 2
    items = found.json()["data"]["items"]
    assert [item["user"]["id"] for item in items] == [str(target.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_admin_routes_require_admin(client, db_session, staff_headers, customer_headers):
    staff = await client.get("/api/customers", headers=staff_headers)
    customer = await client.get("/api/customers/statistics", headers=customer_headers)

    assert staff.status_code == 403
    assert customer.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_statistics(client, db_session, admin_headers):
    await make_account(db_session)
    await make_account(db_session, is_active=False)

    response = await client.get("/api/customers/statistics", headers=admin_headers)

    assert response.json()["data"] == {
        "total_customers": 2,
        "active_customers": 1,
        "new_this_month": 2,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_get_customer(client, db_session, admin_headers, customer_account):
    user, customer = customer_account

    by_id = await client.get(f"/api/customers/{customer.id}", headers=admin_headers)
    by_user = await client.get(f"/api/customers/user/{user.id}", headers=admin_headers)
    missing = await client.get(
        "/api/customers/00000000-0000-0000-0000-000000000000", headers=admin_headers
    )

    assert by_id.json()["data"]["id"] == str(customer.id)
    assert by_user.json()["data"]["id"] == str(customer.id)
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_update_customer(client, db_session, admin_headers, customer_account):
    user, customer = customer_account

    response = await client.put(
        f"/api/customers/{customer.id}",
        json={"discount_percentage": "15", "is_active": False},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert Decimal(data["discount_percentage"]) == Decimal("15")
    assert data["user"]["is_active"] is False
    refreshed = await db_session.execute(
        select(User).where(User.id == user.id).execution_options(populate_existing=True)
    )
    assert refreshed.scalar_one().is_active is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_update_needs_fields(client, db_session, admin_headers, customer_account):
    _, customer = customer_account

    response = await client.put(
        f"/api/customers/{customer.id}", json={}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "No valid fields to update"
